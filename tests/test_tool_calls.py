"""Tests for tool-call argument coercion."""

from __future__ import annotations

import json

from lab_report_mcp.collaborators.tool_calls import ToolCallBatch


class TestToolCallBatch:
    def test_dict_and_json_string_args(self):
        batch = ToolCallBatch().extend([
            ("update_report", {"search_text": "25C", "replacement_text": "27C"}),
            ("update_report", json.dumps({"search_text": "1 atm", "replacement_text": "2 atm"})),
        ])
        assert [p.search_text for p in batch.patches] == ["25C", "1 atm"]
        assert batch.dropped == 0

    def test_conflict_without_reasoning_is_accepted(self):
        batch = ToolCallBatch()
        assert batch.add("report_conflict", {"existing_info": "a", "new_info": "b", "description": "c"})
        assert batch.conflicts[0].reasoning == ""

    def test_malformed_call_dropped_without_affecting_others(self):
        batch = ToolCallBatch().extend([
            ("update_report", {"search_text": "x"}),
            ("update_report", "{not json"),
            ("report_conflict", {"existing_info": "a", "new_info": "b", "description": "c", "reasoning": "d"}),
            ("unknown_tool", {}),
            ("add_citation", {"source": "  "}),
            ("add_citation", {"source": " https://nist.gov "}),
        ])
        assert batch.patches == []
        assert len(batch.conflicts) == 1
        assert batch.citations == ["https://nist.gov"]
        assert batch.dropped == 4

    def test_none_args_dropped(self):
        batch = ToolCallBatch()
        assert batch.add("update_report", None) is False
        assert batch.dropped == 1
