"""Tests for the citation ledger."""

from __future__ import annotations

from conftest import FakeCollaborator

from lab_report_mcp.citations import CitationLedger


class TestCitationLedger:
    async def test_add_formats_source(self):
        citations = []
        ledger = CitationLedger(citations, FakeCollaborator())

        citation = await ledger.add("https://nist.gov", "MLA")

        assert citations == [citation]
        assert citation.formatted == "Formatted: https://nist.gov"
        assert citation.in_text == "(Author, 2024)"
        assert citation.style == "MLA"

    async def test_duplicate_source_returns_existing(self):
        collab = FakeCollaborator()
        ledger = CitationLedger([], collab)
        first = await ledger.add("https://nist.gov")
        second = await ledger.add("https://nist.gov")
        assert second is first
        assert len(ledger.list()) == 1
        assert len(collab.citation_calls) == 1

    async def test_formatting_failure_falls_back_to_raw_source(self):
        collab = FakeCollaborator()
        collab.citation_error = RuntimeError("quota")
        ledger = CitationLedger([], collab)
        await ledger.add("https://a.org")

        citation = await ledger.add("https://b.org")

        assert citation.formatted == "https://b.org"
        assert citation.in_text == "[2]"

    async def test_delete(self):
        ledger = CitationLedger([], FakeCollaborator())
        citation = await ledger.add("https://nist.gov")
        assert ledger.delete(citation.id) is True
        assert ledger.delete(citation.id) is False
        assert ledger.find("https://nist.gov") is None
