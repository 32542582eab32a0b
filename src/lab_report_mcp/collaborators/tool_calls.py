"""Coerce loosely-typed tool-call arguments into typed results.

Model tool calls arrive as dicts (Gemini) or JSON strings (Chat
Completions). Each call is validated on its own; a malformed call is
logged and dropped without affecting the rest of the turn.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from ..models.report import ConflictPayload, PatchRequest
from ..types import coerce_json_param

logger = logging.getLogger(__name__)


class ToolCallBatch:
    """Accumulates the typed outputs of a response's tool calls."""

    def __init__(self) -> None:
        self.patches: list[PatchRequest] = []
        self.conflicts: list[ConflictPayload] = []
        self.citations: list[str] = []
        self.dropped: int = 0

    def add(self, name: str | None, raw_args: Any) -> bool:
        """Validate one call. Returns False when the call was dropped."""
        args = coerce_json_param(raw_args, dict)
        if not isinstance(args, dict):
            logger.warning("Dropping %s call: arguments are not an object", name)
            self.dropped += 1
            return False
        try:
            if name == "update_report":
                self.patches.append(PatchRequest.model_validate(args))
            elif name == "report_conflict":
                self.conflicts.append(ConflictPayload.model_validate(args))
            elif name == "add_citation":
                source = args.get("source")
                if not isinstance(source, str) or not source.strip():
                    raise ValueError("add_citation requires a non-empty 'source'")
                self.citations.append(source.strip())
            else:
                logger.warning("Dropping call to unknown tool %r", name)
                self.dropped += 1
                return False
        except (ValidationError, ValueError) as exc:
            logger.warning("Dropping malformed %s call: %s", name, exc)
            self.dropped += 1
            return False
        return True

    def extend(self, calls: Iterable[tuple[str | None, Any]]) -> ToolCallBatch:
        for name, raw_args in calls:
            self.add(name, raw_args)
        return self
