"""Shared type aliases and helpers for tool parameters."""

from __future__ import annotations

import json
from typing import Annotated, Literal

from pydantic import Field


def coerce_json_param(value: str | dict | list | None, expected_type: type) -> dict | list | None:
    """Parse JSON-string params (MCP transport or model tool calls) back to dict/list.

    Returns the parsed value if coercion succeeded, the original value otherwise.
    """
    if not isinstance(value, str):
        return value
    try:
        parsed = json.loads(value)
        if isinstance(parsed, expected_type):
            return parsed
    except (json.JSONDecodeError, TypeError):
        pass
    return value

# ── Literal enums ────────────────────────────────────────────────────────────

ResolutionStrategy = Literal["kept_existing", "updated_new", "combined"]
CitationStyle = Literal["APA", "IEEE", "MLA"]
Provider = Literal["gemini", "openai", "openrouter", "avalai"]
Locale = Literal["en", "fa"]
Role = Literal["user", "assistant"]

# ── Annotated aliases ────────────────────────────────────────────────────────

ReportFilePath = Annotated[str, Field(
    min_length=1,
    description="Path to a local .docx lab report",
)]
MessageText = Annotated[str, Field(min_length=1, max_length=20000, description="Message for the assistant")]
