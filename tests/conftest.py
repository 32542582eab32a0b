"""Shared test fixtures for lab-report-mcp."""

from __future__ import annotations

from typing import Any

import pytest

from lab_report_mcp.collaborators.base import CollaboratorRequest
from lab_report_mcp.models.report import (
    CollaboratorResult,
    ConflictPayload,
    FormattedCitation,
    PatchRequest,
    ReportDocument,
)
from lab_report_mcp.session import ReportSession


def unwrap_tool(tool: Any) -> Any:
    """Extract the raw coroutine from a FastMCP FunctionTool, if wrapped.

    FastMCP 2.x wraps @server.tool functions in FunctionTool (not callable).
    FastMCP 3.x preserves the original function. This helper works with both.
    """
    return getattr(tool, "fn", tool)


class FakeCollaborator:
    """Scripted AICollaborator: returns queued results (or raises queued errors)."""

    name = "fake"

    def __init__(self, *results: CollaboratorResult | Exception) -> None:
        self.results = list(results)
        self.requests: list[CollaboratorRequest] = []
        self.citation_calls: list[tuple[str, str]] = []
        self.citation_error: Exception | None = None

    async def send_turn(self, request: CollaboratorRequest) -> CollaboratorResult:
        self.requests.append(request)
        result = self.results.pop(0) if self.results else CollaboratorResult(text="ok")
        if isinstance(result, Exception):
            raise result
        return result

    async def format_citation(self, source: str, style: str) -> FormattedCitation:
        self.citation_calls.append((source, style))
        if self.citation_error is not None:
            raise self.citation_error
        return FormattedCitation(formatted=f"Formatted: {source}", in_text="(Author, 2024)")


def patch_result(*pairs: tuple[str, str], text: str = "") -> CollaboratorResult:
    return CollaboratorResult(
        text=text,
        patches=[PatchRequest(search_text=s, replacement_text=r) for s, r in pairs],
    )


def conflict_result(*conflicts: tuple[str, str, str], text: str = "") -> CollaboratorResult:
    return CollaboratorResult(
        text=text,
        conflicts=[
            ConflictPayload(existing_info=e, new_info=n, description=d, reasoning="differs")
            for e, n, d in conflicts
        ],
    )


@pytest.fixture(autouse=True)
def _set_dummy_api_key(monkeypatch):
    """Ensure tests never hit a real provider."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key-not-real")
    monkeypatch.setenv("LAB_REPORT_PROVIDER", "gemini")


@pytest.fixture(autouse=True)
def _disable_tracing(monkeypatch):
    """Disable MLflow tracing in all tests to avoid real tracking-server calls."""
    monkeypatch.setenv("LAB_REPORT_TRACING_ENABLED", "false")
    monkeypatch.delenv("MLFLOW_TRACKING_URI", raising=False)


@pytest.fixture(autouse=True)
def _isolate_storage(tmp_path, monkeypatch):
    """Keep snapshots and exports inside the test's temp directory."""
    monkeypatch.setenv("LAB_REPORT_SESSION_DB", str(tmp_path / "session.db"))
    monkeypatch.setenv("LAB_REPORT_EXPORT_DIR", str(tmp_path / "exports"))


@pytest.fixture(autouse=True)
def clean_config():
    """Reset the config and runtime singletons between tests."""
    import lab_report_mcp.config as cfg_mod
    import lab_report_mcp.runtime as runtime_mod

    cfg_mod._config = None
    runtime_mod.reset_runtime()
    yield
    runtime_mod.reset_runtime()
    cfg_mod._config = None


@pytest.fixture()
def session():
    """In-memory session with a small report loaded."""
    s = ReportSession()
    s.load_document(
        ReportDocument.from_text("lab.docx", "Temperature: 25C\nPressure: 1 atm\nMass: 2 g"),
    )
    return s
