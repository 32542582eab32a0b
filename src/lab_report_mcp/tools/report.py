"""Report tools — load, chat, resolve conflicts, edit, export, reset."""

from __future__ import annotations

from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field, TypeAdapter, ValidationError

from ..config import get_config
from ..documents import export_docx, load_report
from ..errors import SessionBusyError, make_tool_error
from ..orchestrator import TurnOutcome
from ..runtime import get_runtime
from ..tracing import trace
from ..types import MessageText, ReportFilePath, ResolutionStrategy, coerce_json_param

report_server = FastMCP("report")

_RESOLUTIONS = TypeAdapter(dict[str, ResolutionStrategy])


def _outcome_dict(outcome: TurnOutcome) -> dict:
    """Serialise a TurnOutcome for a tool response."""
    patches = outcome.patches
    return {
        "user_turn_id": outcome.user_turn.id,
        "turns": [t.model_dump(mode="json") for t in outcome.new_turns],
        "patches": None if patches is None else {
            "applied": patches.applied,
            "total": patches.total,
            "summary": patches.summary(),
            "skipped": [{"index": s.index, "reason": s.reason} for s in patches.skipped],
        },
        "citations_added": [c.model_dump(mode="json") for c in outcome.citations_added],
        "error": outcome.error,
    }


@report_server.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True, openWorldHint=False))
@trace(name="report_load", span_type="TOOL")
async def report_load(file_path: ReportFilePath) -> dict:
    """Load a .docx lab report, replacing the current session.

    A failed load leaves any previously loaded report untouched.

    Args:
        file_path: Path to the .docx file.

    Returns:
        Dict with name, character count, and the greeting turn.
    """
    try:
        document = load_report(file_path)
    except Exception as exc:
        return make_tool_error(exc)

    runtime = get_runtime()
    greeting = runtime.session.load_document(document)
    runtime.autosaver.start()
    return {
        "name": document.name,
        "characters": len(document.content),
        "turn": greeting.model_dump(mode="json"),
    }


@report_server.tool(annotations=ToolAnnotations(readOnlyHint=False, openWorldHint=True))
@trace(name="report_chat", span_type="TOOL")
async def report_chat(message: MessageText) -> dict:
    """Send a message about the report to the AI collaborator.

    The collaborator may answer, edit the report, raise conflicts, or add
    citations. Collaborator failures are returned as an error turn.

    Args:
        message: What to ask or tell the assistant.

    Returns:
        Dict with the new turns, patch summary, added citations, and error (if any).
    """
    try:
        outcome = await get_runtime().orchestrator.submit(message)
    except Exception as exc:
        return make_tool_error(exc)
    return _outcome_dict(outcome)


@report_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
async def report_conflicts(
    include_resolved: Annotated[bool, Field(description="Also list resolved conflicts (audit trail)")] = False,
) -> dict:
    """List conflicts awaiting a decision (or every conflict ever raised).

    Returns:
        Dict with conflicts (turn id + conflict fields) and the open count.
    """
    registry = get_runtime().session.conflicts
    turns = registry.history() if include_resolved else registry.unresolved()
    return {
        "conflicts": [
            {"turn_id": t.id, **t.conflict.model_dump(mode="json")} for t in turns
        ],
        "open": len(registry.unresolved()),
    }


@report_server.tool(annotations=ToolAnnotations(readOnlyHint=False, openWorldHint=True))
@trace(name="report_resolve_conflicts", span_type="TOOL")
async def report_resolve_conflicts(
    resolutions: Annotated[dict[str, ResolutionStrategy] | str, Field(
        description='Map of conflict turn id to "kept_existing", "updated_new", or "combined"',
    )],
) -> dict:
    """Resolve conflicts and ask the collaborator to apply the chosen edits.

    Args:
        resolutions: Conflict turn id -> strategy.

    Returns:
        Dict with the compiled entries, the manifest text, and the chat outcome.
    """
    try:
        parsed = _RESOLUTIONS.validate_python(coerce_json_param(resolutions, dict))
    except ValidationError as exc:
        return make_tool_error(ValueError(f"invalid resolutions: {exc.errors()[0]['msg']}"))

    try:
        manifest, outcome = await get_runtime().orchestrator.resolve_conflicts(parsed)
    except Exception as exc:
        return make_tool_error(exc)

    return {
        "resolved": [{"turn_id": e.turn_id, "strategy": e.strategy} for e in manifest.entries],
        "ignored": [tid for tid in parsed if tid not in {e.turn_id for e in manifest.entries}],
        "manifest": manifest.text,
        "outcome": _outcome_dict(outcome) if outcome is not None else None,
    }


@report_server.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True, openWorldHint=False))
async def report_edit(
    content: Annotated[str, Field(description="Full replacement text of the report")],
) -> dict:
    """Replace the report text directly (refused while a chat turn is running)."""
    try:
        get_runtime().orchestrator.edit_content(content)
    except Exception as exc:
        return make_tool_error(exc)
    return {"characters": len(content)}


@report_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
async def report_status(
    include_content: Annotated[bool, Field(description="Include current and original text")] = False,
) -> dict:
    """Summarise the loaded report, conversation, and orchestrator state."""
    runtime = get_runtime()
    session = runtime.session
    document = session.document
    out: dict = {
        "loaded": document is not None,
        "state": runtime.orchestrator.state.value,
        "turns": len(session.turns),
        "open_conflicts": len(session.conflicts.unresolved()),
        "citations": len(session.citations),
        "tasks": len(session.tasks),
        "last_saved": session.state.last_saved.isoformat() if session.state.last_saved else None,
        "snapshot": session.has_snapshot(),
    }
    if document is not None:
        out["name"] = document.name
        out["modified"] = document.content != document.original_content
        out["last_modified"] = document.last_modified
        if include_content:
            out["content"] = document.content
            out["original_content"] = document.original_content
    return out


@report_server.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=False, openWorldHint=False))
@trace(name="report_export", span_type="TOOL")
async def report_export(
    filename: Annotated[str | None, Field(description="Output file name (defaults to the loaded name)")] = None,
    output_dir: Annotated[str | None, Field(description="Directory to write into")] = None,
) -> dict:
    """Export the current report text as a formatted .docx."""
    try:
        document = get_runtime().session.require_document()
        path = export_docx(
            document.content,
            filename or document.name,
            output_dir or get_config().export_dir,
        )
    except Exception as exc:
        return make_tool_error(exc)
    return {"path": str(path)}


@report_server.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True, openWorldHint=False))
async def report_reset() -> dict:
    """Close the report and delete the saved snapshot. Export first to keep your work."""
    runtime = get_runtime()
    if runtime.orchestrator.busy:
        return make_tool_error(SessionBusyError("A conversation turn is in progress — retry once it finishes"))
    await runtime.autosaver.stop()
    runtime.session.reset()
    return {"reset": True}
