"""Session persistence tools — explicit save and restore."""

from __future__ import annotations

from fastmcp import FastMCP
from mcp.types import ToolAnnotations

from ..errors import ErrorCategory, make_tool_error
from ..runtime import get_runtime

session_server = FastMCP("session")


@session_server.tool(annotations=ToolAnnotations(readOnlyHint=False, idempotentHint=True, openWorldHint=False))
async def session_save() -> dict:
    """Write a snapshot of the current session now (autosave also runs periodically)."""
    try:
        saved_at = get_runtime().session.save()
    except Exception as exc:
        return make_tool_error(exc)
    if saved_at is None:
        return {"saved": False, "reason": "no report loaded or persistence disabled"}
    return {"saved": True, "saved_at": saved_at.isoformat()}


@session_server.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True, openWorldHint=False))
async def session_restore() -> dict:
    """Restore the last saved session (report, conversation, conflicts, citations, tasks)."""
    runtime = get_runtime()
    try:
        restored = runtime.session.restore()
    except Exception as exc:
        return make_tool_error(exc)
    if not restored:
        return {
            "restored": False,
            "category": ErrorCategory.SESSION_NOT_FOUND.value,
            "hint": "No saved session — load a report with report_load",
        }
    runtime.autosaver.start()
    state = runtime.session.state
    return {
        "restored": True,
        "name": state.document.name if state.document else None,
        "turns": len(state.turns),
        "open_conflicts": len(runtime.session.conflicts.unresolved()),
        "citations": len(state.citations),
        "tasks": len(state.tasks),
        "last_saved": state.last_saved.isoformat() if state.last_saved else None,
    }
