"""Lab task tools — a small checklist that travels with the session snapshot."""

from __future__ import annotations

from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..runtime import get_runtime

task_server = FastMCP("tasks")


@task_server.tool(annotations=ToolAnnotations(readOnlyHint=False, openWorldHint=False))
async def task_add(
    text: Annotated[str, Field(min_length=1, description="What needs doing, e.g. 'Recheck trial 3 mass'")],
) -> dict:
    """Append a task to the checklist."""
    text = text.strip()
    if not text:
        return {"added": False, "reason": "Task text is blank"}
    task = get_runtime().session.add_task(text)
    return {"added": True, "task": task.model_dump(mode="json")}


@task_server.tool(annotations=ToolAnnotations(readOnlyHint=False, openWorldHint=False))
async def task_toggle(
    task_id: Annotated[str, Field(min_length=1, description="Task ID from task_list")],
) -> dict:
    """Mark a task done, or back to open if it was already done."""
    task = get_runtime().session.toggle_task(task_id)
    if task is None:
        return {"toggled": False, "reason": f"No task with id {task_id}"}
    return {"toggled": True, "task": task.model_dump(mode="json")}


@task_server.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True, openWorldHint=False))
async def task_delete(
    task_id: Annotated[str, Field(min_length=1, description="Task ID from task_list")],
) -> dict:
    """Remove a task from the checklist."""
    return {"deleted": get_runtime().session.delete_task(task_id)}


@task_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
async def task_list() -> dict:
    """List tasks with a done/total progress count."""
    session = get_runtime().session
    done, total = session.task_progress()
    return {
        "tasks": [t.model_dump(mode="json") for t in session.tasks],
        "completed": done,
        "total": total,
        "progress": round(done / total * 100) if total else 0,
    }
