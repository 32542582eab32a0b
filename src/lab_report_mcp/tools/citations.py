"""Citation tools — add, delete, list bibliography entries."""

from __future__ import annotations

from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..errors import make_tool_error
from ..runtime import get_runtime
from ..tracing import trace
from ..types import CitationStyle

citation_server = FastMCP("citations")


@citation_server.tool(annotations=ToolAnnotations(readOnlyHint=False, idempotentHint=True, openWorldHint=True))
@trace(name="citation_add", span_type="TOOL")
async def citation_add(
    source: Annotated[str, Field(min_length=1, description="URL or title of the source")],
    style: CitationStyle = "APA",
) -> dict:
    """Format a source and add it to the bibliography (existing sources are not duplicated)."""
    try:
        citation = await get_runtime().orchestrator.citations.add(source.strip(), style)
    except Exception as exc:
        return make_tool_error(exc)
    return citation.model_dump(mode="json")


@citation_server.tool(annotations=ToolAnnotations(readOnlyHint=False, destructiveHint=True, openWorldHint=False))
async def citation_delete(
    citation_id: Annotated[str, Field(min_length=1, description="Citation ID from citation_list")],
) -> dict:
    """Remove a citation from the bibliography."""
    return {"deleted": get_runtime().orchestrator.citations.delete(citation_id)}


@citation_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
async def citation_list() -> dict:
    """List bibliography entries in insertion order."""
    citations = get_runtime().orchestrator.citations.list()
    return {"citations": [c.model_dump(mode="json") for c in citations]}
