"""Main FastMCP server — mounts all sub-servers."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from . import tracing
from .client import GeminiClient
from .runtime import get_runtime, reset_runtime
from .tools.citations import citation_server
from .tools.infra import infra_server
from .tools.report import report_server
from .tools.session import session_server
from .tools.tasks import task_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(server: FastMCP):
    """Startup/shutdown hook — resume the saved session; on exit save it and close clients."""
    tracing.setup()
    runtime = get_runtime()
    if runtime.session.restore():
        runtime.autosaver.start()
    yield {}
    await runtime.autosaver.stop()
    try:
        runtime.session.save()
    except sqlite3.Error:
        logger.warning("Final session save failed", exc_info=True)
    reset_runtime()
    closed = await GeminiClient.close_all()
    tracing.shutdown()
    logger.info("Lifespan shutdown: closed %d client(s)", closed)


app = FastMCP(
    "lab-report",
    instructions=(
        "Lab report assistant — load a .docx report, discuss and research it with "
        "an AI collaborator, resolve data conflicts, and export the edited report."
    ),
    lifespan=_lifespan,
)

app.mount(report_server)
app.mount(session_server)
app.mount(citation_server)
app.mount(task_server)
app.mount(infra_server)


def main() -> None:
    """Entry-point for ``lab-report-mcp`` console script."""
    logging.basicConfig(level=logging.INFO)
    app.run()


if __name__ == "__main__":
    main()
