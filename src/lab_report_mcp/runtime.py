"""Process-wide session and orchestrator used by the MCP tools.

The core classes take their session explicitly; this module is the one
place that owns a single instance of each for the server process.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .collaborators import get_collaborator
from .config import get_config
from .orchestrator import ConversationOrchestrator
from .persistence import SnapshotDB
from .session import Autosaver, ReportSession

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    session: ReportSession
    orchestrator: ConversationOrchestrator
    autosaver: Autosaver
    db: SnapshotDB | None = None

    def close(self) -> None:
        if self.db is not None:
            self.db.close()
            self.db = None


_runtime: Runtime | None = None


def _build_runtime() -> Runtime:
    cfg = get_config()
    db = SnapshotDB(cfg.session_db_path) if cfg.session_db_path else None
    session = ReportSession(db=db, storage_key=cfg.storage_key)
    session.state.locale = cfg.locale
    orchestrator = ConversationOrchestrator(session, get_collaborator(cfg.provider))
    autosaver = Autosaver(session, cfg.autosave_interval_seconds)
    logger.info("Runtime ready (provider=%s, persistence=%s)", cfg.provider, bool(db))
    return Runtime(session=session, orchestrator=orchestrator, autosaver=autosaver, db=db)


def get_runtime() -> Runtime:
    """Return the process runtime, creating it on first access."""
    global _runtime
    if _runtime is None:
        _runtime = _build_runtime()
    return _runtime


def switch_provider(provider: str) -> None:
    """Point the live orchestrator at a different collaborator."""
    runtime = get_runtime()
    runtime.orchestrator.collaborator = get_collaborator(provider)


def reset_runtime() -> None:
    """Drop the process runtime (next access rebuilds it from config)."""
    global _runtime
    if _runtime is not None:
        _runtime.close()
    _runtime = None
