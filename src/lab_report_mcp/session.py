"""Report session state with explicit save/restore and periodic autosave."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from datetime import datetime

from pydantic import BaseModel, Field, ValidationError

from .conflicts import ConflictRegistry
from .errors import NoDocumentError
from .models.report import Citation, ReportDocument, Task, Turn, epoch_ms
from .persistence import SnapshotDB
from .prompts.report import DEFAULT_TASKS, GREETING
from .types import Locale

logger = logging.getLogger(__name__)


class SessionState(BaseModel):
    """Serialization schema of a session snapshot.

    Conflicts are not a separate field: they live inside ``turns``.
    """

    document: ReportDocument | None = None
    turns: list[Turn] = Field(default_factory=list)
    citations: list[Citation] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    locale: Locale = "en"
    last_saved: datetime | None = None


class ReportSession:
    """Owns the document, conversation, citations and task list for one report."""

    def __init__(self, db: SnapshotDB | None = None, storage_key: str = "LAB_REPORT_SESSION_V2") -> None:
        self.state = SessionState()
        self._db = db
        self.storage_key = storage_key

    @property
    def document(self) -> ReportDocument | None:
        return self.state.document

    @property
    def turns(self) -> list[Turn]:
        return self.state.turns

    @property
    def citations(self) -> list[Citation]:
        return self.state.citations

    @property
    def tasks(self) -> list[Task]:
        return self.state.tasks

    @property
    def conflicts(self) -> ConflictRegistry:
        return ConflictRegistry(self.state.turns)

    def require_document(self) -> ReportDocument:
        if self.state.document is None:
            raise NoDocumentError()
        return self.state.document

    def load_document(self, document: ReportDocument) -> Turn:
        """Replace the whole session with a freshly loaded report."""
        locale = self.state.locale
        self.state = SessionState(document=document, locale=locale)
        greeting = Turn(
            role="assistant",
            text=GREETING.get(locale, GREETING["en"]).format(name=document.name),
        )
        self.state.turns.append(greeting)
        self.state.tasks = [Task(text=text) for text in DEFAULT_TASKS]
        logger.info("Loaded report %s (%d chars)", document.name, len(document.content))
        return greeting

    def commit_content(self, content: str) -> None:
        """Write new document text. Only the orchestrator calls this."""
        document = self.require_document()
        document.content = content
        document.last_modified = epoch_ms()

    # ── Lab tasks ────────────────────────────────────────────────────────────

    def add_task(self, text: str) -> Task:
        task = Task(text=text)
        self.state.tasks.append(task)
        return task

    def toggle_task(self, task_id: str) -> Task | None:
        """Flip ``completed`` on a task. Returns None for an unknown id."""
        for task in self.state.tasks:
            if task.id == task_id:
                task.completed = not task.completed
                return task
        return None

    def delete_task(self, task_id: str) -> bool:
        before = len(self.state.tasks)
        self.state.tasks = [t for t in self.state.tasks if t.id != task_id]
        return len(self.state.tasks) < before

    def task_progress(self) -> tuple[int, int]:
        """``(completed, total)`` over the task list."""
        return sum(1 for t in self.state.tasks if t.completed), len(self.state.tasks)

    def reset(self) -> None:
        """Drop the report and forget the saved snapshot."""
        self.state = SessionState(locale=self.state.locale)
        if self._db:
            self._db.delete(self.storage_key)
        logger.info("Session reset")

    def save(self) -> datetime | None:
        """Persist a snapshot. Returns the save time, or None without a DB/document."""
        if self._db is None or self.state.document is None:
            return None
        payload = self.state.model_dump_json(exclude={"last_saved"})
        saved_at = self._db.save_sync(self.storage_key, payload)
        self.state.last_saved = saved_at
        logger.debug("Saved session snapshot (%d bytes)", len(payload))
        return saved_at

    def has_snapshot(self) -> bool:
        return self._db is not None and self._db.exists(self.storage_key)

    def restore(self) -> bool:
        """Load the saved snapshot. Returns False when none exists or it is unreadable."""
        if self._db is None:
            return False
        row = self._db.load_sync(self.storage_key)
        if row is None:
            return False
        payload, saved_at = row
        try:
            state = SessionState.model_validate_json(payload)
        except ValidationError as exc:
            logger.warning("Failed to restore session snapshot: %s", exc)
            return False
        state.last_saved = saved_at
        self.state = state
        logger.info("Restored session with %d turn(s)", len(state.turns))
        return True


class Autosaver:
    """Saves a session on a fixed interval while a report is loaded."""

    def __init__(self, session: ReportSession, interval_seconds: float) -> None:
        self.session = session
        self.interval = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.session.save()
            except sqlite3.Error:
                logger.warning("Autosave failed", exc_info=True)
