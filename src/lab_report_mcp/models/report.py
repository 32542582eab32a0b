"""Report session models — document, conversation turns, conflicts, citations, tasks.

These are the shapes persisted in a session snapshot and exchanged with
the AI collaborator. Conflicts are never stored on their own: each one is
embedded in the assistant turn that raised it, so the turn list is the
single source of truth for the conflict audit trail.
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from ..types import CitationStyle, ResolutionStrategy, Role


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def epoch_ms() -> int:
    return int(time.time() * 1000)


class ConflictPhase(str, Enum):
    """Two-phase commit marker for a conflict resolution.

    ``intent_recorded`` means the user chose a strategy; ``applied`` /
    ``unapplied`` record whether the follow-up edit actually reached the
    document.
    """

    OPEN = "open"
    INTENT_RECORDED = "intent_recorded"
    APPLIED = "applied"
    UNAPPLIED = "unapplied"


class ReportDocument(BaseModel):
    """The lab report being edited."""

    name: str
    content: str
    original_content: str
    last_modified: int = Field(default_factory=epoch_ms)

    @classmethod
    def from_text(cls, name: str, text: str) -> ReportDocument:
        return cls(name=name, content=text, original_content=text)


class SourceRef(BaseModel):
    """A grounding source returned alongside an assistant reply."""

    uri: str
    title: str | None = None


class PatchRequest(BaseModel):
    """Exact-match find/replace proposed by the collaborator."""

    search_text: str
    replacement_text: str


class ConflictPayload(BaseModel):
    """A discrepancy as reported by the collaborator's ``report_conflict`` call."""

    existing_info: str
    new_info: str
    description: str
    reasoning: str = ""


class Conflict(ConflictPayload):
    """A reported discrepancy plus its resolution lifecycle."""

    resolved: bool = False
    resolution: ResolutionStrategy | None = None
    phase: ConflictPhase = ConflictPhase.OPEN


class Turn(BaseModel):
    """One entry in the conversation."""

    id: str = Field(default_factory=new_id)
    role: Role
    text: str = ""
    sources: list[SourceRef] = Field(default_factory=list)
    conflict: Conflict | None = None
    timestamp: datetime = Field(default_factory=utcnow)
    provider: str | None = None

    @model_validator(mode="after")
    def _conflict_only_on_assistant(self) -> Turn:
        if self.conflict is not None and self.role != "assistant":
            raise ValueError("Only assistant turns may carry a conflict")
        return self


class Citation(BaseModel):
    """A bibliography entry."""

    id: str = Field(default_factory=new_id)
    source: str
    formatted: str
    in_text: str
    style: CitationStyle = "APA"


class Task(BaseModel):
    """A checklist item the user tracks while writing the report."""

    id: str = Field(default_factory=new_id)
    text: str
    completed: bool = False


class FormattedCitation(BaseModel):
    """Structured output for citation formatting."""

    formatted: str = ""
    in_text: str = Field(default="", alias="inText")

    model_config = {"populate_by_name": True}


class Usage(BaseModel):
    total_token_count: int = 0


class CollaboratorResult(BaseModel):
    """Everything the collaborator produced for one turn."""

    text: str = ""
    sources: list[SourceRef] = Field(default_factory=list)
    conflicts: list[ConflictPayload] = Field(default_factory=list)
    patches: list[PatchRequest] = Field(default_factory=list)
    citations: list[str] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage)
