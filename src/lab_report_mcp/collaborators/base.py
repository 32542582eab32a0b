"""Interface every AI collaborator implements."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from ..models.report import CollaboratorResult, FormattedCitation, Turn
from ..prompts.report import CONFLICT_TURN_PLACEHOLDER, EMPTY_TURN_PLACEHOLDER
from ..types import CitationStyle, Locale


@dataclass
class CollaboratorRequest:
    """One outbound turn: the report, bounded history, and the new message."""

    document_text: str
    new_message: str
    history: list[Turn] = field(default_factory=list)
    locale: Locale = "en"


@runtime_checkable
class AICollaborator(Protocol):
    """Interface that all AI providers must implement."""

    name: str

    async def send_turn(self, request: CollaboratorRequest) -> CollaboratorResult:
        """Send one conversation turn and return the structured result."""
        ...

    async def format_citation(self, source: str, style: CitationStyle) -> FormattedCitation:
        """Format *source* as a bibliography entry in *style*."""
        ...


def history_text(turn: Turn) -> str:
    """Text used for *turn* when replaying history to a provider."""
    if turn.text:
        return turn.text
    if turn.conflict is not None:
        return CONFLICT_TURN_PLACEHOLDER.format(description=turn.conflict.description)
    return EMPTY_TURN_PLACEHOLDER
