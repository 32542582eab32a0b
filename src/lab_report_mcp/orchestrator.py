"""Conversation orchestrator — drives one collaborator turn at a time.

Per turn: append the user turn, call the collaborator (bounded by a
timeout), apply returned patches to the latest document content under a
mutation lock, record new conflicts, then append the assistant turns.
Collaborator failures become a single chat-visible error turn; the
orchestrator always returns to ``idle``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

from .citations import CitationLedger
from .collaborators.base import AICollaborator, CollaboratorRequest
from .config import get_config
from .errors import SessionBusyError, make_tool_error, user_message
from .models.report import Citation, CollaboratorResult, ReportDocument, Turn
from .patches import PatchOutcome, apply_patches
from .prompts.report import PATCH_ACK
from .resolution import ResolutionManifest, compile_resolutions
from .session import ReportSession
from .types import ResolutionStrategy
from .usage import UsageTracker

logger = logging.getLogger(__name__)


class OrchestratorState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"
    APPLYING = "applying"
    ERROR = "error"


@dataclass
class TurnOutcome:
    """What one submit did to the session."""

    user_turn: Turn
    new_turns: list[Turn] = field(default_factory=list)
    patches: PatchOutcome | None = None
    error: dict | None = None
    citations_added: list[Citation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def applied(self) -> int:
        return self.patches.applied if self.patches is not None else 0


class ConversationOrchestrator:
    """Owns all writes to the session's document and turn list."""

    def __init__(
        self,
        session: ReportSession,
        collaborator: AICollaborator,
        usage: UsageTracker | None = None,
        history_turns: int | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        cfg = get_config()
        self.session = session
        self.collaborator = collaborator
        self.usage = usage or UsageTracker(rpm_limit=cfg.rpm_limit, rpd_limit=cfg.rpd_limit)
        self.history_turns = history_turns or cfg.history_turns
        self.timeout_seconds = timeout_seconds or cfg.request_timeout_seconds
        self.state = OrchestratorState.IDLE
        self._mutation_lock = asyncio.Lock()
        self._in_flight = 0

    @property
    def busy(self) -> bool:
        return self._in_flight > 0

    @property
    def citations(self) -> CitationLedger:
        return CitationLedger(self.session.citations, self.collaborator)

    def _history_before(self, user_turn: Turn) -> list[Turn]:
        turns = self.session.turns
        end = turns.index(user_turn) if user_turn in turns else len(turns)
        return list(turns[max(0, end - self.history_turns):end])

    async def submit(self, text: str) -> TurnOutcome:
        """Send *text* to the collaborator and fold the result into the session."""
        document = self.session.require_document()
        user_turn = Turn(role="user", text=text)
        self.session.turns.append(user_turn)
        outcome = TurnOutcome(user_turn=user_turn)

        self._in_flight += 1
        self.state = OrchestratorState.SENDING
        try:
            request = CollaboratorRequest(
                document_text=document.content,
                new_message=text,
                history=self._history_before(user_turn),
                locale=self.session.state.locale,
            )
            try:
                result = await asyncio.wait_for(
                    self.collaborator.send_turn(request), timeout=self.timeout_seconds,
                )
            except Exception as exc:
                self.state = OrchestratorState.ERROR
                logger.warning("Collaborator %s failed: %s", self.collaborator.name, exc)
                self.usage.record(0)
                error_turn = Turn(
                    role="assistant",
                    text=user_message(exc, self.session.state.locale),
                    provider=self.collaborator.name,
                )
                self.session.turns.append(error_turn)
                outcome.new_turns.append(error_turn)
                outcome.error = make_tool_error(exc, message=error_turn.text)
                return outcome

            self.usage.record(result.usage.total_token_count)
            async with self._mutation_lock:
                if self.session.document is not document:
                    logger.warning("Report was replaced mid-turn; discarding the reply")
                    return outcome
                self.state = OrchestratorState.APPLYING
                outcome.patches = self._apply(result, document)
                outcome.new_turns = self._append_result_turns(result, outcome.patches)
        finally:
            self._in_flight -= 1
            self.state = OrchestratorState.SENDING if self._in_flight else OrchestratorState.IDLE

        for source in result.citations:
            citation = await self.citations.add(source, "APA")
            outcome.citations_added.append(citation)
        return outcome

    def _apply(self, result: CollaboratorResult, document: ReportDocument) -> PatchOutcome | None:
        if not result.patches:
            return None
        # Re-read: an earlier submit may have committed while this one awaited.
        current = document.content
        patch_outcome = apply_patches(current, result.patches)
        if patch_outcome.changed:
            self.session.commit_content(patch_outcome.content)
        logger.info("Patch batch: %s", patch_outcome.summary())
        return patch_outcome

    def _append_result_turns(
        self, result: CollaboratorResult, patches: PatchOutcome | None,
    ) -> list[Turn]:
        text = result.text
        if not text and patches is not None and patches.changed:
            text = PATCH_ACK.get(self.session.state.locale, PATCH_ACK["en"])

        new_turns: list[Turn] = []
        if text:
            narrative = Turn(
                role="assistant",
                text=text,
                sources=result.sources,
                provider=self.collaborator.name,
            )
            self.session.turns.append(narrative)
            new_turns.append(narrative)
        new_turns.extend(
            self.session.conflicts.add_conflicts(result.conflicts, provider=self.collaborator.name)
        )
        return new_turns

    async def resolve_conflicts(
        self, resolutions: Mapping[str, ResolutionStrategy],
    ) -> tuple[ResolutionManifest, TurnOutcome | None]:
        """Record the user's decisions and ask the collaborator to carry them out.

        Returns the compiled manifest and the outcome of submitting it (None
        when no requested id was still open). Conflicts awaiting an edit move
        to ``applied`` if that submit changed the document, ``unapplied``
        otherwise.
        """
        registry = self.session.conflicts
        manifest = compile_resolutions(registry, resolutions)
        if not manifest.entries:
            return manifest, None

        outcome = await self.submit(manifest.text)
        if manifest.requires_edits:
            registry.mark_applied(manifest.pending_ids, applied=outcome.ok and outcome.applied > 0)
        return manifest, outcome

    def edit_content(self, content: str) -> None:
        """Direct user edit of the document text."""
        if self.busy:
            raise SessionBusyError("A conversation turn is in progress — retry the edit afterwards")
        self.session.commit_content(content)
