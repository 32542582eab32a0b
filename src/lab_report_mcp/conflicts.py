"""Conflict lifecycle over the conversation turn list."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .models.report import Conflict, ConflictPayload, ConflictPhase, Turn
from .types import ResolutionStrategy

logger = logging.getLogger(__name__)


class ConflictRegistry:
    """Tracks conflicts embedded in assistant turns.

    Holds a reference to the session's turn list rather than its own
    storage, so ``unresolved()`` is always derived from the conversation.
    Turns are only ever appended; resolving a conflict edits the embedded
    conflict in place.
    """

    def __init__(self, turns: list[Turn]) -> None:
        self._turns = turns

    def add_conflicts(
        self, payloads: Iterable[ConflictPayload], provider: str | None = None,
    ) -> list[Turn]:
        """Append one unresolved assistant turn per conflict."""
        added: list[Turn] = []
        for payload in payloads:
            turn = Turn(
                role="assistant",
                text="",
                conflict=Conflict(**payload.model_dump()),
                provider=provider,
            )
            self._turns.append(turn)
            added.append(turn)
        if added:
            logger.info("Recorded %d new conflict(s)", len(added))
        return added

    def unresolved(self) -> list[Turn]:
        return [t for t in self._turns if t.conflict is not None and not t.conflict.resolved]

    def history(self) -> list[Turn]:
        """Every conflict turn ever raised, resolved or not."""
        return [t for t in self._turns if t.conflict is not None]

    def get(self, turn_id: str) -> Turn | None:
        for turn in self._turns:
            if turn.id == turn_id:
                return turn
        return None

    def mark_resolved(self, turn_id: str, strategy: ResolutionStrategy) -> bool:
        """Record the user's decision. Stale or repeated ids are a silent no-op."""
        turn = self.get(turn_id)
        if turn is None or turn.conflict is None:
            logger.debug("Ignoring resolution for unknown conflict turn %s", turn_id)
            return False
        if turn.conflict.resolved:
            logger.debug("Conflict %s already resolved as %s", turn_id, turn.conflict.resolution)
            return False
        turn.conflict.resolved = True
        turn.conflict.resolution = strategy
        turn.conflict.phase = ConflictPhase.INTENT_RECORDED
        return True

    def mark_applied(self, turn_ids: Sequence[str], applied: bool) -> int:
        """Second commit phase: record whether the document edit landed."""
        phase = ConflictPhase.APPLIED if applied else ConflictPhase.UNAPPLIED
        count = 0
        for turn_id in turn_ids:
            turn = self.get(turn_id)
            if turn is None or turn.conflict is None:
                continue
            if turn.conflict.phase != ConflictPhase.INTENT_RECORDED:
                continue
            turn.conflict.phase = phase
            count += 1
        return count
