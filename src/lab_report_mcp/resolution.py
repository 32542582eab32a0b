"""Compile per-conflict resolution choices into one instruction manifest."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

from .conflicts import ConflictRegistry
from .models.report import Conflict
from .prompts.report import (
    RESOLUTION_COMBINE,
    RESOLUTION_FOOTER,
    RESOLUTION_HEADER,
    RESOLUTION_KEEP,
    RESOLUTION_UPDATE,
)
from .types import ResolutionStrategy

logger = logging.getLogger(__name__)

_TEMPLATES: dict[str, str] = {
    "kept_existing": RESOLUTION_KEEP,
    "updated_new": RESOLUTION_UPDATE,
    "combined": RESOLUTION_COMBINE,
}


@dataclass(frozen=True)
class ManifestEntry:
    turn_id: str
    strategy: ResolutionStrategy
    instruction: str


@dataclass
class ResolutionManifest:
    """The outbound instruction plus the conflicts it covers."""

    text: str = ""
    entries: list[ManifestEntry] = field(default_factory=list)

    @property
    def pending_ids(self) -> list[str]:
        """Conflicts whose resolution still needs a document edit."""
        return [e.turn_id for e in self.entries if e.strategy != "kept_existing"]

    @property
    def requires_edits(self) -> bool:
        return bool(self.pending_ids)


def render_instruction(index: int, strategy: ResolutionStrategy, conflict: Conflict) -> str:
    return _TEMPLATES[strategy].format(
        index=index,
        description=conflict.description,
        existing_info=conflict.existing_info,
        new_info=conflict.new_info,
    )


def compile_resolutions(
    registry: ConflictRegistry,
    resolutions: Mapping[str, ResolutionStrategy],
) -> ResolutionManifest:
    """Mark the chosen conflicts resolved and build the manifest text.

    Only ids that are currently unresolved are compiled; stale, unknown, or
    already-resolved ids are dropped. ``kept_existing`` needs no edit and is
    committed straight away.
    """
    snapshot = {t.id: t for t in registry.unresolved()}
    entries: list[ManifestEntry] = []

    for turn_id, strategy in resolutions.items():
        turn = snapshot.get(turn_id)
        if turn is None or turn.conflict is None:
            logger.debug("Skipping stale resolution for %s", turn_id)
            continue
        instruction = render_instruction(len(entries) + 1, strategy, turn.conflict)
        registry.mark_resolved(turn_id, strategy)
        entries.append(ManifestEntry(turn_id=turn_id, strategy=strategy, instruction=instruction))

    kept = [e.turn_id for e in entries if e.strategy == "kept_existing"]
    if kept:
        registry.mark_applied(kept, applied=True)

    if not entries:
        return ResolutionManifest()

    edit_count = sum(1 for e in entries if e.strategy != "kept_existing")
    parts = [RESOLUTION_HEADER.format(count=len(entries), edit_count=edit_count)]
    parts.extend(e.instruction for e in entries)
    parts.append(RESOLUTION_FOOTER)
    logger.info("Compiled resolution manifest: %d entries, %d edit(s)", len(entries), edit_count)
    return ResolutionManifest(text="\n\n".join(parts), entries=entries)
