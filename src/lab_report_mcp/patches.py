"""Exact-match text patching against the report buffer.

Patches run strictly in order, each against the output of the previous
one, and only the first occurrence of ``search_text`` is replaced. A
patch whose search text is missing (or empty) is skipped and counted,
never raised: collaborator-supplied search text is not guaranteed to
match the document.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from .models.report import PatchRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedPatch:
    """A patch that did not change the buffer."""

    index: int
    reason: str  # "empty_search_text" | "not_found" | "no_change"


@dataclass
class PatchOutcome:
    """Result of applying a patch batch."""

    content: str
    applied: int
    total: int
    skipped: list[SkippedPatch] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.applied > 0

    def summary(self) -> str:
        return f"{self.applied} of {self.total} patches applied"


def apply_patches(content: str, patches: Sequence[PatchRequest]) -> PatchOutcome:
    """Apply *patches* sequentially to *content* and return the new buffer.

    Pure function: the caller commits ``outcome.content`` once, and only
    when ``outcome.applied > 0``.
    """
    buffer = content
    applied = 0
    skipped: list[SkippedPatch] = []

    for index, patch in enumerate(patches):
        if not patch.search_text:
            skipped.append(SkippedPatch(index, "empty_search_text"))
            continue
        if patch.search_text not in buffer:
            skipped.append(SkippedPatch(index, "not_found"))
            continue
        updated = buffer.replace(patch.search_text, patch.replacement_text, 1)
        if updated == buffer:
            skipped.append(SkippedPatch(index, "no_change"))
            continue
        buffer = updated
        applied += 1

    if skipped:
        logger.warning(
            "Skipped %d of %d patch(es): %s",
            len(skipped), len(patches), ", ".join(f"#{s.index}={s.reason}" for s in skipped),
        )
    return PatchOutcome(content=buffer, applied=applied, total=len(patches), skipped=skipped)
