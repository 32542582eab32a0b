"""Bibliography entries, de-duplicated by source."""

from __future__ import annotations

import logging

from .collaborators.base import AICollaborator
from .models.report import Citation
from .types import CitationStyle

logger = logging.getLogger(__name__)


class CitationLedger:
    """Manages the session's citation list."""

    def __init__(self, citations: list[Citation], collaborator: AICollaborator) -> None:
        self._citations = citations
        self._collaborator = collaborator

    def list(self) -> list[Citation]:
        return list(self._citations)

    def find(self, source: str) -> Citation | None:
        for citation in self._citations:
            if citation.source == source:
                return citation
        return None

    async def add(self, source: str, style: CitationStyle = "APA") -> Citation:
        """Format and store *source*; an existing entry for the same source is returned as is.

        If formatting fails the raw source is stored with a numeric marker.
        """
        existing = self.find(source)
        if existing is not None:
            return existing

        try:
            formatted = await self._collaborator.format_citation(source, style)
            text, marker = formatted.formatted, formatted.in_text
        except Exception as exc:
            logger.warning("Citation formatting failed for %r: %s", source, exc)
            text, marker = "", ""

        # Re-check: another add for the same source may have finished while we awaited.
        existing = self.find(source)
        if existing is not None:
            return existing

        citation = Citation(
            source=source,
            formatted=text or source,
            in_text=marker or f"[{len(self._citations) + 1}]",
            style=style,
        )
        self._citations.append(citation)
        return citation

    def delete(self, citation_id: str) -> bool:
        for i, citation in enumerate(self._citations):
            if citation.id == citation_id:
                del self._citations[i]
                return True
        return False
