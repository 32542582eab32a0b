"""AI collaborator implementations, selected by configuration."""

from __future__ import annotations

from ..config import get_config
from .base import AICollaborator, CollaboratorRequest
from .gemini import GeminiCollaborator
from .openai_compat import OpenAICompatCollaborator

__all__ = [
    "AICollaborator",
    "CollaboratorRequest",
    "GeminiCollaborator",
    "OpenAICompatCollaborator",
    "get_collaborator",
]


def get_collaborator(provider: str | None = None) -> AICollaborator:
    """Build the collaborator for *provider* (defaults to the configured one)."""
    provider = provider or get_config().provider
    if provider == "gemini":
        return GeminiCollaborator()
    return OpenAICompatCollaborator(provider)
