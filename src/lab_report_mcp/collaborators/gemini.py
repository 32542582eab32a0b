"""Gemini collaborator — google-genai with search grounding and function tools."""

from __future__ import annotations

import logging

from google.genai import types

from ..client import GeminiClient
from ..config import get_config
from ..models.report import (
    CollaboratorResult,
    FormattedCitation,
    SourceRef,
    Usage,
)
from ..prompts.report import (
    CITATION_PROMPT,
    LOCALE_NOTES,
    REPORT_SYSTEM,
    TOOL_SCHEMAS,
    TURN_PROMPT,
)
from ..types import CitationStyle
from .base import CollaboratorRequest, history_text
from .tool_calls import ToolCallBatch

logger = logging.getLogger(__name__)


def _function_declarations() -> list[types.FunctionDeclaration]:
    return [
        types.FunctionDeclaration(
            name=name,
            description=schema["description"],
            parameters_json_schema=schema["parameters"],
        )
        for name, schema in TOOL_SCHEMAS.items()
    ]


def build_contents(request: CollaboratorRequest) -> list[types.Content]:
    """Render bounded history plus the augmented prompt as Gemini contents."""
    contents = [
        types.Content(
            role="model" if turn.role == "assistant" else "user",
            parts=[types.Part(text=history_text(turn))],
        )
        for turn in request.history
    ]
    prompt = TURN_PROMPT.format(
        locale_note=LOCALE_NOTES.get(request.locale, ""),
        document_text=request.document_text,
        message=request.new_message,
    )
    contents.append(types.Content(role="user", parts=[types.Part(text=prompt)]))
    return contents


def _grounding_sources(response: types.GenerateContentResponse) -> list[SourceRef]:
    if not response.candidates:
        return []
    metadata = response.candidates[0].grounding_metadata
    if metadata is None or not metadata.grounding_chunks:
        return []
    sources: list[SourceRef] = []
    for chunk in metadata.grounding_chunks:
        web = chunk.web
        if web is not None and web.uri:
            sources.append(SourceRef(uri=web.uri, title=web.title))
    return sources


def _response_text(response: types.GenerateContentResponse) -> str:
    """Visible text parts only — thinking and function-call parts are dropped."""
    parts = response.candidates[0].content.parts if response.candidates else None
    if not parts:
        return ""
    texts = [p.text for p in parts if p.text and not getattr(p, "thought", False)]
    return "\n".join(texts).strip()


class GeminiCollaborator:
    """Collaborator backed by Gemini."""

    name: str = "gemini"

    def __init__(self, model: str | None = None) -> None:
        self.model = model

    async def send_turn(self, request: CollaboratorRequest) -> CollaboratorResult:
        config = types.GenerateContentConfig(
            system_instruction=REPORT_SYSTEM,
            tools=[
                types.Tool(google_search=types.GoogleSearch()),
                types.Tool(function_declarations=_function_declarations()),
            ],
            automatic_function_calling=types.AutomaticFunctionCallingConfig(disable=True),
        )
        response = await GeminiClient.generate_content(
            build_contents(request),
            config=config,
            model=self.model or get_config().model_for("gemini"),
        )
        return self.parse_response(response)

    def parse_response(self, response: types.GenerateContentResponse) -> CollaboratorResult:
        batch = ToolCallBatch().extend(
            (call.name, call.args) for call in (response.function_calls or [])
        )
        text = _response_text(response)

        usage = response.usage_metadata
        total_tokens = (usage.total_token_count or 0) if usage is not None else 0
        logger.info(
            "Gemini turn: %d chars, %d patch(es), %d conflict(s), %d citation(s), %d dropped",
            len(text), len(batch.patches), len(batch.conflicts), len(batch.citations), batch.dropped,
        )
        return CollaboratorResult(
            text=text,
            sources=_grounding_sources(response),
            conflicts=batch.conflicts,
            patches=batch.patches,
            citations=batch.citations,
            usage=Usage(total_token_count=total_tokens),
        )

    async def format_citation(self, source: str, style: CitationStyle) -> FormattedCitation:
        return await GeminiClient.generate_structured(
            CITATION_PROMPT.format(source=source, style=style),
            schema=FormattedCitation,
            model=get_config().citation_model,
        )
