"""OpenAI-compatible collaborators (OpenAI, OpenRouter, AvalAI) via httpx."""

from __future__ import annotations

import json
import logging

import httpx

from ..config import get_config
from ..errors import CollaboratorError
from ..models.report import CollaboratorResult, FormattedCitation, Usage
from ..prompts.report import CITATION_PROMPT, LOCALE_NOTES, REPORT_SYSTEM, TOOL_SCHEMAS, TURN_PROMPT
from ..retry import with_retry
from ..types import CitationStyle
from .base import CollaboratorRequest, history_text
from .tool_calls import ToolCallBatch

logger = logging.getLogger(__name__)

ENDPOINTS: dict[str, str] = {
    "openai": "https://api.openai.com/v1/chat/completions",
    "openrouter": "https://openrouter.ai/api/v1/chat/completions",
    "avalai": "https://api.avalai.ir/v1/chat/completions",
}

TOOLS = [
    {
        "type": "function",
        "function": {
            "name": name,
            "description": schema["description"],
            "parameters": schema["parameters"],
        },
    }
    for name, schema in TOOL_SCHEMAS.items()
]


def build_messages(request: CollaboratorRequest) -> list[dict]:
    messages: list[dict] = [{"role": "system", "content": REPORT_SYSTEM}]
    messages.extend(
        {"role": turn.role, "content": history_text(turn)} for turn in request.history
    )
    messages.append({
        "role": "user",
        "content": TURN_PROMPT.format(
            locale_note=LOCALE_NOTES.get(request.locale, ""),
            document_text=request.document_text,
            message=request.new_message,
        ),
    })
    return messages


def _error_detail(response: httpx.Response) -> str:
    try:
        detail = response.json().get("error", {}).get("message", "")
    except (ValueError, AttributeError):
        detail = ""
    return f"HTTP {response.status_code} {detail}".strip()


class OpenAICompatCollaborator:
    """Collaborator speaking the Chat Completions tool-call protocol."""

    def __init__(
        self,
        provider: str,
        api_key: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if provider not in ENDPOINTS:
            raise ValueError(f"Unknown OpenAI-compatible provider '{provider}'")
        cfg = get_config()
        self.name = provider
        self.url = ENDPOINTS[provider]
        self.api_key = api_key or cfg.api_key_for(provider)
        self.model = model or cfg.model_for(provider)
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        if self.name == "openrouter":
            headers["X-Title"] = "LabReportAI"
        return headers

    async def _post(self, payload: dict) -> dict:
        if not self.api_key:
            raise CollaboratorError(f"API key is missing for {self.name}")

        async def _once() -> dict:
            async with httpx.AsyncClient(
                timeout=get_config().request_timeout_seconds, transport=self._transport,
            ) as client:
                response = await client.post(self.url, headers=self._headers(), json=payload)
            if response.is_error:
                raise CollaboratorError(
                    f"{self.name} request failed: {_error_detail(response)}",
                    is_quota=response.status_code == 429,
                )
            return response.json()

        return await with_retry(_once, label=self.name)

    async def send_turn(self, request: CollaboratorRequest) -> CollaboratorResult:
        data = await self._post({
            "model": self.model,
            "messages": build_messages(request),
            "tools": TOOLS,
            "tool_choice": "auto",
            "stream": False,
        })
        return self.parse_response(data)

    def parse_response(self, data: dict) -> CollaboratorResult:
        try:
            message = data["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as exc:
            raise CollaboratorError(f"{self.name} returned an unexpected response shape") from exc

        batch = ToolCallBatch().extend(
            (call.get("function", {}).get("name"), call.get("function", {}).get("arguments"))
            for call in message.get("tool_calls") or []
        )
        text = (message.get("content") or "").strip()
        total_tokens = (data.get("usage") or {}).get("total_tokens") or 0
        logger.info(
            "%s turn: %d chars, %d patch(es), %d conflict(s), %d dropped",
            self.name, len(text), len(batch.patches), len(batch.conflicts), batch.dropped,
        )
        return CollaboratorResult(
            text=text,
            conflicts=batch.conflicts,
            patches=batch.patches,
            citations=batch.citations,
            usage=Usage(total_token_count=total_tokens),
        )

    async def format_citation(self, source: str, style: CitationStyle) -> FormattedCitation:
        data = await self._post({
            "model": self.model,
            "messages": [
                {"role": "user", "content": CITATION_PROMPT.format(source=source, style=style)},
            ],
            "response_format": {"type": "json_object"},
        })
        try:
            content = data["choices"][0]["message"]["content"] or "{}"
            return FormattedCitation.model_validate(json.loads(content))
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise CollaboratorError(f"{self.name} returned an unreadable citation") from exc
