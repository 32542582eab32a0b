"""Shared Gemini client pool."""

from __future__ import annotations

import logging
import os
from typing import Any

from google import genai
from google.genai import types
from pydantic import BaseModel

from .config import get_config
from .retry import with_retry

logger = logging.getLogger(__name__)


class GeminiClient:
    """Process-wide Gemini client pool (one client per API key)."""

    _clients: dict[str, genai.Client] = {}

    @classmethod
    def get(cls, api_key: str | None = None) -> genai.Client:
        """Return (or create) the shared client for *api_key*."""
        key = api_key or get_config().gemini_api_key or os.getenv("GEMINI_API_KEY", "")
        if not key:
            raise ValueError("No Gemini API key — set GEMINI_API_KEY or pass api_key explicitly")
        if key not in cls._clients:
            cls._clients[key] = genai.Client(api_key=key)
            logger.info("Created Gemini client (key …%s)", key[-4:])
        return cls._clients[key]

    @classmethod
    async def generate_content(
        cls,
        contents: Any,
        *,
        config: types.GenerateContentConfig,
        model: str | None = None,
    ) -> types.GenerateContentResponse:
        """Call ``generate_content`` with retry and return the raw response.

        The raw response is returned (not just text) because callers need the
        function calls, grounding metadata, and usage metadata.
        """
        resolved_model = model or get_config().model_for("gemini")
        client = cls.get()
        return await with_retry(
            lambda: client.aio.models.generate_content(
                model=resolved_model,
                contents=contents,
                config=config,
            ),
            label=f"gemini:{resolved_model}",
        )

    @classmethod
    async def generate_structured(
        cls,
        contents: Any,
        *,
        schema: type[BaseModel],
        model: str | None = None,
    ) -> BaseModel:
        """Generate JSON constrained to *schema* and validate it."""
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_json_schema=schema.model_json_schema(by_alias=True),
        )
        response = await cls.generate_content(contents, config=config, model=model)
        return schema.model_validate_json(response.text or "{}")

    @classmethod
    async def close_all(cls) -> int:
        """Shut down all shared clients. Returns count closed."""
        count = 0
        for client in list(cls._clients.values()):
            try:
                await client.aio.aclose()
            except Exception:
                logger.debug("Async Gemini client close failed", exc_info=True)
            try:
                client.close()
            except Exception:
                logger.debug("Gemini client close failed", exc_info=True)
            count += 1
        cls._clients.clear()
        logger.info("Closed %d Gemini client(s)", count)
        return count
