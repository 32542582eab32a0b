"""Infrastructure tools — usage monitor and runtime configuration."""

from __future__ import annotations

from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..config import get_config, update_config
from ..errors import make_tool_error
from ..runtime import get_runtime, switch_provider
from ..tracing import trace
from ..types import Locale, Provider

infra_server = FastMCP("infra")
_SENSITIVE_CONFIG_FIELDS = {
    "gemini_api_key",
    "openai_api_key",
    "openrouter_api_key",
    "avalai_api_key",
}


def _redacted_config() -> dict:
    """Return runtime config with secret-bearing fields removed."""
    return get_config().model_dump(exclude=_SENSITIVE_CONFIG_FIELDS)


@infra_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
async def infra_usage() -> dict:
    """Report request rate and token usage against the per-minute and per-day limits."""
    return get_runtime().orchestrator.usage.snapshot().model_dump()


@infra_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="infra_configure", span_type="TOOL")
async def infra_configure(
    provider: Provider | None = None,
    model: Annotated[str | None, Field(description="Model ID override for the active provider")] = None,
    locale: Locale | None = None,
    history_turns: Annotated[int | None, Field(ge=1, le=100, description="Turns of history sent per request")] = None,
    request_timeout_seconds: Annotated[float | None, Field(gt=0, le=600, description="Collaborator timeout")] = None,
) -> dict:
    """Reconfigure the server at runtime — provider, model, locale, history window, or timeout.

    Changes take effect for the next chat turn.

    Returns:
        Dict with current_config (API keys redacted).
    """
    try:
        overrides: dict[str, object] = {
            "provider": provider,
            "default_model": model,
            "locale": locale,
            "history_turns": history_turns,
            "request_timeout_seconds": request_timeout_seconds,
        }
        if any(v is not None for v in overrides.values()):
            cfg = update_config(**overrides)
            runtime = get_runtime()
            if provider is not None:
                switch_provider(cfg.provider)
            if locale is not None:
                runtime.session.state.locale = cfg.locale
            runtime.orchestrator.history_turns = cfg.history_turns
            runtime.orchestrator.timeout_seconds = cfg.request_timeout_seconds
    except Exception as exc:
        return make_tool_error(exc)
    return {"current_config": _redacted_config()}
