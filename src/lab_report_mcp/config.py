"""Server configuration via environment variables."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

VALID_PROVIDERS = {"gemini", "openai", "openrouter", "avalai"}
VALID_LOCALES = {"en", "fa"}

PROVIDER_DEFAULT_MODELS: dict[str, str] = {
    "gemini": "gemini-3-flash-preview",
    "openai": "gpt-4o",
    "openrouter": "anthropic/claude-3.5-sonnet",
    "avalai": "gpt-4o",
}

DEFAULT_STORAGE_KEY = "LAB_REPORT_SESSION_V2"


def _resolve_tracing_enabled(flag_value: str, tracking_uri: str) -> bool:
    """Tracing is on when a tracking URI is set, unless explicitly disabled."""
    if flag_value.lower() == "false":
        return False
    return bool(tracking_uri)


class ServerConfig(BaseModel):
    """Runtime configuration resolved from environment."""

    provider: str = Field(default="gemini")
    gemini_api_key: str = Field(default="")
    openai_api_key: str = Field(default="")
    openrouter_api_key: str = Field(default="")
    avalai_api_key: str = Field(default="")
    default_model: str = Field(default="")
    citation_model: str = Field(default="gemini-3-flash-preview")
    locale: str = Field(default="en")
    history_turns: int = Field(default=15)
    request_timeout_seconds: float = Field(default=60.0)
    retry_max_attempts: int = Field(default=3)
    retry_base_delay: float = Field(default=1.0)
    retry_max_delay: float = Field(default=60.0)
    session_db_path: str = Field(default="")
    storage_key: str = Field(default=DEFAULT_STORAGE_KEY)
    autosave_interval_seconds: float = Field(default=15.0)
    export_dir: str = Field(default="")
    rpm_limit: int = Field(default=15)
    rpd_limit: int = Field(default=1500)
    tracing_enabled: bool = Field(default=False)
    mlflow_tracking_uri: str = Field(default="")
    mlflow_experiment_name: str = Field(default="lab-report-mcp")

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, value: str) -> str:
        provider = value.strip().lower()
        if provider not in VALID_PROVIDERS:
            allowed = ", ".join(sorted(VALID_PROVIDERS))
            raise ValueError(f"Invalid provider '{value}'. Allowed: {allowed}")
        return provider

    @field_validator("locale")
    @classmethod
    def validate_locale(cls, value: str) -> str:
        locale = value.strip().lower()
        if locale not in VALID_LOCALES:
            raise ValueError(f"Invalid locale '{value}'. Allowed: en, fa")
        return locale

    @field_validator("history_turns", "retry_max_attempts", "rpm_limit", "rpd_limit")
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Configuration values must be >= 1")
        return value

    @field_validator(
        "request_timeout_seconds",
        "retry_base_delay",
        "retry_max_delay",
        "autosave_interval_seconds",
    )
    @classmethod
    def validate_positive_floats(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Timeouts and delays must be > 0")
        return value

    def model_for(self, provider: str | None = None) -> str:
        """Resolve the model ID for *provider* (explicit override wins)."""
        if self.default_model:
            return self.default_model
        return PROVIDER_DEFAULT_MODELS[provider or self.provider]

    def api_key_for(self, provider: str | None = None) -> str:
        """Return the API key configured for *provider*."""
        return getattr(self, f"{provider or self.provider}_api_key")

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build config from environment variables."""
        data_default = str(Path.home() / ".local" / "share" / "lab-report-mcp")
        return cls(
            provider=os.getenv("LAB_REPORT_PROVIDER", "gemini"),
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY", ""),
            avalai_api_key=os.getenv("AVALAI_API_KEY", ""),
            default_model=os.getenv("LAB_REPORT_MODEL", ""),
            citation_model=os.getenv("LAB_REPORT_CITATION_MODEL", "gemini-3-flash-preview"),
            locale=os.getenv("LAB_REPORT_LOCALE", "en"),
            history_turns=int(os.getenv("LAB_REPORT_HISTORY_TURNS", "15")),
            request_timeout_seconds=float(os.getenv("LAB_REPORT_REQUEST_TIMEOUT", "60")),
            retry_max_attempts=int(os.getenv("LAB_REPORT_RETRY_MAX_ATTEMPTS", "3")),
            retry_base_delay=float(os.getenv("LAB_REPORT_RETRY_BASE_DELAY", "1.0")),
            retry_max_delay=float(os.getenv("LAB_REPORT_RETRY_MAX_DELAY", "60.0")),
            session_db_path=os.getenv(
                "LAB_REPORT_SESSION_DB", str(Path(data_default) / "session.db"),
            ),
            storage_key=os.getenv("LAB_REPORT_STORAGE_KEY", DEFAULT_STORAGE_KEY),
            autosave_interval_seconds=float(os.getenv("LAB_REPORT_AUTOSAVE_INTERVAL", "15")),
            export_dir=os.getenv("LAB_REPORT_EXPORT_DIR", str(Path(data_default) / "exports")),
            rpm_limit=int(os.getenv("LAB_REPORT_RPM_LIMIT", "15")),
            rpd_limit=int(os.getenv("LAB_REPORT_RPD_LIMIT", "1500")),
            tracing_enabled=_resolve_tracing_enabled(
                os.getenv("LAB_REPORT_TRACING_ENABLED", ""),
                os.getenv("MLFLOW_TRACKING_URI", ""),
            ),
            mlflow_tracking_uri=os.getenv("MLFLOW_TRACKING_URI", ""),
            mlflow_experiment_name=os.getenv("MLFLOW_EXPERIMENT_NAME", "lab-report-mcp"),
        )


_config: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Return the global config singleton, creating it on first access."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
    return _config


def update_config(**overrides: object) -> ServerConfig:
    """Patch the live config (used by ``infra_configure`` tool)."""
    global _config
    cfg = get_config()
    data = cfg.model_dump()
    data.update({k: v for k, v in overrides.items() if v is not None})
    _config = ServerConfig(**data)
    return _config
