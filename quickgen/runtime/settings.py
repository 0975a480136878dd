"""Service configuration loaded from QUICKGEN_* environment variables."""

from __future__ import annotations

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are an assistant that builds single-file HTML pages from the user's description.\n"
    "Reply in markdown and put the complete page in one code block that starts with ```html "
    "and ends with ```.\n"
    "Model: {{ model_name }}. Date: {{ date }}."
)


class GenerationSettings(BaseModel):
    """What the stream aggregator needs from configuration."""

    endpoint: str
    api_key: SecretStr | None = None
    model: str = Field(min_length=1)
    temperature: float | None = None


class QuickGenSettings(BaseSettings):
    """quickgen runtime settings.

    All fields are read from environment variables with the ``QUICKGEN_``
    prefix.  For example, ``QUICKGEN_LOG_LEVEL=DEBUG`` maps to ``log_level``.
    """

    model_config = SettingsConfigDict(
        env_prefix="QUICKGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"
    log_format: str | None = None
    """loguru format string; the built-in format is used when unset."""

    quiet_loggers: list[str] = ["uvicorn.access", "httpx", "httpcore", "sse_starlette"]
    """stdlib loggers held at WARNING.  Env value is a JSON list."""

    # -- Data storage ----------------------------------------------------------
    data_root: str = "./data"
    """Root directory for workspace records."""

    data_prefix: str | None = None
    """Optional namespace prefix inserted into all data paths.

    When set, all paths become ``{data_root}/{data_prefix}/workspaces/...``.
    """

    # -- Remote text generation ------------------------------------------------
    api_endpoint: str = "https://api.openai.com/v1"
    api_key: SecretStr | None = None
    model: str = "gpt-3.5-turbo"
    temperature: float = 0.7
    request_timeout: float = 60.0
    """Upper bound in seconds for a whole generation request."""

    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    """Jinja2 template; ``model_name`` and ``date`` are available."""

    # -- Server ----------------------------------------------------------------
    host: str = "127.0.0.1"
    port: int = 8000
    graceful_shutdown_timeout: int = 120
    """Seconds to wait for active generations to finish during shutdown."""

    # -- Helpers ---------------------------------------------------------------

    def generation_settings(self) -> GenerationSettings:
        return GenerationSettings(
            endpoint=self.api_endpoint,
            api_key=self.api_key,
            model=self.model,
            temperature=self.temperature,
        )


def get_settings() -> QuickGenSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call, then returns
    the same object.  Call ``_get_settings_cached.cache_clear()`` in tests to force a
    re-read after overriding env vars.
    """
    return _get_settings_cached()


def _get_settings_cached() -> QuickGenSettings:
    """Inner function wrapped by lru_cache (allows type-safe cache_clear)."""
    return QuickGenSettings()


# Apply lru_cache at runtime so the function is only called once.
from functools import lru_cache  # noqa: E402

_get_settings_cached = lru_cache(maxsize=1)(_get_settings_cached)
