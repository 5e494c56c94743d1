"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from animestream.domain.entities.extraction import Provider

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _normalize_path(value: Any) -> Path:
    """Normalize a path-like value without filesystem side-effects."""
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class ExtractionConfig(BaseModel):
    """Timing knobs of the extraction race (YAML section: extraction.*).

    Defaults are short enough for interactive playback while leaving a
    typical player time to issue its first media request.
    """

    settle_delay_seconds: float = Field(
        default=0.5,
        description="Pause after navigation before the race starts.",
    )
    network_timeout_seconds: float = Field(
        default=3.0,
        description="Deadline of the network interception strategy.",
    )
    dom_timeout_seconds: float = Field(
        default=2.0,
        description="Deadline of the DOM inspection strategy.",
    )
    hook_timeout_seconds: float = Field(
        default=2.0,
        description="Deadline of the script-API hooking strategy.",
    )
    navigation_timeout_seconds: float = Field(
        default=15.0,
        description="Page load timeout of the embed document.",
    )
    batch_delay_seconds: float = Field(
        default=0.5,
        description="Pause between items of a batch extraction.",
    )

    @field_validator(
        "network_timeout_seconds",
        "dom_timeout_seconds",
        "hook_timeout_seconds",
        "navigation_timeout_seconds",
    )
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be > 0")
        return v

    @field_validator("settle_delay_seconds", "batch_delay_seconds")
    @classmethod
    def _validate_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("delays must be >= 0")
        return v


class SourcesConfig(BaseModel):
    """Provider classes used to rank mirrors (YAML section: sources.*).

    The first fast provider is the preferred one for per-episode choices.
    """

    fast_providers: list[Provider] = Field(
        default=[Provider.VIDMOLY, Provider.SENDVID, Provider.VUDEO],
        description="Providers with uniformly low latency, best first.",
    )
    slow_providers: list[Provider] = Field(
        default=[Provider.SIBNET],
        description="Providers known to rate-limit or serve at low bitrate.",
    )

    @model_validator(mode="after")
    def _disjoint(self) -> "SourcesConfig":
        overlap = set(self.fast_providers) & set(self.slow_providers)
        if overlap:
            names = ", ".join(sorted(p.value for p in overlap))
            raise ValueError(f"providers cannot be both fast and slow: {names}")
        return self


class EpisodeCacheConfig(BaseModel):
    """Adjacent episode cache (YAML section: episode_cache.*)."""

    persist: bool = Field(
        default=False,
        description="Persist extracted URLs to the disk cache across restarts.",
    )
    warm_enabled: bool = Field(
        default=True,
        description="Pre-extract the previous/next episode after playback.",
    )
    warm_delay_seconds: float = Field(
        default=1.0,
        description="Delay before adjacent warming starts.",
    )
    max_sessions: int = Field(
        default=3,
        description="Max concurrent browsing sessions (foreground + warming).",
    )

    @field_validator("warm_delay_seconds")
    @classmethod
    def _validate_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("warm_delay_seconds must be >= 0")
        return v

    @field_validator("max_sessions")
    @classmethod
    def _validate_sessions(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_sessions must be >= 1")
        return v


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is sectioned (http/playwright/logging/cache/extraction/...).
    - Environment variables are handled by EnvOverrides(BaseSettings) so that
      load.py controls precedence (defaults < YAML < ENV < CLI).
    """

    # General
    app_name: str = Field(default="animestream", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP (YAML section: http.*) - used for HEAD verification of results
    http_timeout_seconds: float = Field(
        default=8.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="HTTP timeout in seconds.",
    )
    http_user_agent: str = Field(
        default="AnimeStream/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests without a host policy.",
    )

    # Playwright (YAML section: playwright.*)
    playwright_headless: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "playwright_headless",
            AliasPath("playwright", "headless"),
        ),
        description="Run Chromium headless.",
    )
    playwright_stealth: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "playwright_stealth",
            AliasPath("playwright", "stealth"),
        ),
        description="Apply playwright-stealth evasions to every session.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description="Log renderer (console/json). If unset, derived from environment.",
    )

    # Cache (YAML section: cache.*)
    cache_dir: Path = Field(
        default=Path("./.cache/animestream"),
        validation_alias=AliasChoices(
            "cache_dir",
            AliasPath("cache", "dir"),
        ),
        description="Disk cache directory.",
    )
    cache_ttl_seconds: int = Field(
        default=6 * 3600,
        validation_alias=AliasChoices(
            "cache_ttl_seconds",
            AliasPath("cache", "ttl_seconds"),
        ),
        description="TTL of persisted entries in seconds.",
    )

    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    episode_cache: EpisodeCacheConfig = Field(default_factory=EpisodeCacheConfig)

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @field_validator("cache_ttl_seconds")
    @classmethod
    def _validate_cache_ttl(cls, v: int) -> int:
        if v < 0:
            raise ValueError("cache_ttl_seconds must be >= 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # console in dev/test, json in prod
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """Dump configuration in the sectioned shape used by config.yaml."""
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "user_agent": self.http_user_agent,
            },
            "playwright": {
                "headless": self.playwright_headless,
                "stealth": self.playwright_stealth,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": {
                "dir": str(self.cache_dir),
                "ttl_seconds": self.cache_ttl_seconds,
            },
            "extraction": self.extraction.model_dump(),
            "sources": self.sources.model_dump(mode="json"),
            "episode_cache": self.episode_cache.model_dump(),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    load.py reads ANIMESTREAM_* variables, keeps the values that were set and
    merges them over YAML/defaults before validating AppConfig.

    Examples:
    - ANIMESTREAM_LOG_LEVEL
    - ANIMESTREAM_PLAYWRIGHT_HEADLESS
    - ANIMESTREAM_NETWORK_TIMEOUT_SECONDS
    - ANIMESTREAM_EPISODE_CACHE_PERSIST
    """

    model_config = SettingsConfigDict(
        env_prefix="ANIMESTREAM_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_user_agent: Optional[str] = None

    playwright_headless: Optional[bool] = None
    playwright_stealth: Optional[bool] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    cache_dir: Optional[Path] = None
    cache_ttl_seconds: Optional[int] = None

    settle_delay_seconds: Optional[float] = None
    network_timeout_seconds: Optional[float] = None
    dom_timeout_seconds: Optional[float] = None
    hook_timeout_seconds: Optional[float] = None
    navigation_timeout_seconds: Optional[float] = None
    batch_delay_seconds: Optional[float] = None

    episode_cache_persist: Optional[bool] = None
    episode_cache_warm_enabled: Optional[bool] = None
    episode_cache_warm_delay_seconds: Optional[float] = None
    episode_cache_max_sessions: Optional[int] = None

    @field_validator("cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """Return only values that were actually provided (non-None)."""
        return self.model_dump(exclude_none=True)
