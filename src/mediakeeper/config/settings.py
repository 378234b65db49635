"""Application settings loaded from environment variables.

Hey future me - ALL configuration lives here. Nested sections map to env vars with a
double underscore, e.g. ``SCHEDULER__POLL_INTERVAL_SECONDS=30`` or
``PROWLARR__API_KEY=...``. Never read os.environ anywhere else!
"""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite+aiosqlite:///./data/mediakeeper.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(default=False, description="Log every SQL statement")
    pool_pre_ping: bool = True
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout: int = Field(default=30, ge=1)
    pool_recycle: int = Field(default=3600, ge=60)
    auto_create_tables: bool = Field(
        default=True, description="Create missing tables on startup"
    )


class ObservabilitySettings(BaseModel):
    """Logging and event reporting settings."""

    log_json_format: bool = Field(
        default=False, description="Emit JSON logs (recommended for production)"
    )
    event_history_size: int = Field(
        default=200, ge=1, description="How many task/decision events to keep in memory"
    )
    shutdown_timeout: float = Field(default=10.0, ge=0)


class SchedulerSettings(BaseModel):
    """Task scheduler settings."""

    enabled: bool = Field(default=True, description="Start the polling loop on startup")
    poll_interval_seconds: int = Field(
        default=60, ge=1, description="How often the polling loop calls tick()"
    )
    stuck_threshold_minutes: int = Field(
        default=120,
        ge=1,
        description="A run longer than this (and longer than its interval) is reported as stuck",
    )


class ProwlarrSettings(BaseModel):
    """Prowlarr indexer settings."""

    url: str = Field(default="http://localhost:9696")
    api_key: str = Field(default="")
    timeout: float = Field(default=30.0, gt=0)
    search_limit: int = Field(default=100, ge=1)
    # Newznab category ids per media type
    movie_categories: list[int] = Field(default_factory=lambda: [2000])
    tv_categories: list[int] = Field(default_factory=lambda: [5000])
    music_categories: list[int] = Field(default_factory=lambda: [3000])
    book_categories: list[int] = Field(default_factory=lambda: [7000])

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.api_key)


class SabnzbdSettings(BaseModel):
    """SABnzbd download client settings."""

    url: str = Field(default="http://localhost:8080")
    api_key: str = Field(default="")
    category: str | None = Field(default=None, description="SABnzbd category for grabs")
    timeout: float = Field(default=10.0, gt=0)
    history_limit: int = Field(default=50, ge=1)

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.api_key)


class Settings(BaseSettings):
    """Root settings object."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = "mediakeeper"
    log_level: str = Field(default="INFO")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    prowlarr: ProwlarrSettings = Field(default_factory=ProwlarrSettings)
    sabnzbd: SabnzbdSettings = Field(default_factory=SabnzbdSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level

    def _get_sqlite_db_path(self) -> Path | None:
        """Return the SQLite file path, or None for other backends / in-memory DBs."""
        url = self.database.url
        if "sqlite" not in url or ":memory:" in url:
            return None
        _, _, path = url.partition(":///")
        return Path(path) if path else None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
