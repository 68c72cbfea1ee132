"""
Typed settings for the WNBA ingestion service.

Uses Pydantic Settings to load configuration from environment variables
with validation and type safety. The settings object is built once by the
CLI and handed to each component at construction time.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import Category
from .validate_env import validate_env

WEHOOP_RELEASES_URL = "https://github.com/sportsdataverse/wehoop-wnba-data/releases/download"


def _default_paths() -> dict[Category, str]:
    # One file per season; {season} is filled in by the fetcher.
    return {
        Category.TEAMS: "espn_wnba_team_boxscores/team_box_{season}.csv",
        Category.SCHEDULE: "espn_wnba_schedules/wnba_schedule_{season}.csv",
        Category.PLAY_BY_PLAY: "espn_wnba_pbp/play_by_play_{season}.csv",
        Category.BOX_SCORE: "espn_wnba_player_boxscores/player_box_{season}.csv",
    }


class ProviderConfig(BaseModel):
    base_url: str = Field(default=WEHOOP_RELEASES_URL)
    seasons: list[int] = Field(default_factory=lambda: [2024])
    paths: dict[Category, str] = Field(default_factory=_default_paths)
    request_timeout_seconds: float = 30.0
    # Pages of a single category are fetched in parallel, never across categories
    max_concurrency: int = Field(default=4, ge=1)
    # 1 means a single attempt; only timeouts, 429 and 5xx are retried
    fetch_retry_attempts: int = Field(default=1, ge=1)
    retry_wait_seconds: float = 2.0
    user_agent: str = "wnba-scraper/1.0"

    @field_validator("paths")
    @classmethod
    def ensure_every_category(cls, value: dict[Category, str]) -> dict[Category, str]:
        merged = _default_paths()
        merged.update(value)
        return merged

    def url_for(self, category: Category, season: int) -> str:
        path = self.paths[category].format(season=season)
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"


class PipelineConfig(BaseModel):
    persist_batch_size: int = Field(default=1000, ge=1)
    # Create missing tables before a run (no migrations)
    ensure_schema: bool = True


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    For local development a root .env file is read when present; in
    containers the environment is passed directly.
    """
    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parents[1] / ".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="allow",
    )

    database_url: str = Field(..., alias="DATABASE_URL")

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_async_to_sync(cls, v: str) -> str:
        """
        Convert asyncpg URL to psycopg URL for synchronous SQLAlchemy.

        The shared .env may carry an asyncpg URL for the API service; the
        importer runs synchronously, so the driver is swapped here.
        """
        if isinstance(v, str) and "asyncpg" in v:
            return v.replace("asyncpg", "psycopg")
        return v

    environment: str = Field("development", alias="ENVIRONMENT")
    log_level: str | None = Field(None, alias="LOG_LEVEL")
    provider_config: ProviderConfig = Field(default_factory=ProviderConfig)
    pipeline_config: PipelineConfig = Field(default_factory=PipelineConfig)
    seasons_override: str | None = Field(None, alias="WNBA_SEASONS")
    base_url_override: str | None = Field(None, alias="WNBA_DATA_BASE_URL")
    request_timeout_override: float | None = Field(None, alias="WNBA_REQUEST_TIMEOUT_SECONDS")

    @model_validator(mode="after")
    def _apply_provider_overrides(self) -> Settings:
        """
        Allow top-level env vars (WNBA_SEASONS / WNBA_DATA_BASE_URL /
        WNBA_REQUEST_TIMEOUT_SECONDS) to override the nested provider config
        without requiring double-underscore syntax.
        """
        if self.seasons_override:
            self.provider_config.seasons = [
                int(s.strip()) for s in self.seasons_override.split(",") if s.strip()
            ]
        if self.base_url_override:
            self.provider_config.base_url = self.base_url_override
        if self.request_timeout_override is not None:
            self.provider_config.request_timeout_seconds = self.request_timeout_override
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return cached settings instance.

    Settings are cached to avoid re-parsing environment variables
    on every access.
    """
    validate_env()
    return Settings()
