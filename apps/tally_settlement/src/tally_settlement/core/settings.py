"""Application settings loaded from environment variables."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for API, engine and persistence layers."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = Field(
        default="sqlite+pysqlite:///./tally_settlement.db",
        alias="DATABASE_URL",
    )
    storage_backend: Literal["memory", "database"] = Field(
        default="memory",
        alias="STORAGE_BACKEND",
    )
    settlement_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        alias="SETTLEMENT_TOLERANCE",
        gt=0,
    )
    mcp_api_base_url: str = Field(
        default="http://127.0.0.1:8000",
        alias="MCP_API_BASE_URL",
    )
    mcp_api_timeout_seconds: float = Field(
        default=10.0,
        alias="MCP_API_TIMEOUT_SECONDS",
        gt=0,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance for the current process."""

    return Settings()
