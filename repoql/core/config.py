"""Settings for the query-DSL compiler and repositories."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent  # core -> repoql -> root
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """Configuration values shared by compilers and repositories."""

    # Database
    database_url: str = Field(
        default="sqlite+pysqlite:///:memory:",
        description="SQLAlchemy URL used by get_engine()",
    )

    # Query string grammar
    condition_separator: str = Field(
        default="@",
        min_length=1,
        description="Separator between conditions in filter/sort strings",
    )
    filter_limit: int = Field(
        default=5,
        ge=1,
        description="Maximum filter conditions read from one filter string",
    )
    sort_limit: int = Field(
        default=2,
        ge=1,
        description="Maximum sort conditions read from one sort string",
    )

    # Pagination
    per_page: int = Field(default=15, ge=1, description="Default page size")

    # Soft deletes
    soft_delete_column: str = Field(
        default="deleted_at",
        description="Timestamp column marking a row as soft-deleted",
    )

    model_config = SettingsConfigDict(
        env_prefix="REPOQL_",
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings."""
    return Settings()
