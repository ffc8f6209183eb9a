"""Centralized configuration for json-surf using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from ``JSON_SURF_*`` environment variables.

    Values passed to the constructor take precedence over the environment, so
    tests and embedding applications can build an explicit instance.
    """

    model_config = SettingsConfigDict(
        env_prefix="JSON_SURF_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Storage
    home: str = Field(default="indexes", min_length=1, description="Directory holding one index per collection")
    writer_heap_size: int = Field(
        default=50_000_000,
        ge=15_000_000,
        description="Memory budget in bytes for each collection's index writer",
    )
    writer_threads: int = Field(default=1, ge=1, le=8, description="Indexing threads per index writer")
    reload_policy: Literal["commit", "manual"] = Field(
        default="commit", description="Reader reload policy passed to tantivy"
    )

    # Query defaults
    default_limit: int = Field(default=10, ge=1, description="Per-term candidate cap when no limit is given")
    default_min_score: float = Field(default=0.0, ge=0.0, description="Score cutoff when none is given")
    select_limit: int = Field(default=100, ge=1, description="Per-term candidate cap used by Surf.select")

    # Logging
    setup_logging: bool = Field(
        default=False, description="Configure the root logger when a collection manager opens"
    )
    log_level: str = Field(default="info", description="Logging level")
    json_logs: bool = Field(default=True, description="Emit structured JSON logs")

    # Spelling correction
    fuzzy_corpus: str = Field(
        default="corpus/frequency_names.txt",
        description="Frequency dictionary file or directory used for word suggestions",
    )
    fuzzy_max_edit_distance: int = Field(default=2, ge=0, le=3, description="Maximum edit distance for suggestions")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
