"""Application configuration using Pydantic Settings."""

import logging
import warnings

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # App
    app_name: str = "ideaSystemX"
    debug: bool = False
    log_level: str = "INFO"

    # Storage
    database_url: str = "sqlite:///./data/ideas.db"
    vector_store_path: str = "./data/vector_db/index.json"
    embedding_dimensions: int = 1536  # text-embedding-ada-002 output size

    # AI defaults (overridden by the persisted AI settings row)
    default_ai_provider: str = "openai"
    default_ai_model: str = "gpt-3.5-turbo"
    default_embedding_model: str = "text-embedding-ada-002"
    default_ai_endpoint: str | None = None
    ai_timeout: float = 30.0

    # Enrichment
    related_ideas_limit: int = 5
    related_ideas_threshold: float = 0.5
    fallback_tag_count: int = 5
    local_embedding_fallback: bool = False

    def __init__(self, **kwargs):
        """Initialize settings and validate the numeric configuration."""
        super().__init__(**kwargs)
        self._validate_settings()

    def _validate_settings(self) -> None:
        """Reject unusable values and warn about questionable ones."""
        if self.embedding_dimensions <= 0:
            raise ValueError("EMBEDDING_DIMENSIONS must be a positive integer")

        if self.ai_timeout <= 0:
            raise ValueError("AI_TIMEOUT must be greater than zero")

        if not -1.0 <= self.related_ideas_threshold <= 1.0:
            warnings.warn(
                "RELATED_IDEAS_THRESHOLD is outside [-1, 1]; related ideas will be empty or unfiltered",
                UserWarning,
                stacklevel=2,
            )
            logger.warning(
                "RELATED_IDEAS_THRESHOLD is outside [-1, 1]; related ideas will be empty or unfiltered"
            )


settings = Settings()
