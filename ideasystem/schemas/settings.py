"""AI settings schema."""

from pydantic import BaseModel, field_validator


class AISettings(BaseModel):
    """Process-wide AI configuration, persisted as a single row."""

    ai_provider: str = "openai"
    api_key: str = ""
    model: str = "gpt-3.5-turbo"
    embedding_model: str = "text-embedding-ada-002"
    endpoint: str | None = None

    @field_validator("ai_provider")
    @classmethod
    def _normalize_provider(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("endpoint")
    @classmethod
    def _blank_endpoint(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip().rstrip("/")
