"""Idea, tag and reminder schemas."""

from datetime import datetime

from pydantic import BaseModel, field_validator

from ideasystem.utils.datetime import ensure_utc


def normalize_tags(tags: list[str] | None) -> list[str]:
    """Strip tag names, drop empty ones and collapse duplicates (first wins)."""
    seen: dict[str, None] = {}
    for tag in tags or []:
        name = tag.strip()
        if name:
            seen.setdefault(name, None)
    return list(seen)


class IdeaRead(BaseModel):
    """Idea with its tag names."""

    id: int
    content: str
    summary: str | None = None
    tags: list[str] = []
    vector_id: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class IdeaUpdate(BaseModel):
    """
    Partial idea update.

    Only fields explicitly set are applied; an explicit ``summary=None``
    clears the summary.
    """

    content: str | None = None
    summary: str | None = None
    tags: list[str] | None = None
    vector_id: str | None = None


class TagRead(BaseModel):
    """Tag with the number of ideas carrying it."""

    id: int
    name: str
    idea_count: int = 0


class ReminderRead(BaseModel):
    """Reminder row."""

    id: int
    idea_id: int
    reminder_date: datetime
    message: str
    is_completed: bool

    model_config = {"from_attributes": True}

    @field_validator("reminder_date")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class RelatedIdea(BaseModel):
    """An idea found by vector similarity."""

    idea: IdeaRead
    similarity: float


class IdeaCreateResult(BaseModel):
    """Outcome of creating an idea with optional AI enrichment."""

    idea: IdeaRead
    related: list[RelatedIdea] = []
    reminder_id: int | None = None
    embedded: bool = False
    ai_analyzed: bool = False


class AnswerResult(BaseModel):
    """Answer to a question over the knowledge base."""

    answer: str | None
    available: bool
    context_ids: list[int] = []
    error: str | None = None
