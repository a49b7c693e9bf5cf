"""Structured AI provider responses."""

from datetime import datetime

from pydantic import BaseModel, StrictBool, field_validator, model_validator

from ideasystem.schemas.idea import normalize_tags
from ideasystem.utils.datetime import ensure_utc


class AnalysisResult(BaseModel):
    """Tags and summary extracted from an idea."""

    tags: list[str] = []
    summary: str = ""

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: list[str]) -> list[str]:
        return normalize_tags(value)

    @field_validator("summary")
    @classmethod
    def _strip_summary(cls, value: str) -> str:
        return value.strip()


class ReminderSuggestion(BaseModel):
    """
    Reminder recommendation parsed from a provider response.

    A positive recommendation must carry both a due date and a non-empty
    message; anything else fails validation instead of being guessed.
    """

    needs_reminder: StrictBool
    due_at: datetime | None = None
    message: str | None = None

    @field_validator("due_at")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _require_details(self) -> "ReminderSuggestion":
        if self.needs_reminder:
            if self.due_at is None:
                raise ValueError("due_at is required when needs_reminder is true")
            if not self.message or not self.message.strip():
                raise ValueError("message is required when needs_reminder is true")
            self.message = self.message.strip()
        return self
