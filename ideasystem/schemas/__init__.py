"""Pydantic schemas for validation and data exchange."""

from ideasystem.schemas.ai import AnalysisResult, ReminderSuggestion
from ideasystem.schemas.idea import (
    AnswerResult,
    IdeaCreateResult,
    IdeaRead,
    IdeaUpdate,
    RelatedIdea,
    ReminderRead,
    TagRead,
)
from ideasystem.schemas.settings import AISettings
from ideasystem.schemas.vector import SimilarityHit, VectorRecord

__all__ = [
    "AISettings",
    "AnalysisResult",
    "AnswerResult",
    "IdeaCreateResult",
    "IdeaRead",
    "IdeaUpdate",
    "RelatedIdea",
    "ReminderRead",
    "ReminderSuggestion",
    "SimilarityHit",
    "TagRead",
    "VectorRecord",
]
