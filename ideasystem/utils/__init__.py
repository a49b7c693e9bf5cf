"""Utility modules."""

from ideasystem.utils.exceptions import (
    DimensionMismatchError,
    IdeaSystemException,
    NotFoundError,
    PersistenceError,
    ProviderError,
    ValidationError,
)

__all__ = [
    "DimensionMismatchError",
    "IdeaSystemException",
    "NotFoundError",
    "PersistenceError",
    "ProviderError",
    "ValidationError",
]
