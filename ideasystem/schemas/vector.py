"""Vector store records."""

from typing import Any

from pydantic import BaseModel


class VectorRecord(BaseModel):
    """Embedding stored under a string key."""

    id: str
    vector: list[float]
    metadata: dict[str, Any] = {}
    timestamp: float


class SimilarityHit(BaseModel):
    """One nearest-neighbor search result."""

    id: str
    similarity: float
    metadata: dict[str, Any] = {}
