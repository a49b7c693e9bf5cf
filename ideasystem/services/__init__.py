"""Service modules for business logic."""

from ideasystem.services.embeddings import EmbeddingService
from ideasystem.services.idea_service import IdeaService
from ideasystem.services.vector_store import VectorStore

__all__ = [
    "EmbeddingService",
    "IdeaService",
    "VectorStore",
]
