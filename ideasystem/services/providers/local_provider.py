"""Offline provider built on local heuristics."""

import hashlib
import logging
from datetime import datetime

import numpy as np

from ideasystem.schemas.ai import AnalysisResult, ReminderSuggestion
from ideasystem.schemas.idea import IdeaRead
from ideasystem.services.providers.base import AIProvider, register_provider
from ideasystem.utils.keywords import extract_keywords, summarize_locally, tokenize

logger = logging.getLogger(__name__)

DEFAULT_LOCAL_DIMENSIONS = 1536


def hashed_embedding(text: str, dimensions: int) -> list[float]:
    """
    Bag-of-words embedding using the hashing trick.

    Each token adds a signed count to one hashed bucket; the result is
    L2-normalized. Text without tokens embeds to the zero vector.
    """
    vector = np.zeros(dimensions, dtype=np.float64)
    for token in tokenize(text):
        digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
        value = int.from_bytes(digest, "little")
        index = value % dimensions
        sign = 1.0 if (value >> 63) & 1 else -1.0
        vector[index] += sign

    norm = float(np.linalg.norm(vector))
    if norm > 0:
        vector /= norm
    return vector.tolist()


@register_provider
class LocalProvider(AIProvider):
    """
    Provider that never leaves the machine.

    Embeddings come from feature hashing, tags from keyword frequency,
    and no reminders are ever suggested.
    """

    name = "local"
    requires_api_key = False

    async def embed(self, text: str) -> list[float]:
        return hashed_embedding(text, self.dimensions or DEFAULT_LOCAL_DIMENSIONS)

    async def analyze(self, text: str) -> AnalysisResult:
        return AnalysisResult(tags=extract_keywords(text), summary=summarize_locally(text))

    async def suggest_reminder(self, text: str, now: datetime) -> ReminderSuggestion:
        return ReminderSuggestion(needs_reminder=False)

    async def answer(self, query: str, context: list[IdeaRead]) -> str:
        if not context:
            return f'No ideas related to "{query}" were found.'
        lines = [f'Found {len(context)} ideas related to "{query}":']
        for idea in context:
            lines.append(f"- {idea.summary or summarize_locally(idea.content, 80)}")
        return "\n".join(lines)
