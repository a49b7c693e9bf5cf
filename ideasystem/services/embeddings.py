"""Embedding adapter producing fixed-dimension vectors."""

import logging

from ideasystem.services.providers.base import AIProvider
from ideasystem.services.providers.local_provider import hashed_embedding
from ideasystem.utils.exceptions import DimensionMismatchError, ProviderError

logger = logging.getLogger(__name__)


class EmbeddingService:
    """
    Wraps a provider's embedding call and enforces the store dimension.

    With ``local_fallback`` enabled, an unconfigured or failing provider is
    replaced by the local hashing embedder instead of raising.
    """

    def __init__(
        self,
        provider: AIProvider | None,
        dimensions: int,
        local_fallback: bool = False,
    ):
        self.provider = provider
        self.dimensions = dimensions
        self.local_fallback = local_fallback

    @property
    def is_available(self) -> bool:
        """Whether ``embed`` can be expected to return a vector."""
        return self.local_fallback or (
            self.provider is not None and self.provider.is_configured
        )

    async def embed(self, text: str) -> list[float]:
        """
        Generate an embedding of exactly ``dimensions`` floats.

        Raises:
            ProviderError: If the provider is missing, unconfigured or fails
            DimensionMismatchError: If the provider returns another length
        """
        try:
            if self.provider is None or not self.provider.is_configured:
                raise ProviderError("No configured AI provider for embeddings")

            vector = await self.provider.embed(text)
            if len(vector) != self.dimensions:
                raise DimensionMismatchError(self.dimensions, len(vector))
            return vector
        except (ProviderError, DimensionMismatchError) as e:
            if not self.local_fallback:
                raise
            logger.warning(f"Embedding provider unavailable, using local embedding: {e}")
            return hashed_embedding(text, self.dimensions)
