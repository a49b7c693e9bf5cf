"""Anthropic messages API provider."""

import logging
from typing import Any

from ideasystem.services.providers.base import ChatProvider, register_provider
from ideasystem.utils.exceptions import ProviderError

logger = logging.getLogger(__name__)

ANTHROPIC_BASE_URL = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"
MAX_TOKENS = 1024


@register_provider
class AnthropicProvider(ChatProvider):
    """Anthropic chat provider. Anthropic offers no embeddings endpoint."""

    name = "anthropic"

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.settings.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }

    async def _complete(self, system: str, prompt: str, json_mode: bool = False) -> str:
        base_url = self.settings.endpoint or ANTHROPIC_BASE_URL
        payload: dict[str, Any] = {
            "model": self.settings.model,
            "max_tokens": MAX_TOKENS,
            "system": system,
            "messages": [{"role": "user", "content": prompt}],
        }
        data = await self._post_json(f"{base_url}/messages", payload, self._headers())

        with self._translate_errors():
            blocks = data["content"]
            text = "".join(block["text"] for block in blocks if block.get("type") == "text")
        if not text:
            raise ProviderError("Malformed response: no text content", self.name)

        logger.debug(f"[{self.name}] Message received (model={self.settings.model})")
        return text

    async def embed(self, text: str) -> list[float]:
        raise ProviderError("Embeddings are not available for this provider", self.name)
