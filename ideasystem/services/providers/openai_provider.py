"""OpenAI and Azure OpenAI providers."""

import logging
from typing import Any

from ideasystem.services.providers.base import ChatProvider, register_provider
from ideasystem.utils.exceptions import ProviderError

logger = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com/v1"
AZURE_API_VERSION = "2024-02-01"


@register_provider
class OpenAIProvider(ChatProvider):
    """OpenAI-compatible chat completions and embeddings API."""

    name = "openai"

    @property
    def base_url(self) -> str:
        return self.settings.endpoint or OPENAI_BASE_URL

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        return headers

    def _chat_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _embeddings_url(self) -> str:
        return f"{self.base_url}/embeddings"

    async def _complete(self, system: str, prompt: str, json_mode: bool = False) -> str:
        payload: dict[str, Any] = {
            "model": self.settings.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.2,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        data = await self._post_json(self._chat_url(), payload, self._headers())
        with self._translate_errors():
            content = data["choices"][0]["message"]["content"]
        if not isinstance(content, str):
            raise ProviderError("Malformed response: missing message content", self.name)

        logger.debug(f"[{self.name}] Chat response received (model={self.settings.model})")
        return content

    async def embed(self, text: str) -> list[float]:
        self._ensure_configured()
        payload: dict[str, Any] = {
            "model": self.settings.embedding_model,
            # Single-line input embeds better
            "input": text.replace("\n", " "),
        }
        if self.dimensions and self.settings.embedding_model.startswith("text-embedding-3"):
            payload["dimensions"] = self.dimensions

        data = await self._post_json(self._embeddings_url(), payload, self._headers())
        with self._translate_errors():
            embedding = [float(v) for v in data["data"][0]["embedding"]]
        if not embedding:
            raise ProviderError("No embedding returned", self.name)

        logger.info(
            f"[{self.name}] Generated embedding (model={self.settings.embedding_model}, dim={len(embedding)})"
        )
        return embedding


@register_provider
class AzureOpenAIProvider(OpenAIProvider):
    """
    Azure OpenAI deployments.

    ``model`` and ``embedding_model`` name the chat and embedding
    deployments; ``endpoint`` is the resource URL.
    """

    name = "azure"

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.api_key and self.settings.endpoint)

    def _ensure_configured(self) -> None:
        if not self.settings.endpoint:
            raise ProviderError("Azure endpoint not configured", self.name)
        super()._ensure_configured()

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "api-key": self.settings.api_key}

    def _deployment_url(self, deployment: str, operation: str) -> str:
        return (
            f"{self.settings.endpoint}/openai/deployments/{deployment}/{operation}"
            f"?api-version={AZURE_API_VERSION}"
        )

    def _chat_url(self) -> str:
        return self._deployment_url(self.settings.model, "chat/completions")

    def _embeddings_url(self) -> str:
        return self._deployment_url(self.settings.embedding_model, "embeddings")
