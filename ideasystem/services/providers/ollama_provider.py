"""Ollama provider for LLM and embedding operations."""

import json
import logging

import numpy as np

from ideasystem.services.providers.base import ChatProvider, register_provider
from ideasystem.utils.exceptions import ProviderError

logger = logging.getLogger(__name__)

OLLAMA_BASE_URL = "http://localhost:11434"


@register_provider
class OllamaProvider(ChatProvider):
    """Local Ollama server. No API key is needed."""

    name = "ollama"
    requires_api_key = False

    @property
    def base_url(self) -> str:
        return self.settings.endpoint or OLLAMA_BASE_URL

    def _headers(self) -> dict[str, str]:
        """Get request headers including auth if configured."""
        headers = {"Content-Type": "application/json"}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        return headers

    async def embed(self, text: str) -> list[float]:
        """
        Generate embedding for text using Ollama.

        Args:
            text: Text to embed

        Returns:
            Embedding as a list of floats
        """
        model = self.settings.embedding_model
        with self._translate_errors():
            async with self._client() as client:
                # Try the newer /api/embed endpoint first
                response = await client.post(
                    f"{self.base_url}/api/embed",
                    headers=self._headers(),
                    json={"model": model, "input": text},
                )

                # If /api/embed is not found (404), fallback to legacy /api/embeddings
                if response.status_code == 404 and "page not found" in response.text:
                    logger.info("Falling back to legacy /api/embeddings endpoint")
                    response = await client.post(
                        f"{self.base_url}/api/embeddings",
                        headers=self._headers(),
                        json={"model": model, "prompt": text},
                    )

                if response.status_code == 404:
                    try:
                        error_msg = response.json().get("error", "")
                    except json.JSONDecodeError:
                        error_msg = ""
                    if "not found" in error_msg.lower():
                        raise ProviderError(
                            f"Embedding model '{model}' not found. "
                            f"Run 'ollama pull {model}' or change the model in settings.",
                            self.name,
                        )

                response.raise_for_status()
                data = response.json()

            # Newer /api/embed returns "embeddings", legacy /api/embeddings returns "embedding"
            if "embeddings" in data:
                embeddings = data.get("embeddings") or [[]]
                embedding = np.array(embeddings[0], dtype=np.float64)
            else:
                embedding = np.array(data.get("embedding", []), dtype=np.float64)

        if embedding.size == 0:
            raise ProviderError("No embedding returned from Ollama", self.name)

        logger.info(f"Generated Ollama embedding: {embedding.shape} (model={model})")
        return embedding.tolist()

    async def _complete(self, system: str, prompt: str, json_mode: bool = False) -> str:
        payload = {
            "model": self.settings.model,
            "system": system,
            "prompt": prompt,
            "stream": False,
        }
        if json_mode:
            payload["format"] = "json"

        data = await self._post_json(f"{self.base_url}/api/generate", payload, self._headers())
        response_text = data.get("response")
        if not isinstance(response_text, str):
            raise ProviderError("Malformed response: missing 'response'", self.name)
        return response_text
