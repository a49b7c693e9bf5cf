"""AI provider interface, shared chat logic and provider registry."""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from typing import Any, ClassVar

import httpx
from pydantic import ValidationError as PydanticValidationError

from ideasystem.schemas.ai import AnalysisResult, ReminderSuggestion
from ideasystem.schemas.idea import IdeaRead
from ideasystem.schemas.settings import AISettings
from ideasystem.utils.exceptions import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

ANALYSIS_SYSTEM_PROMPT = (
    "You are a helpful assistant that organizes a personal idea notebook. "
    "You MUST respond ONLY with a valid JSON object."
)

ANALYSIS_PROMPT = """Analyze the following idea and provide:
1. Tags: 3-5 short lowercase keywords describing the idea.
2. Summary: one sentence, at most 30 words, in the language of the idea.

Respond ONLY with a JSON object in this format:
{{
  "tags": ["tag1", "tag2", "tag3"],
  "summary": "One sentence summary"
}}

Idea: {content}"""

REMINDER_PROMPT = """Current time (UTC): {now}

Decide whether the following idea needs a follow-up reminder, for example
because it mentions a task, a deadline, a date or something to revisit.
If it mentions "in X days/hours" add that to the current time. If it names a
specific date or time, use it. If no follow-up is needed, answer false.

Respond ONLY with a JSON object in this format:
{{
  "needs_reminder": true,
  "due_at": "YYYY-MM-DDTHH:MM:SS or null",
  "message": "short reminder message or null"
}}

Idea: {content}"""

ANSWER_SYSTEM_PROMPT = (
    "You are a helpful assistant answering questions based on the user's "
    "personal idea notebook. Use only the notes given as context. If the "
    "answer cannot be found in the notes, say so."
)

ANSWER_PROMPT = """Context Notes:
{context}

Question: {query}

Answer:"""


def parse_json_object(content: str) -> dict[str, Any]:
    """
    Parse a JSON object from model output.

    Models sometimes wrap JSON in markdown code fences; those are removed.

    Raises:
        ValueError: If the content is not a JSON object
    """
    text = content.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()

    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object")
    return data


def format_context(context: list[IdeaRead]) -> str:
    """Render ideas as numbered context blocks."""
    if not context:
        return "(no related notes)"
    parts = []
    for i, idea in enumerate(context, 1):
        parts.append(f"Note {i} ({idea.created_at.strftime('%Y-%m-%d')}):\n{idea.content}")
    return "\n\n---\n\n".join(parts)


class AIProvider(ABC):
    """
    Interface every AI backend implements.

    All methods raise ProviderError on any failure: network, auth, quota,
    timeout or a response that cannot be parsed.
    """

    name: ClassVar[str] = ""
    requires_api_key: ClassVar[bool] = True

    def __init__(
        self,
        settings: AISettings,
        timeout: float = DEFAULT_TIMEOUT,
        dimensions: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the provider.

        Args:
            settings: AI settings (key, models, endpoint)
            timeout: Per-request timeout in seconds
            dimensions: Embedding length the caller expects, if known
            transport: Optional httpx transport (used by tests)
        """
        self.settings = settings
        self.timeout = timeout
        self.dimensions = dimensions
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        """Whether the provider has what it needs to make calls."""
        return bool(self.settings.api_key) or not self.requires_api_key

    def _ensure_configured(self) -> None:
        if not self.is_configured:
            raise ProviderError("API key not configured", self.name)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    @contextmanager
    def _translate_errors(self) -> Generator[None, None, None]:
        """Map httpx and decoding failures to ProviderError."""
        try:
            yield
        except ProviderError:
            raise
        except httpx.TimeoutException as e:
            raise ProviderError(f"Request timed out after {self.timeout}s", self.name) from e
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"HTTP {e.response.status_code}: {_error_detail(e.response)}", self.name
            ) from e
        except httpx.RequestError as e:
            raise ProviderError(f"Connection failed: {e}", self.name) from e
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Malformed response: {e}", self.name) from e

    async def _post_json(
        self, url: str, payload: dict[str, Any], headers: dict[str, str]
    ) -> dict[str, Any]:
        """POST a JSON payload and return the decoded JSON response."""
        with self._translate_errors():
            async with self._client() as client:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        if not isinstance(data, dict):
            raise ProviderError("Malformed response: expected a JSON object", self.name)
        return data

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Return an embedding vector for the text."""

    @abstractmethod
    async def analyze(self, text: str) -> AnalysisResult:
        """Return tags and a summary for the text."""

    @abstractmethod
    async def suggest_reminder(self, text: str, now: datetime) -> ReminderSuggestion:
        """Return whether the text warrants a reminder, and when."""

    @abstractmethod
    async def answer(self, query: str, context: list[IdeaRead]) -> str:
        """Answer a question using the given ideas as context."""


class ChatProvider(AIProvider):
    """Provider whose analysis features run over a chat completion call."""

    @abstractmethod
    async def _complete(self, system: str, prompt: str, json_mode: bool = False) -> str:
        """Send one chat turn and return the assistant text."""

    async def _complete_json(self, system: str, prompt: str) -> dict[str, Any]:
        content = await self._complete(system, prompt, json_mode=True)
        try:
            return parse_json_object(content)
        except ValueError as e:
            logger.warning(f"[{self.name}] Unparsable JSON response: {content[:200]!r}")
            raise ProviderError(f"Unparsable response: {e}", self.name) from e

    async def analyze(self, text: str) -> AnalysisResult:
        self._ensure_configured()
        data = await self._complete_json(
            ANALYSIS_SYSTEM_PROMPT, ANALYSIS_PROMPT.format(content=text)
        )
        try:
            return AnalysisResult.model_validate(data)
        except PydanticValidationError as e:
            raise ProviderError(f"Invalid analysis response: {e}", self.name) from e

    async def suggest_reminder(self, text: str, now: datetime) -> ReminderSuggestion:
        self._ensure_configured()
        data = await self._complete_json(
            ANALYSIS_SYSTEM_PROMPT,
            REMINDER_PROMPT.format(now=now.strftime("%Y-%m-%dT%H:%M:%S"), content=text),
        )
        if data.get("due_at") in ("null", ""):
            data["due_at"] = None
        try:
            return ReminderSuggestion.model_validate(data)
        except PydanticValidationError as e:
            raise ProviderError(f"Invalid reminder response: {e}", self.name) from e

    async def answer(self, query: str, context: list[IdeaRead]) -> str:
        self._ensure_configured()
        content = await self._complete(
            ANSWER_SYSTEM_PROMPT,
            ANSWER_PROMPT.format(context=format_context(context), query=query),
        )
        answer = content.strip()
        if not answer:
            raise ProviderError("Empty answer", self.name)
        return answer


def _error_detail(response: httpx.Response) -> str:
    """Best-effort error message from an error response body."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict):
        error = data.get("error", data)
        if isinstance(error, dict):
            return str(error.get("message", error))
        return str(error)
    return str(data)[:200]


_registry: dict[str, type[AIProvider]] = {}


def register_provider(provider_class: type[AIProvider]) -> type[AIProvider]:
    """Class decorator adding a provider to the registry under its name."""
    if not provider_class.name:
        raise ValueError(f"{provider_class.__name__} has no provider name")
    _registry[provider_class.name] = provider_class
    return provider_class


def available_providers() -> list[str]:
    """Names of all registered providers."""
    return sorted(_registry)


def get_provider(
    settings: AISettings,
    timeout: float = DEFAULT_TIMEOUT,
    dimensions: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AIProvider:
    """
    Factory function to create the provider selected by the settings.

    Raises:
        ProviderError: If no provider is registered under that name
    """
    provider_class = _registry.get(settings.ai_provider)
    if provider_class is None:
        raise ProviderError(
            f"Unknown provider '{settings.ai_provider}'. "
            f"Available: {', '.join(available_providers())}"
        )
    return provider_class(
        settings=settings, timeout=timeout, dimensions=dimensions, transport=transport
    )
