"""AI provider adapters.

Importing this package registers every built-in provider.
"""

from ideasystem.services.providers.anthropic_provider import AnthropicProvider
from ideasystem.services.providers.base import (
    AIProvider,
    ChatProvider,
    available_providers,
    get_provider,
    register_provider,
)
from ideasystem.services.providers.local_provider import LocalProvider, hashed_embedding
from ideasystem.services.providers.ollama_provider import OllamaProvider
from ideasystem.services.providers.openai_provider import (
    AzureOpenAIProvider,
    OpenAIProvider,
)

__all__ = [
    "AIProvider",
    "AnthropicProvider",
    "AzureOpenAIProvider",
    "ChatProvider",
    "LocalProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "available_providers",
    "get_provider",
    "hashed_embedding",
    "register_provider",
]
