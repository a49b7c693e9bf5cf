"""Tests for configuration, logging setup and application wiring."""

import logging

import pytest

from ideasystem.config import Settings
from ideasystem.logging_config import setup_logging
from ideasystem.main import default_ai_settings, lifespan
from ideasystem.schemas.settings import AISettings
from ideasystem.services.embeddings import EmbeddingService
from ideasystem.services.providers import LocalProvider
from ideasystem.utils.exceptions import DimensionMismatchError, ProviderError


def test_settings_defaults():
    settings = Settings(_env_file=None)

    assert settings.embedding_dimensions == 1536
    assert settings.default_ai_provider == "openai"
    assert settings.default_ai_model == "gpt-3.5-turbo"
    assert settings.default_embedding_model == "text-embedding-ada-002"
    assert settings.ai_timeout == 30.0


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("EMBEDDING_DIMENSIONS", "384")
    monkeypatch.setenv("DEFAULT_AI_PROVIDER", "ollama")

    settings = Settings(_env_file=None)
    assert settings.embedding_dimensions == 384
    assert settings.default_ai_provider == "ollama"


def test_settings_validation():
    with pytest.raises(ValueError):
        Settings(_env_file=None, embedding_dimensions=0)
    with pytest.raises(ValueError):
        Settings(_env_file=None, ai_timeout=0)
    with pytest.warns(UserWarning):
        Settings(_env_file=None, related_ideas_threshold=2.0)


def test_default_ai_settings():
    config = Settings(_env_file=None, default_ai_provider="Ollama", default_ai_endpoint="http://box:11434/")

    ai_settings = default_ai_settings(config)
    assert ai_settings.ai_provider == "ollama"
    assert ai_settings.endpoint == "http://box:11434"


def test_setup_logging_sets_level():
    setup_logging("debug")
    assert logging.getLogger("ideasystem").level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING

    setup_logging("INFO")
    assert logging.getLogger("ideasystem").level == logging.INFO


@pytest.mark.asyncio
async def test_embedding_service_enforces_dimension():
    provider = LocalProvider(AISettings(ai_provider="local"), dimensions=8)

    assert len(await EmbeddingService(provider, 8).embed("text")) == 8
    with pytest.raises(DimensionMismatchError):
        await EmbeddingService(provider, 16).embed("text")
    with pytest.raises(ProviderError):
        await EmbeddingService(None, 8).embed("text")

    fallback = EmbeddingService(None, 8, local_fallback=True)
    assert fallback.is_available is True
    assert len(await fallback.embed("text")) == 8


@pytest.mark.asyncio
async def test_lifespan_persists_between_runs(tmp_path):
    """Test that ideas and vectors survive a restart."""
    config = Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'db' / 'ideas.db'}",
        vector_store_path=str(tmp_path / "vector_db" / "index.json"),
        default_ai_provider="local",
        embedding_dimensions=32,
    )

    async with lifespan(config) as service:
        created = await service.create_idea("Sketch a logo for the bakery")
        assert created.embedded is True

    async with lifespan(config) as service:
        idea = await service.get_idea(created.idea.id)
        assert idea.content == "Sketch a logo for the bakery"
        assert service.vector_store.get(idea.vector_id) is not None
        assert (await service.get_settings()).ai_provider == "local"
