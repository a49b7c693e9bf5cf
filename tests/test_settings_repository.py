"""Tests for AI settings persistence."""

from sqlmodel import Session

from ideasystem.models import SettingsRow
from ideasystem.repositories import SettingsRepository
from ideasystem.schemas.settings import AISettings


def test_defaults_when_nothing_saved(settings_repository: SettingsRepository):
    settings = settings_repository.get_settings()

    assert settings.ai_provider == "openai"
    assert settings.model == "gpt-3.5-turbo"
    assert settings.embedding_model == "text-embedding-ada-002"
    assert settings.api_key == ""


def test_custom_defaults(engine):
    repository = SettingsRepository(engine, defaults=AISettings(ai_provider="ollama", model="llama3"))

    assert repository.get_settings().ai_provider == "ollama"
    assert repository.get_settings().model == "llama3"


def test_save_and_reload(settings_repository: SettingsRepository, engine):
    """Test that saved settings replace the defaults and survive a new repository."""
    settings_repository.save_settings(
        AISettings(ai_provider=" Anthropic ", api_key="sk-test", model="claude-3-haiku")
    )
    settings_repository.save_settings(
        AISettings(ai_provider="azure", api_key="az-key", endpoint="https://example.azure.com/")
    )

    loaded = SettingsRepository(engine).get_settings()
    assert loaded.ai_provider == "azure"
    assert loaded.api_key == "az-key"
    assert loaded.endpoint == "https://example.azure.com"
    assert loaded.model == "gpt-3.5-turbo"

    with Session(engine) as session:
        assert session.get(SettingsRow, 1) is not None


def test_unreadable_settings_fall_back_to_defaults(settings_repository: SettingsRepository, engine):
    with Session(engine) as session:
        session.add(SettingsRow(id=1, settings_json="{broken"))
        session.commit()

    assert settings_repository.get_settings() == AISettings()


def test_partial_document_merges_defaults(settings_repository: SettingsRepository, engine):
    with Session(engine) as session:
        session.add(SettingsRow(id=1, settings_json='{"api_key": "only-key"}'))
        session.commit()

    settings = settings_repository.get_settings()
    assert settings.api_key == "only-key"
    assert settings.ai_provider == "openai"


def test_blank_endpoint_is_none():
    assert AISettings(endpoint="   ").endpoint is None
