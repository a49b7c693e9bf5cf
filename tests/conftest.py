"""Pytest configuration and fixtures."""

from collections.abc import Generator
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import Engine
from sqlmodel.pool import StaticPool

from ideasystem.config import Settings
from ideasystem.database import create_db_and_tables, create_db_engine
from ideasystem.repositories import IdeaRepository, SettingsRepository
from ideasystem.schemas.ai import AnalysisResult, ReminderSuggestion
from ideasystem.schemas.idea import IdeaRead
from ideasystem.schemas.settings import AISettings
from ideasystem.services.idea_service import IdeaService
from ideasystem.services.providers import AIProvider, hashed_embedding
from ideasystem.services.vector_store import VectorStore
from ideasystem.utils.exceptions import ProviderError

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite://"

DIMENSIONS = 64


class FakeProvider(AIProvider):
    """Scriptable provider; embeddings come from local feature hashing."""

    name = "fake"

    def __init__(self, settings: AISettings | None = None, **kwargs):
        super().__init__(settings or AISettings(ai_provider="fake", api_key="test-key"), **kwargs)
        self.configured = True
        self.fail = False
        self.embed_length: int | None = None
        self.tags = ["ai-tag"]
        self.summary = "AI summary"
        self.reminder = ReminderSuggestion(needs_reminder=False)
        self.answer_text = "Answer from notes"
        self.calls: list[str] = []
        self.answer_context: list[IdeaRead] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    def _check(self, call: str) -> None:
        self.calls.append(call)
        if self.fail:
            raise ProviderError("service unavailable", self.name)

    async def embed(self, text: str) -> list[float]:
        self._check("embed")
        return hashed_embedding(text, self.embed_length or self.dimensions or DIMENSIONS)

    async def analyze(self, text: str) -> AnalysisResult:
        self._check("analyze")
        return AnalysisResult(tags=self.tags, summary=self.summary)

    async def suggest_reminder(self, text: str, now: datetime) -> ReminderSuggestion:
        self._check("suggest_reminder")
        return self.reminder

    async def answer(self, query: str, context: list[IdeaRead]) -> str:
        self._check("answer")
        self.answer_context = context
        return self.answer_text


@pytest.fixture(name="engine")
def engine_fixture() -> Generator[Engine, None, None]:
    """Create a test database engine."""
    engine = create_db_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="repository")
def repository_fixture(engine: Engine) -> IdeaRepository:
    return IdeaRepository(engine)


@pytest.fixture(name="settings_repository")
def settings_repository_fixture(engine: Engine) -> SettingsRepository:
    return SettingsRepository(engine)


@pytest.fixture(name="vector_store")
def vector_store_fixture(tmp_path) -> Generator[VectorStore, None, None]:
    """Create a vector store backed by a temporary file."""
    store = VectorStore(tmp_path / "vector_db" / "index.json", DIMENSIONS)
    yield store
    store.close()


@pytest.fixture(name="config")
def config_fixture() -> Settings:
    """Test configuration without reading any .env file."""
    return Settings(
        _env_file=None,
        embedding_dimensions=DIMENSIONS,
        related_ideas_limit=5,
        related_ideas_threshold=0.1,
        fallback_tag_count=3,
    )


@pytest.fixture(name="provider")
def provider_fixture() -> FakeProvider:
    return FakeProvider(dimensions=DIMENSIONS)


@pytest.fixture(name="service")
def service_fixture(
    repository: IdeaRepository,
    settings_repository: SettingsRepository,
    vector_store: VectorStore,
    config: Settings,
    provider: FakeProvider,
) -> IdeaService:
    """Idea service wired to the fake provider."""
    return IdeaService(
        repository,
        settings_repository,
        vector_store,
        config=config,
        provider_factory=lambda *args, **kwargs: provider,
    )


@pytest.fixture(name="due_at")
def due_at_fixture() -> datetime:
    """A reminder time one day in the past, so it is already pending."""
    return datetime.now(UTC) - timedelta(days=1)
