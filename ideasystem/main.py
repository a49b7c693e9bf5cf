"""ideaSystemX - application wiring."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from ideasystem.config import Settings
from ideasystem.config import settings as default_config
from ideasystem.database import create_db_and_tables, create_db_engine
from ideasystem.logging_config import setup_logging
from ideasystem.repositories import IdeaRepository, SettingsRepository
from ideasystem.schemas.settings import AISettings
from ideasystem.services.idea_service import IdeaService
from ideasystem.services.vector_store import VectorStore

logger = logging.getLogger(__name__)


def default_ai_settings(config: Settings) -> AISettings:
    """AI settings used until the user saves their own."""
    return AISettings(
        ai_provider=config.default_ai_provider,
        model=config.default_ai_model,
        embedding_model=config.default_embedding_model,
        endpoint=config.default_ai_endpoint,
    )


@asynccontextmanager
async def lifespan(config: Settings | None = None) -> AsyncIterator[IdeaService]:
    """
    Build the stores and the idea service, and release them on exit.

    Usage:
        async with lifespan() as ideas:
            await ideas.create_idea("Buy milk tomorrow")
    """
    config = config or default_config
    setup_logging("DEBUG" if config.debug else config.log_level)

    engine = create_db_engine(config.database_url, echo=config.debug)
    create_db_and_tables(engine)
    vector_store = VectorStore(config.vector_store_path, config.embedding_dimensions)

    service = IdeaService(
        IdeaRepository(engine),
        SettingsRepository(engine, defaults=default_ai_settings(config)),
        vector_store,
        config=config,
    )
    logger.info(f"{config.app_name} started (vectors={vector_store.count()})")
    try:
        yield service
    finally:
        service.close()
        engine.dispose()
        logger.info(f"{config.app_name} stopped")
