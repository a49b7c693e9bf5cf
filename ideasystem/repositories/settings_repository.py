"""Singleton AI settings persistence."""

import json
import logging
import threading

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from ideasystem.models.settings import SETTINGS_ROW_ID, SettingsRow
from ideasystem.schemas.settings import AISettings
from ideasystem.utils.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class SettingsRepository:
    """Stores the AI settings as one JSON document in a single row."""

    def __init__(self, engine: Engine, defaults: AISettings | None = None):
        """
        Initialize the repository.

        Args:
            engine: SQLAlchemy engine with the tables created
            defaults: Settings returned while nothing has been saved
        """
        self.engine = engine
        self.defaults = defaults or AISettings()
        self._lock = threading.Lock()

    def get_settings(self) -> AISettings:
        """
        Load the saved settings, or the defaults if none were saved.

        A stored document that no longer parses is logged and replaced by
        the defaults.
        """
        try:
            with Session(self.engine) as session:
                row = session.get(SettingsRow, SETTINGS_ROW_ID)
                raw = row.settings_json if row else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to read settings: {e}")
            raise PersistenceError(f"Database read failed: {e}") from e

        if raw is None:
            return self.defaults.model_copy()

        try:
            return AISettings.model_validate({**self.defaults.model_dump(), **json.loads(raw)})
        except (json.JSONDecodeError, PydanticValidationError, TypeError) as e:
            logger.warning(f"Stored settings are unreadable, using defaults: {e}")
            return self.defaults.model_copy()

    def save_settings(self, settings: AISettings) -> AISettings:
        """
        Replace the stored settings wholesale.

        Returns:
            The saved settings
        """
        payload = settings.model_dump_json()
        with self._lock, Session(self.engine) as session:
            try:
                row = session.get(SettingsRow, SETTINGS_ROW_ID)
                if row is None:
                    row = SettingsRow(id=SETTINGS_ROW_ID, settings_json=payload)
                else:
                    row.settings_json = payload
                session.add(row)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Failed to save settings: {e}")
                raise PersistenceError(f"Database write failed: {e}") from e

        logger.info(f"Saved AI settings (provider={settings.ai_provider})")
        return settings.model_copy()
