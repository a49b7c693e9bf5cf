"""Relational store repositories."""

from ideasystem.repositories.idea_repository import IdeaRepository
from ideasystem.repositories.settings_repository import SettingsRepository

__all__ = ["IdeaRepository", "SettingsRepository"]
