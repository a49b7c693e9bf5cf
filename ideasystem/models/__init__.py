"""Database models."""

from ideasystem.models.idea import Idea, IdeaTag, Reminder, Tag
from ideasystem.models.settings import SettingsRow

__all__ = ["Idea", "IdeaTag", "Reminder", "SettingsRow", "Tag"]
