"""Singleton settings row."""

from sqlmodel import Field, SQLModel

SETTINGS_ROW_ID = 1


class SettingsRow(SQLModel, table=True):  # type: ignore
    """AI settings serialized as one JSON document."""

    __tablename__ = "settings"  # type: ignore

    id: int = Field(default=SETTINGS_ROW_ID, primary_key=True)
    settings_json: str = Field(default="{}")
