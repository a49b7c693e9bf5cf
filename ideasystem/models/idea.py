"""Idea, tag and reminder models."""

from datetime import datetime

from sqlalchemy import Column, ForeignKey, Integer
from sqlmodel import Field, SQLModel

from ideasystem.utils.datetime import utc_now


class Idea(SQLModel, table=True):  # type: ignore
    """A captured idea with its AI-generated summary."""

    __tablename__ = "ideas"  # type: ignore

    id: int | None = Field(default=None, primary_key=True)
    content: str
    summary: str | None = Field(default=None)

    # Soft reference into the vector store (absence is tolerated)
    vector_id: str | None = Field(default=None, index=True)

    created_at: datetime = Field(default_factory=utc_now, index=True)
    updated_at: datetime = Field(default_factory=utc_now)


class Tag(SQLModel, table=True):  # type: ignore
    """Tag name, shared across ideas."""

    __tablename__ = "tags"  # type: ignore

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(unique=True, index=True)
    created_at: datetime = Field(default_factory=utc_now)


class IdeaTag(SQLModel, table=True):  # type: ignore
    """Association between ideas and tags."""

    __tablename__ = "idea_tags"  # type: ignore

    idea_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("ideas.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    tag_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("tags.id", ondelete="CASCADE"),
            primary_key=True,
            index=True,
        )
    )


class Reminder(SQLModel, table=True):  # type: ignore
    """Scheduled follow-up for an idea."""

    __tablename__ = "reminders"  # type: ignore

    id: int | None = Field(default=None, primary_key=True)
    idea_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("ideas.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    reminder_date: datetime = Field(index=True)
    message: str = Field(default="")
    is_completed: bool = Field(default=False, index=True)
