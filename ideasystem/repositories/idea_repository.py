"""Relational store for ideas, tags and reminders."""

import logging
import threading
from collections.abc import Generator, Sequence
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import Engine, delete, distinct, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, func, select

from ideasystem.models.idea import Idea, IdeaTag, Reminder, Tag
from ideasystem.schemas.idea import (
    IdeaRead,
    IdeaUpdate,
    ReminderRead,
    TagRead,
    normalize_tags,
)
from ideasystem.utils.datetime import ensure_utc, utc_now
from ideasystem.utils.exceptions import NotFoundError, PersistenceError, ValidationError

logger = logging.getLogger(__name__)


class IdeaRepository:
    """
    CRUD and filter queries over ideas, tags and reminders.

    Every write runs in a single session transaction: it commits as a whole
    or rolls back as a whole. Writes are serialized; reads open their own
    sessions and may run concurrently.
    """

    def __init__(self, engine: Engine):
        """
        Initialize the repository.

        Args:
            engine: SQLAlchemy engine with the tables created
        """
        self.engine = engine
        self._write_lock = threading.Lock()

    @contextmanager
    def _transaction(self) -> Generator[Session, None, None]:
        """Yield a session that commits on success and rolls back on any error."""
        with self._write_lock, Session(self.engine) as session:
            try:
                yield session
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Transaction rolled back: {e}")
                raise PersistenceError(f"Database write failed: {e}") from e
            except Exception:
                session.rollback()
                raise

    @contextmanager
    def _read(self) -> Generator[Session, None, None]:
        """Yield a read-only session, mapping driver errors to PersistenceError."""
        with Session(self.engine) as session:
            try:
                yield session
            except SQLAlchemyError as e:
                logger.error(f"Database read failed: {e}")
                raise PersistenceError(f"Database read failed: {e}") from e

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_content(content: str) -> str:
        if content is None or not content.strip():
            raise ValidationError("Idea content must not be empty")
        return content

    @staticmethod
    def _tag_names(session: Session, idea_ids: Sequence[int]) -> dict[int, list[str]]:
        """Map idea ids to their tag names, oldest tag first."""
        names: dict[int, list[str]] = {idea_id: [] for idea_id in idea_ids}
        if not idea_ids:
            return names
        statement = (
            select(IdeaTag.idea_id, Tag.name)
            .join(Tag, Tag.id == IdeaTag.tag_id)  # type: ignore[arg-type]
            .where(IdeaTag.idea_id.in_(idea_ids))  # type: ignore[attr-defined]
            .order_by(IdeaTag.idea_id, Tag.id)
        )
        for idea_id, name in session.exec(statement).all():
            names[idea_id].append(name)
        return names

    def _to_read(self, session: Session, ideas: Sequence[Idea]) -> list[IdeaRead]:
        tag_map = self._tag_names(session, [idea.id for idea in ideas if idea.id])
        return [
            IdeaRead(
                id=idea.id,  # type: ignore[arg-type]
                content=idea.content,
                summary=idea.summary,
                tags=tag_map.get(idea.id, []),  # type: ignore[arg-type]
                vector_id=idea.vector_id,
                created_at=idea.created_at,
                updated_at=idea.updated_at,
            )
            for idea in ideas
        ]

    @staticmethod
    def _get_or_create_tag(session: Session, name: str) -> Tag:
        tag = session.exec(select(Tag).where(Tag.name == name)).first()
        if tag is None:
            tag = Tag(name=name)
            session.add(tag)
            session.flush()
        return tag

    def _attach_tags(self, session: Session, idea_id: int, tags: list[str]) -> None:
        for name in normalize_tags(tags):
            tag = self._get_or_create_tag(session, name)
            session.add(IdeaTag(idea_id=idea_id, tag_id=tag.id))  # type: ignore[arg-type]
        session.flush()

    @staticmethod
    def _newest_first(statement):
        return statement.order_by(Idea.created_at.desc(), Idea.id.desc())  # type: ignore[union-attr]

    # ------------------------------------------------------------------
    # Ideas
    # ------------------------------------------------------------------

    def save_note(self, content: str, tags: list[str] | None = None) -> IdeaRead:
        """
        Create an idea with its tags in one transaction.

        Args:
            content: Idea text
            tags: Tag names; missing tags are created

        Returns:
            The created idea

        Raises:
            ValidationError: If content is empty
            PersistenceError: If the write fails (nothing is left behind)
        """
        self._validate_content(content)
        with self._transaction() as session:
            now = utc_now()
            idea = Idea(content=content, created_at=now, updated_at=now)
            session.add(idea)
            session.flush()
            assert idea.id is not None
            self._attach_tags(session, idea.id, tags or [])
            result = self._to_read(session, [idea])[0]

        logger.info(f"Saved idea {result.id} with {len(result.tags)} tags")
        return result

    def get_note(self, idea_id: int) -> IdeaRead | None:
        """Get a single idea by ID, or None."""
        with self._read() as session:
            idea = session.get(Idea, idea_id)
            if idea is None:
                return None
            return self._to_read(session, [idea])[0]

    def get_notes(self, idea_ids: Sequence[int]) -> dict[int, IdeaRead]:
        """Fetch several ideas at once, keyed by id. Missing ids are absent."""
        if not idea_ids:
            return {}
        with self._read() as session:
            ideas = session.exec(
                select(Idea).where(Idea.id.in_(list(idea_ids)))  # type: ignore[union-attr]
            ).all()
            return {idea.id: idea for idea in self._to_read(session, ideas)}

    def get_all_notes(self) -> list[IdeaRead]:
        """List all ideas, newest first."""
        with self._read() as session:
            ideas = session.exec(self._newest_first(select(Idea))).all()
            return self._to_read(session, ideas)

    def count_notes(self) -> int:
        """Total number of ideas."""
        with self._read() as session:
            return session.exec(select(func.count()).select_from(Idea)).one()

    def update_note(self, idea_id: int, update: IdeaUpdate | dict[str, Any]) -> IdeaRead:
        """
        Update only the supplied fields of an idea.

        ``updated_at`` is always bumped. Supplied ``tags`` replace the full
        association set in the same transaction.

        Args:
            idea_id: Idea to update
            update: Partial fields

        Returns:
            The updated idea

        Raises:
            NotFoundError: If the idea does not exist
            ValidationError: If new content is empty
        """
        if isinstance(update, dict):
            update = IdeaUpdate(**update)
        fields = update.model_dump(exclude_unset=True)

        if "content" in fields:
            self._validate_content(fields["content"])

        with self._transaction() as session:
            idea = session.get(Idea, idea_id)
            if idea is None:
                raise NotFoundError("Idea", f"Idea {idea_id} not found")

            for field in ("content", "summary", "vector_id"):
                if field in fields:
                    setattr(idea, field, fields[field])

            if "tags" in fields:
                session.exec(delete(IdeaTag).where(IdeaTag.idea_id == idea_id))  # type: ignore[call-overload]
                self._attach_tags(session, idea_id, fields["tags"] or [])

            idea.updated_at = max(utc_now(), ensure_utc(idea.created_at))
            session.add(idea)
            session.flush()
            result = self._to_read(session, [idea])[0]

        logger.debug(f"Updated idea {idea_id}: {sorted(fields)}")
        return result

    def delete_note(self, idea_id: int) -> bool:
        """
        Delete an idea with its tag associations and reminders.

        Returns:
            True if a row was removed
        """
        with self._transaction() as session:
            session.exec(delete(IdeaTag).where(IdeaTag.idea_id == idea_id))  # type: ignore[call-overload]
            session.exec(delete(Reminder).where(Reminder.idea_id == idea_id))  # type: ignore[call-overload]
            result = session.exec(delete(Idea).where(Idea.id == idea_id))  # type: ignore[call-overload]
            removed = result.rowcount > 0

        if removed:
            logger.info(f"Deleted idea {idea_id}")
        return removed

    def search_by_content(self, query: str) -> list[IdeaRead]:
        """Case-insensitive substring search over content and summary."""
        if not query or not query.strip():
            return []
        term = query.strip()
        with self._read() as session:
            statement = select(Idea).where(
                or_(
                    Idea.content.icontains(term, autoescape=True),  # type: ignore[attr-defined]
                    Idea.summary.icontains(term, autoescape=True),  # type: ignore[union-attr]
                )
            )
            ideas = session.exec(self._newest_first(statement)).all()
            return self._to_read(session, ideas)

    def search_by_tag(self, tag: str) -> list[IdeaRead]:
        """Ideas carrying exactly the given tag name."""
        name = tag.strip()
        if not name:
            return []
        with self._read() as session:
            statement = (
                select(Idea)
                .join(IdeaTag, IdeaTag.idea_id == Idea.id)  # type: ignore[arg-type]
                .join(Tag, Tag.id == IdeaTag.tag_id)  # type: ignore[arg-type]
                .where(Tag.name == name)
            )
            ideas = session.exec(self._newest_first(statement)).all()
            return self._to_read(session, ideas)

    def get_by_tags(self, tag_names: list[str]) -> list[IdeaRead]:
        """
        Ideas carrying every one of the given tags.

        Counts distinct matched tag names per idea and keeps ideas whose
        count equals the number of requested names. An empty list matches
        all ideas.
        """
        names = normalize_tags(tag_names)
        if not names:
            return self.get_all_notes()

        with self._read() as session:
            matching_ids = (
                select(IdeaTag.idea_id)
                .join(Tag, Tag.id == IdeaTag.tag_id)  # type: ignore[arg-type]
                .where(Tag.name.in_(names))  # type: ignore[attr-defined]
                .group_by(IdeaTag.idea_id)
                .having(func.count(distinct(Tag.name)) == len(names))
            )
            statement = select(Idea).where(Idea.id.in_(matching_ids))  # type: ignore[union-attr]
            ideas = session.exec(self._newest_first(statement)).all()
            return self._to_read(session, ideas)

    def get_notes_without_vector(self) -> list[IdeaRead]:
        """Ideas with no vector reference, oldest first."""
        with self._read() as session:
            statement = (
                select(Idea)
                .where(Idea.vector_id.is_(None))  # type: ignore[union-attr]
                .order_by(Idea.id)
            )
            return self._to_read(session, session.exec(statement).all())

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def get_all_tags(self) -> list[TagRead]:
        """All tags with their usage counts, most used first."""
        with self._read() as session:
            usage = func.count(IdeaTag.idea_id)
            statement = (
                select(Tag.id, Tag.name, usage)
                .join(IdeaTag, IdeaTag.tag_id == Tag.id, isouter=True)  # type: ignore[arg-type]
                .group_by(Tag.id, Tag.name)
                .order_by(usage.desc(), Tag.name)
            )
            return [
                TagRead(id=tag_id, name=name, idea_count=count)
                for tag_id, name, count in session.exec(statement).all()
            ]

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    def add_reminder(self, idea_id: int, due_at: datetime, message: str) -> int:
        """
        Schedule a reminder for an idea.

        Returns:
            The new reminder ID

        Raises:
            NotFoundError: If the idea does not exist
        """
        with self._transaction() as session:
            if session.get(Idea, idea_id) is None:
                raise NotFoundError("Idea", f"Idea {idea_id} not found")
            reminder = Reminder(
                idea_id=idea_id,
                reminder_date=ensure_utc(due_at),
                message=message,
            )
            session.add(reminder)
            session.flush()
            reminder_id = reminder.id

        assert reminder_id is not None
        logger.info(f"Added reminder {reminder_id} for idea {idea_id} due {due_at}")
        return reminder_id

    def get_reminder(self, reminder_id: int) -> ReminderRead | None:
        """Get a reminder by ID, or None."""
        with self._read() as session:
            reminder = session.get(Reminder, reminder_id)
            return ReminderRead.model_validate(reminder) if reminder else None

    def get_pending_reminders(self, now: datetime | None = None) -> list[ReminderRead]:
        """Uncompleted reminders due at or before ``now``, earliest first."""
        cutoff = ensure_utc(now or utc_now())
        with self._read() as session:
            statement = (
                select(Reminder)
                .where(
                    Reminder.is_completed == False,  # noqa: E712
                    Reminder.reminder_date <= cutoff,
                )
                .order_by(Reminder.reminder_date, Reminder.id)
            )
            return [ReminderRead.model_validate(r) for r in session.exec(statement).all()]

    def get_all_reminders(self, include_completed: bool = True) -> list[ReminderRead]:
        """All reminders, earliest due first."""
        with self._read() as session:
            statement = select(Reminder)
            if not include_completed:
                statement = statement.where(Reminder.is_completed == False)  # noqa: E712
            statement = statement.order_by(Reminder.reminder_date, Reminder.id)
            return [ReminderRead.model_validate(r) for r in session.exec(statement).all()]

    def get_reminders_for_note(self, idea_id: int) -> list[ReminderRead]:
        """Reminders owned by one idea."""
        with self._read() as session:
            statement = (
                select(Reminder)
                .where(Reminder.idea_id == idea_id)
                .order_by(Reminder.reminder_date, Reminder.id)
            )
            return [ReminderRead.model_validate(r) for r in session.exec(statement).all()]

    def complete_reminder(self, reminder_id: int) -> bool:
        """
        Mark a reminder completed.

        Returns:
            True if the reminder exists
        """
        with self._transaction() as session:
            reminder = session.get(Reminder, reminder_id)
            if reminder is None:
                return False
            reminder.is_completed = True
            session.add(reminder)
        return True

    def delete_reminder(self, reminder_id: int) -> bool:
        """
        Delete a reminder.

        Returns:
            True if a row was removed
        """
        with self._transaction() as session:
            result = session.exec(delete(Reminder).where(Reminder.id == reminder_id))  # type: ignore[call-overload]
            return result.rowcount > 0
