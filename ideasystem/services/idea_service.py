"""Idea orchestration across the relational store, vector store and AI provider."""

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any, TypeVar

from ideasystem.config import Settings
from ideasystem.config import settings as default_config
from ideasystem.repositories.idea_repository import IdeaRepository
from ideasystem.repositories.settings_repository import SettingsRepository
from ideasystem.schemas.ai import AnalysisResult
from ideasystem.schemas.idea import (
    AnswerResult,
    IdeaCreateResult,
    IdeaRead,
    IdeaUpdate,
    RelatedIdea,
    ReminderRead,
    TagRead,
    normalize_tags,
)
from ideasystem.schemas.settings import AISettings
from ideasystem.services.embeddings import EmbeddingService
from ideasystem.services.providers import AIProvider, available_providers, get_provider
from ideasystem.services.vector_store import VectorStore
from ideasystem.utils.datetime import utc_now
from ideasystem.utils.exceptions import (
    DimensionMismatchError,
    NotFoundError,
    PersistenceError,
    ProviderError,
    ValidationError,
)
from ideasystem.utils.keywords import extract_keywords

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures that downgrade an embedding step to "no vector"
_VECTOR_ERRORS = (ProviderError, DimensionMismatchError, PersistenceError, ValidationError)


class IdeaService:
    """
    Coordinates idea persistence with best-effort AI enrichment.

    The relational store is authoritative: an idea is saved before any AI
    call starts and stays saved whatever the provider does. Vectors, tags
    from analysis, summaries and reminder suggestions are enrichments whose
    failures are logged and skipped.

    Store calls run in worker threads so the event loop stays responsive.
    """

    def __init__(
        self,
        ideas: IdeaRepository,
        settings_repository: SettingsRepository,
        vector_store: VectorStore,
        config: Settings | None = None,
        provider_factory: Callable[..., AIProvider] = get_provider,
    ):
        """
        Initialize the service and load the saved AI settings.

        Args:
            ideas: Relational store for ideas, tags and reminders
            settings_repository: Store for the AI settings row
            vector_store: Embedding store
            config: Application configuration
            provider_factory: Builds a provider from AI settings
        """
        self.ideas = ideas
        self.settings_repository = settings_repository
        self.vector_store = vector_store
        self.config = config or default_config
        self._provider_factory = provider_factory

        self._ai_settings = settings_repository.get_settings()
        self._provider = self._build_provider(self._ai_settings)
        self._embeddings = self._build_embeddings()

    # ------------------------------------------------------------------
    # Provider management
    # ------------------------------------------------------------------

    def _build_embeddings(self) -> EmbeddingService:
        return EmbeddingService(
            self._provider,
            self.vector_store.dimensions,
            local_fallback=self.config.local_embedding_fallback,
        )

    def _build_provider(self, ai_settings: AISettings) -> AIProvider | None:
        try:
            provider = self._provider_factory(
                ai_settings,
                timeout=self.config.ai_timeout,
                dimensions=self.vector_store.dimensions,
            )
        except ProviderError as e:
            logger.warning(f"AI provider unavailable: {e}")
            return None
        logger.info(
            f"AI provider '{ai_settings.ai_provider}' loaded (configured={provider.is_configured})"
        )
        return provider

    @property
    def provider(self) -> AIProvider | None:
        """The provider selected by the current settings, if it could be built."""
        return self._provider

    @property
    def ai_configured(self) -> bool:
        """Whether AI features can be attempted."""
        return self._provider is not None and self._provider.is_configured

    @property
    def embeddings(self) -> EmbeddingService:
        """Embedding adapter over the current provider, rebuilt when settings change."""
        return self._embeddings

    async def _run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(func, *args, **kwargs)

    # ------------------------------------------------------------------
    # Enrichment steps
    # ------------------------------------------------------------------

    async def _apply_update(self, idea: IdeaRead, update: dict[str, Any]) -> IdeaRead:
        """Write an enrichment update; on failure keep the idea as it was."""
        try:
            return await self._run(self.ideas.update_note, idea.id, update)
        except (NotFoundError, PersistenceError) as e:
            logger.error(f"Could not apply enrichment to idea {idea.id}: {e}")
            return idea

    async def _discard_vector(self, vector_id: str) -> None:
        try:
            await self._run(self.vector_store.delete, vector_id)
        except PersistenceError as e:
            logger.warning(f"Could not delete vector {vector_id}: {e}")

    async def _store_embedding(self, idea: IdeaRead) -> tuple[IdeaRead, list[float] | None]:
        """
        Embed an idea, store the vector and link it from the idea row.

        Returns:
            The (possibly updated) idea and its vector, or None when no
            vector could be stored
        """
        embeddings = self.embeddings
        if not embeddings.is_available:
            return idea, None

        vector_id = str(idea.id)
        try:
            vector = await embeddings.embed(idea.content)
            await self._run(
                self.vector_store.put,
                vector_id,
                vector,
                {"idea_id": idea.id, "preview": idea.content[:100]},
            )
        except _VECTOR_ERRORS as e:
            logger.warning(f"No embedding stored for idea {idea.id}: {e}")
            return idea, None

        updated = await self._apply_update(idea, {"vector_id": vector_id})
        if updated.vector_id != vector_id:
            await self._discard_vector(vector_id)
            return idea, None
        return updated, vector

    async def _analyze(self, idea: IdeaRead, provider: AIProvider | None) -> tuple[IdeaRead, bool]:
        """
        Apply AI tags and summary, or local keyword tags as a fallback.

        Returns:
            The (possibly updated) idea and whether AI analysis succeeded
        """
        analysis: AnalysisResult | None = None
        if provider is not None:
            try:
                analysis = await provider.analyze(idea.content)
            except ProviderError as e:
                logger.warning(f"AI analysis failed for idea {idea.id}, using local tags: {e}")

        update: dict[str, Any] = {}
        if analysis is not None:
            merged = normalize_tags(idea.tags + analysis.tags)
            if merged != idea.tags:
                update["tags"] = merged
            if analysis.summary:
                update["summary"] = analysis.summary

        if not update.get("tags", idea.tags):
            fallback = extract_keywords(idea.content, self.config.fallback_tag_count)
            if fallback:
                update["tags"] = fallback

        if update:
            idea = await self._apply_update(idea, update)
        return idea, analysis is not None

    async def _create_reminder(self, idea: IdeaRead, provider: AIProvider) -> int | None:
        """Ask the provider for a reminder and store it if one is recommended."""
        try:
            suggestion = await provider.suggest_reminder(idea.content, utc_now())
        except ProviderError as e:
            logger.warning(f"Reminder suggestion failed for idea {idea.id}: {e}")
            return None

        if not suggestion.needs_reminder or suggestion.due_at is None:
            return None

        try:
            return await self._run(
                self.ideas.add_reminder, idea.id, suggestion.due_at, suggestion.message or ""
            )
        except (NotFoundError, PersistenceError) as e:
            logger.error(f"Could not store reminder for idea {idea.id}: {e}")
            return None

    async def _related_from_vector(
        self,
        vector: list[float],
        exclude_ids: Iterable[str] = (),
        limit: int | None = None,
        threshold: float | None = None,
    ) -> list[RelatedIdea]:
        """Resolve vector search hits to ideas, skipping hits without an idea."""
        try:
            hits = await self._run(
                self.vector_store.search_similar,
                vector,
                limit if limit is not None else self.config.related_ideas_limit,
                threshold if threshold is not None else self.config.related_ideas_threshold,
                exclude_ids,
            )
        except DimensionMismatchError as e:
            logger.warning(f"Similarity search skipped: {e}")
            return []

        hit_ids = []
        for hit in hits:
            try:
                hit_ids.append((int(hit.id), hit.similarity))
            except ValueError:
                logger.debug(f"Ignoring vector {hit.id}: not an idea id")

        found = await self._run(self.ideas.get_notes, [idea_id for idea_id, _ in hit_ids])
        return [
            RelatedIdea(idea=found[idea_id], similarity=similarity)
            for idea_id, similarity in hit_ids
            if idea_id in found
        ]

    # ------------------------------------------------------------------
    # Ideas
    # ------------------------------------------------------------------

    async def create_idea(
        self,
        content: str,
        tags: list[str] | None = None,
        suggest_reminder: bool = True,
        find_related: bool = True,
    ) -> IdeaCreateResult:
        """
        Save an idea, then enrich it with AI where available.

        Steps: persist; embed and store the vector; analyze for tags and
        summary (local keyword tags as fallback); optionally create a
        suggested reminder; optionally collect related ideas.

        Args:
            content: Idea text
            tags: Caller-supplied tags
            suggest_reminder: Ask the provider for a reminder
            find_related: Return ideas similar to the new one

        Returns:
            The saved idea with enrichment results

        Raises:
            ValidationError: If content is empty
            PersistenceError: If the idea cannot be saved
        """
        idea = await self._run(self.ideas.save_note, content, tags)
        provider = self._provider if self.ai_configured else None

        idea, vector = await self._store_embedding(idea)
        idea, analyzed = await self._analyze(idea, provider)

        reminder_id = None
        if suggest_reminder and provider is not None:
            reminder_id = await self._create_reminder(idea, provider)

        related: list[RelatedIdea] = []
        if find_related and vector is not None:
            try:
                related = await self._related_from_vector(vector, exclude_ids=[str(idea.id)])
            except PersistenceError as e:
                logger.error(f"Could not load related ideas for idea {idea.id}: {e}")

        logger.info(
            f"Created idea {idea.id} (embedded={vector is not None}, analyzed={analyzed}, "
            f"reminder={reminder_id}, related={len(related)})"
        )
        return IdeaCreateResult(
            idea=idea,
            related=related,
            reminder_id=reminder_id,
            embedded=vector is not None,
            ai_analyzed=analyzed,
        )

    async def get_idea(self, idea_id: int) -> IdeaRead:
        """
        Get a single idea.

        Raises:
            NotFoundError: If the idea does not exist
        """
        idea = await self._run(self.ideas.get_note, idea_id)
        if idea is None:
            raise NotFoundError("Idea", f"Idea {idea_id} not found")
        return idea

    async def list_ideas(self) -> list[IdeaRead]:
        """All ideas, newest first."""
        return await self._run(self.ideas.get_all_notes)

    async def update_idea(self, idea_id: int, update: IdeaUpdate | dict[str, Any]) -> IdeaRead:
        """
        Update an idea; re-embed it when its content changes.

        If re-embedding fails the stale vector is dropped, so similarity
        never reflects old content.

        Raises:
            NotFoundError: If the idea does not exist
            ValidationError: If new content is empty
        """
        if isinstance(update, dict):
            update = IdeaUpdate(**update)
        idea = await self._run(self.ideas.update_note, idea_id, update)

        if "content" not in update.model_fields_set:
            return idea

        refreshed, vector = await self._store_embedding(idea)
        if vector is None and idea.vector_id is not None:
            await self._discard_vector(idea.vector_id)
            refreshed = await self._apply_update(idea, {"vector_id": None})
        return refreshed

    async def delete_idea(self, idea_id: int) -> bool:
        """
        Delete an idea, then its vector on a best-effort basis.

        Raises:
            NotFoundError: If the idea does not exist
        """
        idea = await self._run(self.ideas.get_note, idea_id)
        removed = await self._run(self.ideas.delete_note, idea_id)
        if not removed:
            raise NotFoundError("Idea", f"Idea {idea_id} not found")

        vector_ids = {str(idea_id)}
        if idea is not None and idea.vector_id:
            vector_ids.add(idea.vector_id)
        for vector_id in vector_ids:
            await self._discard_vector(vector_id)
        return True

    async def search_ideas(self, query: str) -> list[IdeaRead]:
        """Substring search over idea content and summaries."""
        return await self._run(self.ideas.search_by_content, query)

    async def search_by_tag(self, tag: str) -> list[IdeaRead]:
        """Ideas with the given tag."""
        return await self._run(self.ideas.search_by_tag, tag)

    async def get_ideas_by_tags(self, tag_names: list[str]) -> list[IdeaRead]:
        """Ideas carrying all of the given tags."""
        return await self._run(self.ideas.get_by_tags, tag_names)

    async def get_all_tags(self) -> list[TagRead]:
        """All tags with usage counts."""
        return await self._run(self.ideas.get_all_tags)

    async def find_related_ideas(
        self, idea_id: int, limit: int | None = None, threshold: float | None = None
    ) -> list[RelatedIdea]:
        """
        Ideas similar to an existing idea.

        Returns an empty list when the idea has no stored vector.

        Raises:
            NotFoundError: If the idea does not exist
        """
        idea = await self.get_idea(idea_id)
        record = self.vector_store.get(idea.vector_id or str(idea.id))
        if record is None:
            logger.info(f"Idea {idea_id} has no vector for similarity search")
            return []
        return await self._related_from_vector(
            record.vector, exclude_ids=[record.id, str(idea.id)], limit=limit, threshold=threshold
        )

    async def semantic_search(self, query: str, limit: int = 10) -> list[RelatedIdea]:
        """
        Ideas most similar to a free-text query.

        Falls back to substring search (similarity 0.0) when no embedding
        can be produced.
        """
        if not query or not query.strip():
            return []

        embeddings = self.embeddings
        if embeddings.is_available:
            try:
                vector = await embeddings.embed(query)
                return await self._related_from_vector(vector, limit=limit, threshold=0.0)
            except (ProviderError, DimensionMismatchError) as e:
                logger.warning(f"Semantic search unavailable, using text search: {e}")

        matches = await self.search_ideas(query)
        return [RelatedIdea(idea=idea, similarity=0.0) for idea in matches[:limit]]

    async def answer_query(self, query: str, limit: int = 5) -> AnswerResult:
        """
        Answer a question from the knowledge base.

        Never raises for provider problems; the result reports whether an
        answer was available.
        """
        if not self.ai_configured:
            return AnswerResult(answer=None, available=False, error="AI provider not configured")

        context = [related.idea for related in await self.semantic_search(query, limit)]
        context_ids = [idea.id for idea in context]
        try:
            answer = await self._provider.answer(query, context)  # type: ignore[union-attr]
        except ProviderError as e:
            logger.warning(f"Answer unavailable: {e}")
            return AnswerResult(
                answer=None, available=False, context_ids=context_ids, error=str(e)
            )
        return AnswerResult(answer=answer, available=True, context_ids=context_ids)

    async def reindex_embeddings(self) -> int:
        """
        Store vectors for ideas that lack one and drop orphaned vectors.

        Returns:
            Number of ideas that received a vector
        """
        ideas = await self.list_ideas()
        referenced = {idea.vector_id for idea in ideas if idea.vector_id}
        referenced |= {str(idea.id) for idea in ideas}
        for vector_id in self.vector_store.ids():
            if vector_id not in referenced:
                logger.info(f"Dropping orphaned vector {vector_id}")
                await self._discard_vector(vector_id)

        if not self.embeddings.is_available:
            return 0

        embedded = 0
        for idea in ideas:
            if idea.vector_id and self.vector_store.get(idea.vector_id) is not None:
                continue
            _, vector = await self._store_embedding(idea)
            if vector is not None:
                embedded += 1

        logger.info(f"Re-indexed {embedded} ideas")
        return embedded

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    async def generate_reminder(self, idea_id: int) -> int | None:
        """
        Ask the provider for a reminder on an existing idea.

        Returns:
            The new reminder ID, or None if none was recommended or AI is
            unavailable

        Raises:
            NotFoundError: If the idea does not exist
        """
        idea = await self.get_idea(idea_id)
        if not self.ai_configured:
            return None
        return await self._create_reminder(idea, self._provider)  # type: ignore[arg-type]

    async def add_reminder(self, idea_id: int, due_at: datetime, message: str) -> int:
        """Schedule a reminder for an idea."""
        return await self._run(self.ideas.add_reminder, idea_id, due_at, message)

    async def get_pending_reminders(self, now: datetime | None = None) -> list[ReminderRead]:
        """Uncompleted reminders that are due."""
        return await self._run(self.ideas.get_pending_reminders, now)

    async def get_all_reminders(self, include_completed: bool = True) -> list[ReminderRead]:
        """All reminders."""
        return await self._run(self.ideas.get_all_reminders, include_completed)

    async def complete_reminder(self, reminder_id: int) -> bool:
        """Mark a reminder completed."""
        return await self._run(self.ideas.complete_reminder, reminder_id)

    async def delete_reminder(self, reminder_id: int) -> bool:
        """Delete a reminder."""
        return await self._run(self.ideas.delete_reminder, reminder_id)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def get_settings(self) -> AISettings:
        """Current AI settings."""
        return self._ai_settings.model_copy()

    async def save_settings(self, ai_settings: AISettings) -> AISettings:
        """
        Replace the AI settings and switch to the selected provider.

        Raises:
            ValidationError: If the provider name is unknown
        """
        if ai_settings.ai_provider not in available_providers():
            raise ValidationError(
                f"Unknown AI provider '{ai_settings.ai_provider}'. "
                f"Available: {', '.join(available_providers())}"
            )
        saved = await self._run(self.settings_repository.save_settings, ai_settings)
        self._ai_settings = saved
        self._provider = self._build_provider(saved)
        self._embeddings = self._build_embeddings()
        return saved.model_copy()

    def close(self) -> None:
        """Release the vector store."""
        self.vector_store.close()
