"""Schema service for nl2sql-sequelize.

This module provides the main business logic orchestration for schema
operations. It ties the live schema tracker to the retrieval engine, keeps the
embedding index in step with the current snapshot, and hands results to the
response builders.
"""

from __future__ import annotations

from dataclasses import replace

from fastmcp.utilities.logging import get_logger

from nl2sql_sequelize.builders import (
    ModelDetailBuilder,
    RelevantModelsResultBuilder,
    SchemaOverviewBuilder,
    build_diagnostics,
    build_selection_reasons,
)
from nl2sql_sequelize.extraction.models import SchemaSnapshot
from nl2sql_sequelize.extraction.tracker import LiveSchemaTracker, create_live_schema
from nl2sql_sequelize.models import (
    ModelDetail,
    ModelSelectionReason,
    RelevantModelsResult,
    ReloadResult,
    SchemaOverview,
)
from nl2sql_sequelize.retrieval.embeddings import EmbeddingProvider, entity_search_text
from nl2sql_sequelize.retrieval.engine import HybridRetrievalEngine, RetrievalOptions
from nl2sql_sequelize.services.config_service import ServiceConfig

_logger = get_logger(__name__)


class SchemaService:
    """Service for orchestrating schema extraction and retrieval operations."""

    def __init__(
        self,
        tracker: LiveSchemaTracker,
        engine: HybridRetrievalEngine,
        config: ServiceConfig,
    ) -> None:
        """Initialize schema service with a tracker and a retrieval engine.

        Args:
            tracker: Live tracker holding the current snapshot
            engine: Retrieval engine; indexed by ``prime_retrieval``
            config: Resolved service configuration
        """
        self.tracker = tracker
        self.engine = engine
        self.config = config
        # Snapshot the engine's current index was built from
        self._indexed: SchemaSnapshot | None = None

    @property
    def snapshot(self) -> SchemaSnapshot:
        return self.tracker.current()

    @property
    def index_is_current(self) -> bool:
        """True when the embedding index matches the current snapshot."""
        return self._indexed is not None and self._indexed is self.snapshot

    # ---- lifecycle -----------------------------------------------------------

    async def prime_retrieval(self) -> None:
        """Build the embedding index for the current snapshot."""
        snapshot = self.snapshot
        await self.engine.initialize(snapshot.entities)
        self._indexed = snapshot

    async def _ensure_index(self) -> None:
        """Re-index when the snapshot changed since the last successful index build.

        Raises:
            EmbeddingError: If re-indexing fails; no result is served from the
                stale index
        """
        snapshot = self.snapshot
        if self._indexed is snapshot:
            return
        _logger.info("Embedding index is behind the current schema; re-indexing")
        await self.engine.reload(snapshot.entities)
        self._indexed = snapshot

    async def start_watching(self) -> None:
        """Start the file watcher when enabled in the configuration."""
        if not self.config.watch:
            _logger.info("Model file watching disabled by configuration")
            return
        await self.tracker.start_watch(on_changed=self._resync_index)

    async def stop(self) -> None:
        """Stop background work owned by the service."""
        await self.tracker.stop_watch()

    async def _resync_index(self) -> None:
        # Runs after each successful watch-triggered reload; on failure the
        # next query retries and reports the error
        await self._ensure_index()

    # ---- operations ----------------------------------------------------------

    def get_schema_overview(self) -> SchemaOverview:
        """Return the full schema with description and diagnostics."""
        error = self.tracker.last_reload_error
        return SchemaOverviewBuilder.build(
            self.snapshot, last_reload_error=str(error) if error is not None else None
        )

    def get_model_info(self, name: str) -> ModelDetail:
        """Return details of one model.

        Raises:
            KeyError: If the model does not exist in the current snapshot
        """
        entity = self.snapshot.get(name)
        if entity is None:
            raise KeyError(name)
        return ModelDetailBuilder.build(entity, search_text=entity_search_text(entity))

    def _options(
        self, top_k: int | None, threshold: float | None, *, include_related: bool
    ) -> RetrievalOptions:
        options = replace(self.config.retrieval_options(), include_related=include_related)
        if top_k is not None:
            options = replace(options, top_k=top_k)
        if threshold is not None:
            options = replace(options, threshold=threshold)
        return options

    async def find_relevant_models(
        self,
        query: str,
        *,
        top_k: int | None = None,
        threshold: float | None = None,
        include_related: bool = True,
    ) -> RelevantModelsResult:
        """Select the models relevant to a natural-language query.

        Raises:
            EmbeddingError: If the retrieval engine cannot embed the query or
                the index cannot be brought up to date with the current schema
        """
        options = self._options(top_k, threshold, include_related=include_related)
        await self._ensure_index()
        entities = await self.engine.find_relevant(query, options)
        return RelevantModelsResultBuilder.build(query, entities)

    async def explain_model_selection(
        self,
        query: str,
        *,
        top_k: int | None = None,
        threshold: float | None = None,
        include_related: bool = True,
    ) -> list[ModelSelectionReason]:
        """Explain which signals select each model for a query.

        Raises:
            EmbeddingError: If the retrieval engine cannot embed the query or
                the index cannot be brought up to date with the current schema
        """
        options = self._options(top_k, threshold, include_related=include_related)
        await self._ensure_index()
        explanations = await self.engine.explain_selection(query, options)
        return build_selection_reasons(explanations)

    async def reload_schema(self) -> ReloadResult:
        """Re-extract the schema and rebuild the embedding index.

        Raises:
            DiscoveryError: If the models can no longer be found; the previous
                schema stays current
            EmbeddingError: If re-indexing fails; queries keep failing until the
                index matches the current schema
        """
        snapshot = await self.tracker.reload()
        await self._ensure_index()
        return ReloadResult(
            total_models=len(snapshot), diagnostics=build_diagnostics(snapshot.diagnostics)
        )

    @classmethod
    async def create(cls, config: ServiceConfig, provider: EmbeddingProvider) -> SchemaService:
        """Extract the schema for ``config.project_root`` and build a service.

        The embedding index is not built yet; call ``prime_retrieval``.

        Raises:
            DiscoveryError: If the initial extraction finds no models
        """
        tracker = await create_live_schema(
            config.project_root,
            stability_ms=config.watch_stability_ms,
            max_wait_ms=config.watch_max_wait_ms,
        )
        return cls(tracker, HybridRetrievalEngine(provider), config)
