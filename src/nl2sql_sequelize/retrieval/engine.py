"""Hybrid retrieval engine.

This module selects the subset of a schema snapshot that is relevant to a
free-text query. Three signals are fused:

1. Vector similarity between the query and each model's canonical text
2. Keyword matches in model, table and field names and descriptions
3. One-hop relational expansion from the models selected by 1 and 2

The result is always returned in snapshot order, so the same query over the
same snapshot and embedding provider yields the same answer.

The embedding index lives in an explicit, immutable state object. Rebuilding
it creates a new state object that replaces the old one in a single
assignment; a retrieval that is already running keeps using the state it
started with.

Classes:
- RetrievalOptions: Per-query knobs (top_k, threshold, include_related)
- SelectionExplanation: Diagnostic view of one model's signals
- HybridRetrievalEngine: Index state plus the three-signal retrieval
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from fastmcp.utilities.logging import get_logger
import numpy as np

from nl2sql_sequelize.extraction.exceptions import EmbeddingError
from nl2sql_sequelize.extraction.models import Entity

from .constants import Constants
from .embeddings import EmbeddingProvider, entity_search_text
from .expansion import RelationGraph
from .keywords import extract_keywords, match_keywords

# Logger
_logger = get_logger("schema_retrieval.engine")


@dataclass(frozen=True)
class RetrievalOptions:
    """Options for one retrieval.

    Attributes:
        top_k: Maximum number of models selected by the vector signal
        threshold: Minimum vector score for the vector signal
        include_related: Whether to add models one relationship hop away
    """

    top_k: int = Constants.DEFAULT_TOP_K
    threshold: float = Constants.DEFAULT_THRESHOLD
    include_related: bool = True

    def __post_init__(self) -> None:
        if self.top_k < 1:
            msg = f"top_k must be at least 1, got {self.top_k}"
            raise ValueError(msg)


@dataclass(frozen=True)
class SelectionExplanation:
    """Why a model was (or would be) selected for a query."""

    model: str
    vector_score: float
    keyword: bool
    related: bool
    reason: str


@dataclass(frozen=True)
class _IndexState:
    entities: tuple[Entity, ...]
    vectors: np.ndarray
    graph: RelationGraph


class HybridRetrievalEngine:
    """Three-signal retrieval over a schema snapshot."""

    def __init__(self, provider: EmbeddingProvider) -> None:
        """Initialize the engine.

        Args:
            provider: Embedding provider used for models and queries
        """
        self._provider = provider
        self._state: _IndexState | None = None

    @property
    def is_initialized(self) -> bool:
        return self._state is not None

    @property
    def entities(self) -> tuple[Entity, ...]:
        """Models covered by the current index (empty before initialization)."""
        return self._state.entities if self._state is not None else ()

    async def initialize(self, entities: Sequence[Entity]) -> None:
        """Build the embedding index for ``entities``.

        Raises:
            EmbeddingError: If the provider fails; the engine stays uninitialized
        """
        _logger.info("Computing embeddings for %d models", len(entities))
        self._state = await self._build_state(entities)

    async def reload(self, entities: Sequence[Entity]) -> None:
        """Rebuild the index for a new snapshot and swap it in.

        The previous index keeps serving until the new one is complete; on
        failure it stays in place.

        Raises:
            EmbeddingError: If the provider fails
        """
        _logger.info("Rebuilding embeddings for %d models", len(entities))
        self._state = await self._build_state(entities)

    async def vector_scores(self, query: str) -> list[tuple[str, float]]:
        """Score every model against ``query``, best first.

        Ties keep snapshot order.

        Raises:
            EmbeddingError: If the engine is not initialized or the provider fails
        """
        state = self._require_state()
        return await self._score(state, query)

    async def find_relevant(
        self, query: str, options: RetrievalOptions | None = None
    ) -> list[Entity]:
        """Return the models relevant to ``query`` in snapshot order.

        Raises:
            EmbeddingError: If the engine is not initialized or the provider fails
        """
        state = self._require_state()
        options = options or RetrievalOptions()

        scores = await self._score(state, query)
        vector_hits = _vector_selection(scores, options)
        keyword_hits = {e.name for e in match_keywords(state.entities, extract_keywords(query))}

        selected = set(vector_hits) | keyword_hits
        if options.include_related and selected:
            selected |= state.graph.related(selected)

        result = [entity for entity in state.entities if entity.name in selected]
        _logger.info(
            "Selected %d of %d models (vector=%d, keyword=%d)",
            len(result),
            len(state.entities),
            len(vector_hits),
            len(keyword_hits),
        )
        return result

    async def explain_selection(
        self, query: str, options: RetrievalOptions | None = None
    ) -> list[SelectionExplanation]:
        """Explain which signals select each model for ``query``.

        Models with a zero vector score or with no signal at all are omitted.
        Entries are ordered by vector score, best first.

        Raises:
            EmbeddingError: If the engine is not initialized or the provider fails
        """
        state = self._require_state()
        options = options or RetrievalOptions()

        scores = await self._score(state, query)
        vector_hits = set(_vector_selection(scores, options))
        keyword_hits = {e.name for e in match_keywords(state.entities, extract_keywords(query))}
        seeds = vector_hits | keyword_hits
        related = state.graph.related(seeds) if options.include_related and seeds else set()

        explanations: list[SelectionExplanation] = []
        for name, score in scores:
            if score == 0.0:
                continue
            reasons: list[str] = []
            if name in vector_hits:
                reasons.append(f"semantic similarity ({score * 100:.1f}%)")
            if name in keyword_hits:
                reasons.append(Constants.REASON_KEYWORD)
            if name in related:
                reasons.append(Constants.REASON_RELATED)
            if not reasons:
                continue
            explanations.append(
                SelectionExplanation(
                    model=name,
                    vector_score=score,
                    keyword=name in keyword_hits,
                    related=name in related,
                    reason=", ".join(reasons),
                )
            )
        return explanations

    # ---- internal ------------------------------------------------------------

    def _require_state(self) -> _IndexState:
        state = self._state
        if state is None:
            msg = "Retrieval engine is not initialized"
            raise EmbeddingError(msg)
        return state

    async def _build_state(self, entities: Sequence[Entity]) -> _IndexState:
        entities = tuple(entities)
        vectors = [await self._embed(entity_search_text(entity)) for entity in entities]

        if vectors:
            dims = {vector.shape[0] for vector in vectors}
            if len(dims) != 1:
                msg = f"Embedding provider returned inconsistent dimensions: {sorted(dims)}"
                raise EmbeddingError(msg)
            matrix = np.vstack(vectors)
        else:
            matrix = np.zeros((0, 0), dtype=np.float32)

        state = _IndexState(entities=entities, vectors=matrix, graph=RelationGraph(entities))
        _logger.info("Embedding index ready: %d models, dim=%d", matrix.shape[0], matrix.shape[1])
        return state

    async def _embed(self, text: str) -> np.ndarray:
        try:
            vector = np.asarray(await self._provider.embed(text), dtype=np.float32)
        except Exception as exc:  # noqa: BLE001
            msg = f"Embedding provider failed: {exc}"
            raise EmbeddingError(msg) from exc

        if vector.ndim != 1 or vector.size == 0:
            msg = f"Embedding provider returned an invalid vector of shape {vector.shape}"
            raise EmbeddingError(msg)
        return vector

    async def _score(self, state: _IndexState, query: str) -> list[tuple[str, float]]:
        query_vector = await self._embed(query)
        if not state.entities:
            return []
        if query_vector.shape[0] != state.vectors.shape[1]:
            msg = (
                f"Query embedding dimension {query_vector.shape[0]} does not match "
                f"index dimension {state.vectors.shape[1]}"
            )
            raise EmbeddingError(msg)

        raw = state.vectors @ query_vector
        scores = [(entity.name, float(raw[i])) for i, entity in enumerate(state.entities)]
        # sorted() is stable, so equal scores keep snapshot order
        return sorted(scores, key=lambda item: -item[1])


def _vector_selection(scores: list[tuple[str, float]], options: RetrievalOptions) -> list[str]:
    """Names passing the vector threshold, capped at ``top_k``, best first."""
    return [name for name, score in scores if score >= options.threshold][: options.top_k]
