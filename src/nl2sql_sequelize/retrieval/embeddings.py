"""Embedding functionality for semantic model search.

This module provides the embedding side of the retrieval engine: a light
wrapper over ``model2vec`` (`StaticModel`) for fast CPU-only sentence
embeddings, the provider protocol the engine depends on, and the canonical
text an entity is embedded as.

Classes:
- EmbeddingProvider: Protocol for async text-to-vector providers
- Embedder: Wrapper for Model2Vec ``StaticModel`` embedding models

Functions:
- entity_search_text(): Canonical searchable text of an entity
"""

from __future__ import annotations

import asyncio
from typing import Protocol, cast, runtime_checkable

from fastmcp.utilities.logging import get_logger
from model2vec import StaticModel
import numpy as np

from nl2sql_sequelize.extraction.models import Entity

from .constants import Constants

# Logger
_logger = get_logger("schema_retrieval.embeddings")


@runtime_checkable
class _EmbeddingBackend(Protocol):
    """Protocol for embedding backends.

    Any embedding backend must implement an ``encode`` method compatible with
    Model2Vec's interface, returning a 2D NumPy array of dtype ``float32``.
    """

    def encode(self, texts: list[str]) -> np.ndarray:  # pragma: no cover - protocol
        ...


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Text to fixed-length, L2-normalized vector.

    Every vector returned by one provider has the same dimension, so the dot
    product of two of them is their cosine similarity.
    """

    async def embed(self, text: str) -> np.ndarray:  # pragma: no cover - protocol
        ...


class Embedder:
    """Wrapper for Model2Vec static embedding models.

    This class provides a consistent interface for text embeddings using
    Model2Vec's CPU-optimized ``StaticModel`` loaded from the Hugging Face Hub.

    Attributes:
        model_name: Name or path of the loaded model
        _backend: Concrete embedding backend implementing ``_EmbeddingBackend``
    """

    def __init__(self, model_name: str = Constants.DEFAULT_EMBEDDING_MODEL) -> None:
        """Initialize the embedder with a Model2Vec model.

        Args:
            model_name: Name or path of the Model2Vec model to load. Defaults to
                ``minishlab/potion-retrieval-8M``.

        Raises:
            RuntimeError: If ``model2vec`` fails to load the model.
        """
        backend = StaticModel.from_pretrained(model_name)
        # Cast to the minimal protocol to keep strict typing without relying on
        # third-party type hints.
        self._backend: _EmbeddingBackend = cast(_EmbeddingBackend, backend)
        self.model_name = model_name
        _logger.info("Embedding backend: model2vec model=%s", model_name)

    def encode(self, texts: list[str]) -> np.ndarray:
        """Encode texts into embedding vectors.

        Args:
            texts: List of text strings to encode

        Returns:
            NumPy array of embedding vectors with shape ``(len(texts), dim)`` and
            dtype ``float32``.
        """
        vecs = self._backend.encode(list(texts))
        if vecs.dtype != np.float32:
            vecs = vecs.astype("float32", copy=False)
        return vecs

    async def embed(self, text: str) -> np.ndarray:
        """Embed one text as an L2-normalized vector.

        Encoding runs in a worker thread so the event loop stays responsive.
        """
        vecs = await asyncio.to_thread(self.encode, [text])
        return normalize(vecs[0])


def normalize(vector: np.ndarray) -> np.ndarray:
    """Return ``vector`` scaled to unit length (zero vectors stay zero)."""
    vector = np.asarray(vector, dtype=np.float32)
    norm = float(np.linalg.norm(vector))
    if norm == 0.0:
        return vector
    return vector / norm


def entity_search_text(entity: Entity) -> str:
    """Build the canonical searchable text of an entity.

    Every piece of information extracted for the model is included: names,
    description, each field with its type, flags, default, allowed values and
    reference, and each association.
    """
    parts = [f"Model name: {entity.name}", f"Table name: {entity.storage_name}"]
    if entity.description:
        parts.append(f"Description: {entity.description}")

    parts.append("Columns:")
    for field in entity.fields:
        column = [field.name]
        if field.type:
            column.append(field.type)
        if field.primary_key:
            column.append("primary key")
        if not field.nullable:
            column.append("required")
        if field.unique:
            column.append("unique")
        if field.default is not None:
            column.append(f"default {field.default.render()}")
        if field.enum_values:
            column.append(f"possible values: {' '.join(field.enum_values)}")
        if field.references is not None:
            column.append(f"references {field.references.target}")
        parts.append(" ".join(column))

    if entity.associations:
        parts.append("Relationships:")
        for association in entity.associations:
            relation = [association.kind.value, association.target]
            if association.foreign_key:
                relation.append(f"foreign key {association.foreign_key}")
            if association.alias:
                relation.append(f"alias {association.alias}")
            parts.append(" ".join(relation))

    return ". ".join(parts)
