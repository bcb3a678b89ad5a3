"""Schema retrieval for natural-language queries.

Selects the models of a schema snapshot that a downstream SQL generation step
needs for a given question, fusing semantic similarity, keyword matches and
one-hop relationship expansion.

Main Components:
- HybridRetrievalEngine: Embedding index state and three-signal retrieval
- RetrievalOptions / SelectionExplanation: Query knobs and diagnostic output
- Embedder / EmbeddingProvider: model2vec-backed embeddings and their contract
- RelationGraph: NetworkX relationship graph used for expansion
"""

from .embeddings import Embedder, EmbeddingProvider, entity_search_text
from .engine import HybridRetrievalEngine, RetrievalOptions, SelectionExplanation
from .expansion import RelationGraph
from .keywords import extract_keywords, match_keywords

__all__ = [
    "Embedder",
    "EmbeddingProvider",
    "HybridRetrievalEngine",
    "RelationGraph",
    "RetrievalOptions",
    "SelectionExplanation",
    "entity_search_text",
    "extract_keywords",
    "match_keywords",
]
