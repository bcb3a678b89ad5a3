"""Keyword signal for schema retrieval.

Matching is deliberately plain: a model matches when any query keyword is a
substring of its lower-cased name, table name, field names or description.
"""

from __future__ import annotations

from collections.abc import Iterable

from nl2sql_sequelize.extraction.models import Entity

from .constants import Constants


def extract_keywords(query: str) -> list[str]:
    """Split a query into keywords.

    Punctuation becomes whitespace; tokens shorter than three characters and
    stop words are dropped. Order is preserved and repeats are kept.
    """
    cleaned = Constants.NON_WORD_PATTERN.sub(" ", query.lower())
    return [
        token
        for token in cleaned.split()
        if len(token) >= Constants.MIN_KEYWORD_LENGTH and token not in Constants.STOP_WORDS
    ]


def entity_search_blob(entity: Entity) -> str:
    """Lower-cased text a keyword is matched against."""
    parts = [entity.name, entity.storage_name, *entity.field_names(), entity.description]
    return " ".join(parts).lower()


def match_keywords(entities: Iterable[Entity], keywords: list[str]) -> list[Entity]:
    """Return the entities matching any keyword, in input order."""
    if not keywords:
        return []
    return [
        entity
        for entity in entities
        if any(keyword in entity_search_blob(entity) for keyword in keywords)
    ]
