"""Constants for schema retrieval.

This module contains the retrieval defaults and the keyword stop-word list
used by the hybrid retrieval engine.
"""

from __future__ import annotations

import re
from typing import Final


class Constants:
    """Configuration constants for schema retrieval."""

    # Defaults
    DEFAULT_EMBEDDING_MODEL: Final[str] = "minishlab/potion-retrieval-8M"
    DEFAULT_TOP_K: Final[int] = 5
    DEFAULT_THRESHOLD: Final[float] = 0.25

    # Keyword signal
    MIN_KEYWORD_LENGTH: Final[int] = 3
    NON_WORD_PATTERN: Final[re.Pattern[str]] = re.compile(r"[^\w\s]")
    STOP_WORDS: Final[frozenset[str]] = frozenset(
        {
            "show",
            "get",
            "find",
            "list",
            "all",
            "from",
            "where",
            "select",
            "the",
            "and",
            "with",
            "for",
            "that",
            "have",
        }
    )

    # Relational expansion edge kinds
    EDGE_ASSOCIATION: Final[str] = "association"
    EDGE_REFERENCE: Final[str] = "reference"

    # Selection reasons
    REASON_KEYWORD: Final[str] = "keyword match in name/columns"
    REASON_RELATED: Final[str] = "related to matched models"
