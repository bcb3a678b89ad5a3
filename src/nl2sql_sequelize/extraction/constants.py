"""Constants and enums for schema extraction.

This module contains the source-layout conventions, recognized call shapes,
and enumeration definitions used throughout the extraction pipeline.
"""

from __future__ import annotations

from enum import Enum
import re
from typing import Final


class RelationKind(str, Enum):
    """Association kinds recognized in model and centralized files."""

    HAS_MANY = "hasMany"
    HAS_ONE = "hasOne"
    BELONGS_TO = "belongsTo"
    BELONGS_TO_MANY = "belongsToMany"


class Constants:
    """Configuration constants for schema extraction."""

    # Source layout
    MODELS_DIRNAME: Final[str] = "models"
    SOURCE_EXTENSIONS: Final[tuple[str, ...]] = (".js", ".ts")
    DECLARATION_SUFFIX: Final[str] = ".d.ts"
    TEST_SUFFIXES: Final[tuple[str, ...]] = (".test.js", ".test.ts")

    # Centralized association files, highest priority tier first
    DEDICATED_ASSOCIATION_FILES: Final[tuple[str, ...]] = ("associations.js", "associations.ts")
    AGGREGATOR_FILES: Final[tuple[str, ...]] = ("index.js", "index.ts")

    # Call shapes
    DEFINE_METHOD: Final[str] = "define"
    INIT_METHOD: Final[str] = "init"
    INIT_OPTION_MARKERS: Final[frozenset[str]] = frozenset({"sequelize", "tableName", "modelName"})
    RELATION_KINDS: Final[tuple[str, ...]] = tuple(kind.value for kind in RelationKind)
    ENUM_MARKER: Final[str] = "ENUM"

    # Regex patterns
    TABLE_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"tableName:\s*['\"`]([^'\"`]+)['\"`]")
    QUOTE_PATTERN: Final[re.Pattern[str]] = re.compile(r"['\"`]")
    FOREIGN_KEY_OPTION_PATTERN: Final[re.Pattern[str]] = re.compile(
        r"foreignKey:\s*['\"`](\w+)['\"`]"
    )
    ALIAS_OPTION_PATTERN: Final[re.Pattern[str]] = re.compile(r"as:\s*['\"`](\w+)['\"`]")

    # Watch coalescing (milliseconds)
    DEFAULT_WATCH_STABILITY_MS: Final[int] = 100
    DEFAULT_WATCH_MAX_WAIT_MS: Final[int] = 1600


def relation_call_pattern(kind: RelationKind) -> re.Pattern[str]:
    """Build the call-site pattern for an in-file association of ``kind``.

    The target may be a bare identifier or a property chain (``models.Order``);
    group 1 captures the final identifier and group 2 the options object body.
    """
    return re.compile(
        rf"\.{kind.value}\s*\(\s*(?:[\w$]+\.)*([\w$]+)\s*(?:,\s*\{{([^}}]+)\}})?\s*\)"
    )


IN_FILE_RELATION_PATTERNS: Final[tuple[tuple[RelationKind, re.Pattern[str]], ...]] = tuple(
    (kind, relation_call_pattern(kind)) for kind in RelationKind
)

__all__ = [
    "IN_FILE_RELATION_PATTERNS",
    "Constants",
    "RelationKind",
    "relation_call_pattern",
]
