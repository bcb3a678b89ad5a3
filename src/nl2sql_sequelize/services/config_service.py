"""Configuration service for nl2sql-sequelize.

This module provides configuration management for the nl2sql-sequelize
application. It centralizes environment variable handling so that every
component reads its settings the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from nl2sql_sequelize.extraction.constants import Constants as ExtractionConstants
from nl2sql_sequelize.retrieval.constants import Constants as RetrievalConstants
from nl2sql_sequelize.retrieval.engine import RetrievalOptions

_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ServiceConfig:
    """Resolved settings for one schema service.

    Attributes:
        project_root: Directory containing the ``models`` directory
        embedding_model: Model2Vec model name or path
        top_k: Default vector-signal budget for retrieval
        threshold: Default vector-signal score threshold
        watch: Whether to watch model files for changes
        watch_stability_ms: Quiet period before a change batch is reloaded
        watch_max_wait_ms: Upper bound on how long a busy batch is held back
    """

    project_root: Path
    embedding_model: str = RetrievalConstants.DEFAULT_EMBEDDING_MODEL
    top_k: int = RetrievalConstants.DEFAULT_TOP_K
    threshold: float = RetrievalConstants.DEFAULT_THRESHOLD
    watch: bool = True
    watch_stability_ms: int = ExtractionConstants.DEFAULT_WATCH_STABILITY_MS
    watch_max_wait_ms: int = ExtractionConstants.DEFAULT_WATCH_MAX_WAIT_MS

    def retrieval_options(self) -> RetrievalOptions:
        """Default retrieval options derived from this configuration."""
        return RetrievalOptions(top_k=self.top_k, threshold=self.threshold)


class ConfigService:
    """Service for managing configuration."""

    @staticmethod
    def get_project_root() -> Path:
        """Get the Sequelize project root from the environment.

        Returns:
            ``NL2SQL_SEQUELIZE_PROJECT_ROOT`` when set, else the current directory
        """
        value = os.getenv("NL2SQL_SEQUELIZE_PROJECT_ROOT", "").strip()
        return Path(value).expanduser() if value else Path.cwd()

    @staticmethod
    def get_embedding_model() -> str:
        """Embedding model name, overridable via environment variable."""
        return os.getenv(
            "NL2SQL_SEQUELIZE_EMBEDDING_MODEL",
            RetrievalConstants.DEFAULT_EMBEDDING_MODEL,
        )

    @staticmethod
    def retrieval_top_k() -> int:
        """Default number of models selected by the vector signal."""
        val = os.getenv("NL2SQL_SEQUELIZE_TOP_K", str(RetrievalConstants.DEFAULT_TOP_K))
        try:
            n = int(val)
        except ValueError:
            n = RetrievalConstants.DEFAULT_TOP_K
        return max(1, n)

    @staticmethod
    def retrieval_threshold() -> float:
        """Default minimum vector score, clamped to [-1, 1]."""
        val = os.getenv("NL2SQL_SEQUELIZE_THRESHOLD", str(RetrievalConstants.DEFAULT_THRESHOLD))
        try:
            threshold = float(val)
        except ValueError:
            threshold = RetrievalConstants.DEFAULT_THRESHOLD
        return min(1.0, max(-1.0, threshold))

    @staticmethod
    def watch_enabled() -> bool:
        """Whether model files are watched; unknown values keep the default (on)."""
        val = os.getenv("NL2SQL_SEQUELIZE_WATCH", "true").strip().lower()
        return val not in _FALSY

    @staticmethod
    def watch_stability_ms() -> int:
        """Quiet period (ms) after the last file change before reloading."""
        default = ExtractionConstants.DEFAULT_WATCH_STABILITY_MS
        val = os.getenv("NL2SQL_SEQUELIZE_WATCH_STABILITY_MS", str(default))
        try:
            n = int(val)
        except ValueError:
            n = default
        return max(10, n)

    @staticmethod
    def watch_max_wait_ms() -> int:
        """Longest time (ms) a continuous burst of changes is held back."""
        default = ExtractionConstants.DEFAULT_WATCH_MAX_WAIT_MS
        val = os.getenv("NL2SQL_SEQUELIZE_WATCH_MAX_WAIT_MS", str(default))
        try:
            n = int(val)
        except ValueError:
            n = default
        return max(ConfigService.watch_stability_ms(), n)

    @staticmethod
    def load() -> ServiceConfig:
        """Resolve the full service configuration from the environment."""
        return ServiceConfig(
            project_root=ConfigService.get_project_root(),
            embedding_model=ConfigService.get_embedding_model(),
            top_k=ConfigService.retrieval_top_k(),
            threshold=ConfigService.retrieval_threshold(),
            watch=ConfigService.watch_enabled(),
            watch_stability_ms=ConfigService.watch_stability_ms(),
            watch_max_wait_ms=ConfigService.watch_max_wait_ms(),
        )
