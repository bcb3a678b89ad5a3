"""Schema service manager for nl2sql-sequelize.

Provides a singleton `SchemaService` with background initialization during
FastMCP lifespan. Ensures exactly-once startup per process, fast-fails while
initializing, and keeps the embedder as a process-wide singleton.

Initialization runs as a task on the server's event loop: model file reads
and embedding calls already yield to the loop, so tools stay responsive
while the schema is being extracted and indexed.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import contextlib
from dataclasses import replace
import threading
import time
from typing import ClassVar

from fastmcp.utilities.logging import get_logger

from nl2sql_sequelize.extraction.exceptions import EmbeddingError, SchemaExtractionError
from nl2sql_sequelize.retrieval.embeddings import Embedder, EmbeddingProvider
from nl2sql_sequelize.services.config_service import ConfigService, ServiceConfig
from nl2sql_sequelize.services.schema_service import SchemaService
from nl2sql_sequelize.services.state import (
    INIT_NO_RESTART_PHASES,
    INIT_NOT_READY_PHASES,
    SchemaInitPhase,
    SchemaInitState,
)

ProviderFactory = Callable[[str], EmbeddingProvider]


class SchemaServiceManager:
    """Singleton manager for SchemaService instances.

    This manager ensures that SchemaService is initialized once during
    FastMCP lifespan startup and provides access to it throughout the
    session lifecycle.
    """

    _instance: ClassVar[SchemaServiceManager | None] = None
    _lock: ClassVar[threading.Lock] = threading.Lock()
    GLOBAL_EMBEDDER: ClassVar[EmbeddingProvider | None] = None

    def __init__(
        self,
        config: ServiceConfig | None = None,
        provider_factory: ProviderFactory | None = None,
    ) -> None:
        """Initialize the schema service manager.

        Args:
            config: Service configuration; read from the environment when omitted
            provider_factory: Builds the embedding provider from a model name;
                defaults to the model2vec ``Embedder``
        """
        self._config = config
        self._provider_factory: ProviderFactory = provider_factory or Embedder
        self._schema_service: SchemaService | None = None
        self._logger = get_logger(__name__)

        self._init_task: asyncio.Task[None] | None = None
        self._ready_event = asyncio.Event()
        self._state = SchemaInitState(phase=SchemaInitPhase.IDLE)

    @classmethod
    def get_instance(cls) -> SchemaServiceManager:
        """Get the singleton instance of SchemaServiceManager.

        Returns:
            SchemaServiceManager: The singleton instance
        """
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (primarily for testing)."""
        with cls._lock:
            cls._instance = None
            cls.GLOBAL_EMBEDDER = None

    def start_background_initialization(self) -> None:
        """Start background initialization exactly once without blocking.

        Must be called from a running event loop.
        """
        if self._state.phase in INIT_NO_RESTART_PHASES:
            self._logger.debug("Initialization already %s; skipping start", self._state.phase)
            return
        if self._state.phase in {SchemaInitPhase.FAILED, SchemaInitPhase.STOPPED}:
            # Do not auto-restart after failure or stop
            self._logger.warning("Initialization in phase %s; not restarting", self._state.phase)
            return

        self._state = replace(self._state, phase=SchemaInitPhase.STARTING, started_at=time.time())
        self._ready_event.clear()
        self._init_task = asyncio.create_task(self._run_initialization(), name="schema-init")

    async def initialize(self) -> None:
        """Await until initialization completes (READY or FAILED)."""
        self.start_background_initialization()
        await self.ensure_ready(wait_timeout=None)

    async def ensure_ready(self, wait_timeout: float | None = None) -> bool:
        """Wait for initialization completion.

        Returns True when READY. Returns False on timeout or FAILED.
        """
        phase = self._state.phase
        if phase is SchemaInitPhase.READY:
            return True
        if phase in {SchemaInitPhase.FAILED, SchemaInitPhase.STOPPED}:
            return False
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._ready_event.wait(), timeout=wait_timeout)
        return self._state.phase is SchemaInitPhase.READY

    async def get_schema_service(self) -> SchemaService:
        """Get the initialized SchemaService instance.

        Returns:
            SchemaService: The initialized schema service instance

        Raises:
            RuntimeError: If the service is not initialized or initialization failed
        """
        phase = self._state.phase
        if phase in INIT_NOT_READY_PHASES:
            self._logger.info("SchemaService requested while initializing (phase=%s)", phase)
            msg = "SchemaService initialization in progress"
            raise RuntimeError(msg)
        if phase is SchemaInitPhase.FAILED:
            self._logger.error(
                "SchemaService initialization previously failed: %s", self._state.error_message
            )
            msg = "SchemaService is not available due to initialization failure"
            raise RuntimeError(msg)
        if phase is SchemaInitPhase.STOPPED:
            self._logger.error("SchemaService requested after STOPPED phase")
            msg = "SchemaService has been stopped"
            raise RuntimeError(msg)

        if self._schema_service is None:
            self._logger.error("SchemaService instance is None despite successful initialization")
            error_msg = "SchemaService instance is unexpectedly None"
            raise RuntimeError(error_msg)

        return self._schema_service

    async def shutdown(self) -> None:
        """Stop initialization or the file watcher and release the service."""
        task = self._init_task
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if self._schema_service is not None:
            try:
                self._logger.info("Shutting down SchemaService…")
                await self._schema_service.stop()
                self._logger.info("SchemaService shutdown completed")
            except (OSError, RuntimeError) as exc:
                self._logger.warning("Error during SchemaService shutdown: %s", exc)
            finally:
                self._schema_service = None

        self._state = replace(self._state, phase=SchemaInitPhase.STOPPED)
        self._ready_event.set()

    @property
    def is_initialized(self) -> bool:
        """Check if the SchemaService is initialized.

        Returns:
            bool: True if initialized, False otherwise
        """
        return self._state.phase is SchemaInitPhase.READY

    @property
    def has_initialization_error(self) -> bool:
        """Check if there was an initialization error.

        Returns:
            bool: True if there was an error, False otherwise
        """
        return self._state.phase is SchemaInitPhase.FAILED

    def status(self) -> SchemaInitState:
        """Return a snapshot of the initialization state."""
        return self._state

    # ---- internal ------------------------------------------------------------

    async def _run_initialization(self) -> None:
        self._state = replace(self._state, phase=SchemaInitPhase.RUNNING)
        try:
            self._schema_service = await self._initialize()
        except (SchemaExtractionError, ValueError, RuntimeError, OSError) as exc:
            self._state = replace(
                self._state,
                phase=SchemaInitPhase.FAILED,
                error_message=str(exc),
                completed_at=time.time(),
                attempts=self._state.attempts + 1,
            )
            self._logger.exception("SchemaService initialization failed")
        else:
            self._state = replace(
                self._state,
                phase=SchemaInitPhase.READY,
                completed_at=time.time(),
                attempts=self._state.attempts + 1,
            )
        finally:
            self._ready_event.set()

    async def _initialize(self) -> SchemaService:
        """Extract the schema, build the embedding index and start watching."""
        self._logger.info("Starting SchemaService initialization…")
        config = self._config or ConfigService.load()
        self._state = replace(self._state, project_root=str(config.project_root))

        provider = await self._ensure_global_embedder(config.embedding_model)
        service = await SchemaService.create(config, provider)
        self._logger.info("Extracted %d models from %s", len(service.snapshot), config.project_root)

        await service.prime_retrieval()
        await service.start_watching()
        self._logger.info("SchemaService instance created successfully")
        return service

    async def _ensure_global_embedder(self, model_name: str) -> EmbeddingProvider:
        """Build the global embedder if needed.

        Raises:
            EmbeddingError: If the embedding model cannot be loaded
        """
        existing = type(self).GLOBAL_EMBEDDER
        if existing is not None:
            self._logger.info("Using existing global embedder")
            return existing

        self._logger.info("Building global embedder…")
        try:
            # Model loading may hit the network or disk
            provider = await asyncio.to_thread(self._provider_factory, model_name)
        except (RuntimeError, OSError, ValueError) as exc:
            msg = f"Failed to load embedding model {model_name!r}: {exc}"
            raise EmbeddingError(msg) from exc
        type(self).GLOBAL_EMBEDDER = provider
        self._logger.info("Global embedder built with model: %s", model_name)
        return provider
