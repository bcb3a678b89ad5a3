"""Live schema tracking.

``LiveSchemaTracker`` owns the current ``SchemaSnapshot``. It can rebuild the
snapshot on demand and, while watching, rebuilds it whenever a ``.js``/``.ts``
file under the models directory is added, changed or removed.

File system notifications come from ``watchfiles``. Each batch it yields is
coalesced per path into ``SchemaFileEvent`` values and consumed by a single
reconciliation loop, so a burst of writes to one file results in one reload.
The event source is a plain async iterator factory and can be replaced, which
keeps the loop testable without touching the file system.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
import contextlib
from dataclasses import dataclass
from enum import Enum
from functools import partial
import inspect
from pathlib import Path

from fastmcp.utilities.logging import get_logger
from watchfiles import Change, DefaultFilter, awatch

from .assembler import analyze_project
from .constants import Constants
from .exceptions import ReloadError
from .models import SchemaSnapshot

# Logger
_logger = get_logger("schema_extraction.tracker")


class SchemaFileEventKind(Enum):
    """Kind of change observed for a model source file."""

    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


@dataclass(frozen=True)
class SchemaFileEvent:
    """A coalesced change to one source file."""

    kind: SchemaFileEventKind
    path: Path


EventSource = Callable[[Path, asyncio.Event], AsyncIterator[list[SchemaFileEvent]]]
ReloadCallback = Callable[[], Awaitable[None] | None]


class SchemaSourceFilter(DefaultFilter):
    """watchfiles filter accepting only model source files.

    Keeps the default ignore rules (VCS folders, editor swap files,
    ``node_modules`` and friends) and additionally requires a ``.js`` or
    ``.ts`` extension.
    """

    def __call__(self, change: Change, path: str) -> bool:
        return path.endswith(Constants.SOURCE_EXTENSIONS) and super().__call__(change, path)


def coalesce_changes(changes: Iterable[tuple[Change, str]]) -> list[SchemaFileEvent]:
    """Collapse one watchfiles batch into at most one event per path.

    A path both deleted and added in the same batch (editors that save by
    replacing the file) is reported as CHANGED. Events are sorted by path.
    """
    seen: dict[str, set[Change]] = {}
    for change, path in changes:
        seen.setdefault(path, set()).add(change)

    events: list[SchemaFileEvent] = []
    for path in sorted(seen):
        kinds = seen[path]
        if Change.deleted in kinds and Change.added in kinds:
            kind = SchemaFileEventKind.CHANGED
        elif Change.deleted in kinds:
            kind = SchemaFileEventKind.REMOVED
        elif Change.added in kinds:
            kind = SchemaFileEventKind.ADDED
        else:
            kind = SchemaFileEventKind.CHANGED
        events.append(SchemaFileEvent(kind=kind, path=Path(path)))
    return events


async def watch_schema_events(
    models_dir: Path,
    stop_event: asyncio.Event,
    *,
    stability_ms: int = Constants.DEFAULT_WATCH_STABILITY_MS,
    max_wait_ms: int = Constants.DEFAULT_WATCH_MAX_WAIT_MS,
) -> AsyncIterator[list[SchemaFileEvent]]:
    """Yield coalesced event batches for ``models_dir`` until ``stop_event`` is set.

    Args:
        models_dir: Directory to watch recursively
        stop_event: Ends the stream when set
        stability_ms: Quiet period after the last change before a batch is yielded
        max_wait_ms: Upper bound on how long a busy batch is held back
    """
    async for changes in awatch(
        models_dir,
        watch_filter=SchemaSourceFilter(),
        debounce=max_wait_ms,
        step=stability_ms,
        stop_event=stop_event,
        recursive=True,
        ignore_permission_denied=True,
    ):
        events = coalesce_changes(changes)
        if events:
            yield events


class LiveSchemaTracker:
    """Holds the current schema snapshot and keeps it in sync with the source files.

    Attributes:
        last_reload_error: Failure of the most recent watch-triggered reload,
            cleared by the next successful reload
    """

    def __init__(
        self,
        project_root: Path | str,
        snapshot: SchemaSnapshot,
        *,
        event_source: EventSource | None = None,
        stability_ms: int = Constants.DEFAULT_WATCH_STABILITY_MS,
        max_wait_ms: int = Constants.DEFAULT_WATCH_MAX_WAIT_MS,
    ) -> None:
        self._project_root = Path(project_root)
        self._snapshot = snapshot
        self._event_source: EventSource = event_source or partial(
            watch_schema_events, stability_ms=stability_ms, max_wait_ms=max_wait_ms
        )
        self._stop_event = asyncio.Event()
        self._watch_task: asyncio.Task[None] | None = None
        self.last_reload_error: ReloadError | None = None

    @property
    def project_root(self) -> Path:
        return self._project_root

    def current(self) -> SchemaSnapshot:
        """Return the current snapshot."""
        return self._snapshot

    async def reload(self) -> SchemaSnapshot:
        """Re-run extraction and replace the current snapshot.

        The new snapshot is fully built before it replaces the old one. On
        failure the previous snapshot stays current and the error propagates.

        Returns:
            The new snapshot
        """
        snapshot = await analyze_project(self._project_root)
        self._snapshot = snapshot
        self.last_reload_error = None
        _logger.info("Schema reloaded: %d models", len(snapshot))
        return snapshot

    @property
    def is_watching(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    async def start_watch(self, on_changed: ReloadCallback | None = None) -> None:
        """Start watching the models directory.

        Args:
            on_changed: Called with no arguments after every successful
                watch-triggered reload; may be a coroutine function
        """
        if self.is_watching:
            _logger.warning("Schema watcher already running; ignoring start request")
            return

        models_dir = self._snapshot.models_dir
        self._stop_event = asyncio.Event()
        self._watch_task = asyncio.create_task(
            self._watch_loop(models_dir, on_changed), name="schema-watch"
        )
        _logger.info("Watching %s for model changes", models_dir)

    async def stop_watch(self) -> None:
        """Stop watching; does nothing when not watching."""
        task = self._watch_task
        if task is None:
            return
        self._stop_event.set()
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        self._watch_task = None
        _logger.info("Schema watcher stopped")

    async def _watch_loop(self, models_dir: Path, on_changed: ReloadCallback | None) -> None:
        try:
            async for batch in self._event_source(models_dir, self._stop_event):
                for event in batch:
                    await self._handle_event(event, on_changed)
        except Exception:  # noqa: BLE001
            _logger.exception("Schema watcher terminated unexpectedly")

    async def _handle_event(
        self, event: SchemaFileEvent, on_changed: ReloadCallback | None
    ) -> None:
        _logger.info("Model file %s: %s", event.kind.value, event.path.name)
        try:
            await self.reload()
        except Exception as exc:  # noqa: BLE001
            msg = f"Reload after {event.kind.value} {event.path.name} failed: {exc}"
            error = ReloadError(msg)
            error.__cause__ = exc
            self.last_reload_error = error
            _logger.error("%s; keeping previous schema", error)
            return

        if on_changed is None:
            return
        try:
            result = on_changed()
            if inspect.isawaitable(result):
                await result
        except Exception:  # noqa: BLE001
            _logger.exception("Schema change callback failed")


async def create_live_schema(
    project_root: Path | str,
    *,
    event_source: EventSource | None = None,
    stability_ms: int = Constants.DEFAULT_WATCH_STABILITY_MS,
    max_wait_ms: int = Constants.DEFAULT_WATCH_MAX_WAIT_MS,
) -> LiveSchemaTracker:
    """Build the initial snapshot for ``project_root`` and wrap it in a tracker.

    Raises:
        DiscoveryError: If the initial extraction finds no models
    """
    snapshot = await analyze_project(project_root)
    return LiveSchemaTracker(
        project_root,
        snapshot,
        event_source=event_source,
        stability_ms=stability_ms,
        max_wait_ms=max_wait_ms,
    )
