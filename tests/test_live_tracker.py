"""Tests for the live schema tracker.

Most watch tests drive the loop with a scripted event source, so reload
ordering, failure handling and callbacks can be checked deterministically.
One test runs the real watchfiles stream over a temporary directory.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
import shutil

from conftest import MALFORMED_JS, ORDER_JS, USER_JS, ProjectFactory, ScriptedEvents
import pytest
from watchfiles import Change

from nl2sql_sequelize.extraction.exceptions import DiscoveryError, ReloadError
from nl2sql_sequelize.extraction.tracker import (
    LiveSchemaTracker,
    SchemaFileEvent,
    SchemaFileEventKind,
    SchemaSourceFilter,
    coalesce_changes,
    create_live_schema,
)


def _event(kind: SchemaFileEventKind, root: Path, name: str) -> SchemaFileEvent:
    """Build an event for a file in the project's models directory."""
    return SchemaFileEvent(kind=kind, path=root / "models" / name)


def test_coalesce_changes_one_event_per_path() -> None:
    events = coalesce_changes(
        [
            (Change.modified, "/p/models/b.js"),
            (Change.modified, "/p/models/b.js"),
            (Change.deleted, "/p/models/a.js"),
            (Change.added, "/p/models/a.js"),
            (Change.deleted, "/p/models/c.ts"),
            (Change.added, "/p/models/d.ts"),
            (Change.modified, "/p/models/d.ts"),
        ]
    )
    assert [(event.kind, event.path.name) for event in events] == [
        (SchemaFileEventKind.CHANGED, "a.js"),
        (SchemaFileEventKind.CHANGED, "b.js"),
        (SchemaFileEventKind.REMOVED, "c.ts"),
        (SchemaFileEventKind.ADDED, "d.ts"),
    ]


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/p/models/User.js", True),
        ("/p/models/sub/Order.ts", True),
        ("/p/models/README.md", False),
        ("/p/models/User.js.swp", False),
        ("/p/models/node_modules/dep/index.js", False),
    ],
)
def test_source_filter(path: str, expected: bool) -> None:
    assert SchemaSourceFilter()(Change.modified, path) is expected


@pytest.mark.asyncio
async def test_reload_replaces_snapshot(sample_project: Path) -> None:
    tracker = await create_live_schema(sample_project)
    before = tracker.current()
    (sample_project / "models" / "Tag.js").write_text(
        "sequelize.define('Tag', { label: DataTypes.STRING });\n", encoding="utf-8"
    )

    after = await tracker.reload()

    assert after is tracker.current()
    assert after is not before
    assert after.names == ["Order", "Product", "Tag", "User"]
    assert before.names == ["Order", "Product", "User"]


@pytest.mark.asyncio
async def test_failed_reload_keeps_previous_snapshot(sample_project: Path) -> None:
    tracker = await create_live_schema(sample_project)
    before = tracker.current()
    shutil.rmtree(sample_project / "models")

    with pytest.raises(DiscoveryError):
        await tracker.reload()
    assert tracker.current() is before


@pytest.mark.asyncio
async def test_watch_reloads_once_per_event(sample_project: Path) -> None:
    (sample_project / "models" / "Tag.js").write_text(
        "sequelize.define('Tag', { label: DataTypes.STRING });\n", encoding="utf-8"
    )
    source = ScriptedEvents(
        [
            [_event(SchemaFileEventKind.ADDED, sample_project, "Tag.js")],
            [
                _event(SchemaFileEventKind.CHANGED, sample_project, "Order.js"),
                _event(SchemaFileEventKind.CHANGED, sample_project, "User.js"),
            ],
        ]
    )
    tracker = await create_live_schema(sample_project, event_source=source)
    calls: list[list[str]] = []

    def on_changed() -> None:
        calls.append(tracker.current().names)

    await tracker.start_watch(on_changed=on_changed)
    assert tracker.is_watching
    await asyncio.wait_for(source.exhausted.wait(), timeout=10)
    await tracker.stop_watch()

    assert len(calls) == 3
    assert all(names == ["Order", "Product", "Tag", "User"] for names in calls)
    assert tracker.last_reload_error is None
    assert not tracker.is_watching


@pytest.mark.asyncio
async def test_watch_accepts_async_callback(sample_project: Path) -> None:
    source = ScriptedEvents([[_event(SchemaFileEventKind.CHANGED, sample_project, "User.js")]])
    tracker = await create_live_schema(sample_project, event_source=source)
    seen: list[int] = []

    async def on_changed() -> None:
        await asyncio.sleep(0)
        seen.append(len(tracker.current()))

    await tracker.start_watch(on_changed=on_changed)
    await asyncio.wait_for(source.exhausted.wait(), timeout=10)
    await tracker.stop_watch()

    assert seen == [3]


@pytest.mark.asyncio
async def test_watch_failure_is_recorded_not_raised(sample_project: Path) -> None:
    models_dir = sample_project / "models"
    source = ScriptedEvents(
        [[_event(SchemaFileEventKind.REMOVED, sample_project, "Order.js")]]
    )
    tracker = await create_live_schema(sample_project, event_source=source)
    before = tracker.current()
    shutil.rmtree(models_dir)
    calls: list[None] = []

    await tracker.start_watch(on_changed=lambda: calls.append(None))
    await asyncio.wait_for(source.exhausted.wait(), timeout=10)

    assert tracker.current() is before
    assert calls == []
    error = tracker.last_reload_error
    assert isinstance(error, ReloadError)
    assert isinstance(error.__cause__, DiscoveryError)
    assert "Order.js" in str(error)
    # The loop survives the failure
    assert tracker.is_watching
    await tracker.stop_watch()


@pytest.mark.asyncio
async def test_successful_reload_clears_recorded_error(make_project: ProjectFactory) -> None:
    root = make_project({"Order.js": ORDER_JS})
    models_dir = root / "models"
    tracker = await create_live_schema(root)

    (models_dir / "Order.js").write_text(MALFORMED_JS, encoding="utf-8")
    with pytest.raises(DiscoveryError):
        await tracker.reload()

    tracker.last_reload_error = ReloadError("previous failure")
    (models_dir / "Order.js").write_text(ORDER_JS, encoding="utf-8")
    await tracker.reload()
    assert tracker.last_reload_error is None


@pytest.mark.asyncio
async def test_callback_errors_do_not_stop_the_loop(sample_project: Path) -> None:
    source = ScriptedEvents(
        [
            [_event(SchemaFileEventKind.CHANGED, sample_project, "User.js")],
            [_event(SchemaFileEventKind.CHANGED, sample_project, "Order.js")],
        ]
    )
    tracker = await create_live_schema(sample_project, event_source=source)
    calls: list[None] = []

    def on_changed() -> None:
        calls.append(None)
        msg = "callback failed"
        raise RuntimeError(msg)

    await tracker.start_watch(on_changed=on_changed)
    await asyncio.wait_for(source.exhausted.wait(), timeout=10)
    await tracker.stop_watch()

    assert len(calls) == 2
    assert tracker.last_reload_error is None


@pytest.mark.asyncio
async def test_start_and_stop_are_idempotent(sample_project: Path) -> None:
    source = ScriptedEvents([])
    tracker = LiveSchemaTracker(
        sample_project,
        (await create_live_schema(sample_project)).current(),
        event_source=source,
    )

    await tracker.stop_watch()
    await tracker.start_watch()
    await tracker.start_watch()
    await asyncio.wait_for(source.exhausted.wait(), timeout=10)
    assert source.started == 1
    assert tracker.is_watching

    await tracker.stop_watch()
    await tracker.stop_watch()
    assert not tracker.is_watching


@pytest.mark.asyncio
async def test_burst_of_writes_to_one_file_reloads_once(sample_project: Path) -> None:
    user_file = sample_project / "models" / "User.js"
    tracker = await create_live_schema(sample_project)
    reloaded = asyncio.Event()
    reloads: list[list[str]] = []

    def on_changed() -> None:
        reloads.append(tracker.current().names)
        reloaded.set()

    await tracker.start_watch(on_changed=on_changed)
    # Give the OS watcher time to register the directory
    await asyncio.sleep(0.5)

    for i in range(5):
        user_file.write_text(USER_JS + f"// revision {i}\n", encoding="utf-8")
        await asyncio.sleep(0.01)

    await asyncio.wait_for(reloaded.wait(), timeout=10)
    # Long enough for a second batch to arrive if the burst had been split
    await asyncio.sleep(0.5)
    await tracker.stop_watch()

    assert reloads == [["Order", "Product", "User"]]
    assert tracker.last_reload_error is None
