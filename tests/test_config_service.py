"""Tests for environment-driven configuration."""

from __future__ import annotations

from pathlib import Path

from _pytest.monkeypatch import MonkeyPatch
import pytest

from nl2sql_sequelize.retrieval.constants import Constants as RetrievalConstants
from nl2sql_sequelize.services.config_service import ConfigService, ServiceConfig

_ENV_VARS = (
    "NL2SQL_SEQUELIZE_PROJECT_ROOT",
    "NL2SQL_SEQUELIZE_EMBEDDING_MODEL",
    "NL2SQL_SEQUELIZE_TOP_K",
    "NL2SQL_SEQUELIZE_THRESHOLD",
    "NL2SQL_SEQUELIZE_WATCH",
    "NL2SQL_SEQUELIZE_WATCH_STABILITY_MS",
    "NL2SQL_SEQUELIZE_WATCH_MAX_WAIT_MS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)

    config = ConfigService.load()

    assert config.project_root.resolve() == tmp_path.resolve()
    assert config.embedding_model == RetrievalConstants.DEFAULT_EMBEDDING_MODEL
    assert config.top_k == 5
    assert config.threshold == pytest.approx(0.25)
    assert config.watch is True
    assert config.watch_stability_ms == 100
    assert config.watch_max_wait_ms == 1600


def test_overrides(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("NL2SQL_SEQUELIZE_PROJECT_ROOT", str(tmp_path))
    monkeypatch.setenv("NL2SQL_SEQUELIZE_EMBEDDING_MODEL", "/models/local-potion")
    monkeypatch.setenv("NL2SQL_SEQUELIZE_TOP_K", "8")
    monkeypatch.setenv("NL2SQL_SEQUELIZE_THRESHOLD", "0.4")
    monkeypatch.setenv("NL2SQL_SEQUELIZE_WATCH_STABILITY_MS", "250")
    monkeypatch.setenv("NL2SQL_SEQUELIZE_WATCH_MAX_WAIT_MS", "3000")

    config = ConfigService.load()

    assert config.project_root == tmp_path
    assert config.embedding_model == "/models/local-potion"
    assert config.top_k == 8
    assert config.threshold == pytest.approx(0.4)
    assert config.watch_stability_ms == 250
    assert config.watch_max_wait_ms == 3000


@pytest.mark.parametrize(("value", "expected"), [("0", 1), ("-4", 1), ("abc", 5), ("12", 12)])
def test_top_k_bounds(monkeypatch: MonkeyPatch, value: str, expected: int) -> None:
    monkeypatch.setenv("NL2SQL_SEQUELIZE_TOP_K", value)
    assert ConfigService.retrieval_top_k() == expected


@pytest.mark.parametrize(
    ("value", "expected"), [("2", 1.0), ("-3", -1.0), ("oops", 0.25), ("0", 0.0)]
)
def test_threshold_is_clamped(monkeypatch: MonkeyPatch, value: str, expected: float) -> None:
    monkeypatch.setenv("NL2SQL_SEQUELIZE_THRESHOLD", value)
    assert ConfigService.retrieval_threshold() == pytest.approx(expected)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("false", False), ("0", False), (" OFF ", False), ("no", False), ("yes", True), ("1", True)],
)
def test_watch_flag(monkeypatch: MonkeyPatch, value: str, expected: bool) -> None:
    monkeypatch.setenv("NL2SQL_SEQUELIZE_WATCH", value)
    assert ConfigService.watch_enabled() is expected


def test_watch_timings_are_consistent(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("NL2SQL_SEQUELIZE_WATCH_STABILITY_MS", "5")
    assert ConfigService.watch_stability_ms() == 10

    monkeypatch.setenv("NL2SQL_SEQUELIZE_WATCH_STABILITY_MS", "500")
    monkeypatch.setenv("NL2SQL_SEQUELIZE_WATCH_MAX_WAIT_MS", "100")
    assert ConfigService.watch_max_wait_ms() == 500


def test_retrieval_options_from_config(tmp_path: Path) -> None:
    options = ServiceConfig(project_root=tmp_path, top_k=3, threshold=0.1).retrieval_options()
    assert options.top_k == 3
    assert options.threshold == pytest.approx(0.1)
    assert options.include_related is True
