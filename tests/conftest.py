# tests/conftest.py

from __future__ import annotations

import json
from pathlib import Path
from types import SimpleNamespace

import pytest

from chore_tracker.chores.chore_store import ChoreStore
from chore_tracker.cli.bootstrap import create_initial_state
from chore_tracker.core.state import AppState

DEFINITIONS = {
    "Mop Floor": {"period_days": 7, "lead_days": 2},
    "Dust Shelves": {"period_days": 14, "lead_days": 3},
    "Water Plants": {"period_days": 3, "lead_days": 0},
}


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and the chore API.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="chores-test",
        data_dir=tmp_path,
        definitions_path=tmp_path / "tasks.json",
        history_path=tmp_path / "history.csv",
        lock_timeout_seconds=1.0,
        timeline_horizon_days=365,
        strict_definitions=False,
    )


@pytest.fixture()
def definitions_file(settings: SimpleNamespace) -> Path:
    path: Path = settings.definitions_path
    path.write_text(json.dumps(DEFINITIONS, indent=2), "utf-8")
    return path


@pytest.fixture()
def store(settings: SimpleNamespace, definitions_file: Path) -> ChoreStore:
    return ChoreStore(settings.definitions_path, settings.history_path)


@pytest.fixture()
def state(settings: SimpleNamespace, definitions_file: Path) -> AppState:
    """
    AppState wired with the real file store.

    The file store's atomicity is part of what we want to test, so no fakes here.
    """
    return create_initial_state(settings=settings, refresh_cache=False)
