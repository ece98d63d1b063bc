# src/chore_tracker/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories and an editable definitions file exist,
- wires the file store and the transactor into AppState,
- recomputes the status cache, since a stored status is never trusted across restarts.
"""

from __future__ import annotations

import json
import logging

from ..chores.chore_store import ChoreStore
from ..chores.completion import CompletionTransactor
from ..config import get_settings
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.definitions_path.parent.mkdir(parents=True, exist_ok=True)
    settings.history_path.parent.mkdir(parents=True, exist_ok=True)


def _seed_definitions(settings) -> None:
    path = settings.definitions_path
    if path.exists():
        return
    path.write_text(json.dumps({}, indent=2) + "\n", "utf-8")
    logger.info("Created empty definitions file %s (add chores there)", path)


def create_initial_state(*, settings=None, refresh_cache: bool = True) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)
    _seed_definitions(settings)

    store = ChoreStore(
        settings.definitions_path,
        settings.history_path,
        strict=bool(getattr(settings, "strict_definitions", False)),
    )
    transactor = CompletionTransactor(
        store,
        lock_timeout_seconds=float(getattr(settings, "lock_timeout_seconds", 5.0)),
    )
    state = AppState(settings=settings, store=store, transactor=transactor)

    if refresh_cache:
        transactor.refresh_status_cache()
    return state
