# src/chore_tracker/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..chores.completion import CompletionTransactor
from .ports import ChoreRepo


@dataclass
class AppState:
    # Settings object (config.Settings in the app, SimpleNamespace in tests).
    settings: Any

    store: ChoreRepo
    transactor: CompletionTransactor
