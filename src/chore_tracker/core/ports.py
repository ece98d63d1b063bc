# src/chore_tracker/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The transactor and the read API depend on this Protocol instead of the concrete
file-backed store, which keeps storage swappable and makes testing easier.
"""

import threading
from collections.abc import Iterable, Mapping
from typing import Protocol

from ..chores.chore_models import ChoreStatus, CompletionRecord, TaskDefinition


class ChoreRepo(Protocol):
    # Single-writer discipline: held around read-validate-write.
    @property
    def write_lock(self) -> threading.Lock: ...

    # Read API (never blocks on the write lock)
    def load_definitions(self) -> list[TaskDefinition]: ...
    def latest_completion(self, task_name: str) -> CompletionRecord | None: ...
    def latest_completions(self) -> dict[str, CompletionRecord]: ...
    def all_completions(self) -> list[CompletionRecord]: ...
    def completions_for(self, task_name: str) -> list[CompletionRecord]: ...

    # Write API (caller holds write_lock)
    def append_completions(
            self,
            records: Iterable[CompletionRecord],
            status_cache: Mapping[str, ChoreStatus] | None = None,
    ) -> None: ...

    def write_status_cache(self, statuses: Mapping[str, ChoreStatus]) -> None: ...
