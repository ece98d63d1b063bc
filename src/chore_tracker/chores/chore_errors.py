# src/chore_tracker/chores/chore_errors.py

"""
Error taxonomy for the chore core.

Each error maps to one reported outcome at the presentation layer:
- InvalidDefinition: malformed recurrence parameters (task excluded at load)
- UnknownTask: submission names a task that does not exist (batch rejected)
- StoreBusy: write lock not acquired in time (retry is safe)
- StorageFailure: durable write failed (previous committed state intact)
"""

from __future__ import annotations

from collections.abc import Iterable


class ChoreError(Exception):
    """Base class for all chore core errors."""


class InvalidDefinition(ChoreError):
    def __init__(self, task_name: str, reason: str) -> None:
        self.task_name = task_name
        self.reason = reason
        super().__init__(f"invalid definition for {task_name!r}: {reason}")


class UnknownTask(ChoreError):
    def __init__(self, task_names: Iterable[str]) -> None:
        self.task_names = tuple(task_names)
        names = ", ".join(repr(n) for n in self.task_names)
        super().__init__(f"unknown task(s): {names}")


class StoreBusy(ChoreError):
    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"store is busy (write lock not acquired within {timeout:.1f}s)")


class StorageFailure(ChoreError):
    pass
