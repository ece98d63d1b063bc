# src/chore_tracker/chores/recurrence.py

from __future__ import annotations

"""
Recurrence engine.

Pure functions over (definition, latest completion, evaluation time):
- derive_status: current lifecycle status
- next_transition: when the status will next change on its own
- evaluate: both, bundled as a StatusView

Nothing here reads the clock or touches storage; `now` is always an argument.
Definitions are validated by the store before they reach this module.
"""

from datetime import datetime, timedelta

from .chore_models import ChoreStatus, CompletionRecord, StatusView, TaskDefinition


def derive_status(
    task: TaskDefinition,
    last_completion: CompletionRecord | None,
    now: datetime,
) -> ChoreStatus:
    """
    Status rules:
    - never completed                         -> DUE
    - elapsed <= 0 (the completion instant)   -> DONE
    - elapsed < period - lead                 -> DONE
    - period - lead <= elapsed < period       -> UPCOMING
    - elapsed >= period                       -> DUE
    """
    if last_completion is None:
        return ChoreStatus.DUE

    elapsed = now - last_completion.done_at
    if elapsed <= timedelta(0) or elapsed < task.done_window:
        return ChoreStatus.DONE
    if elapsed < task.recurrence_period:
        return ChoreStatus.UPCOMING
    return ChoreStatus.DUE


def next_transition(
    task: TaskDefinition,
    last_completion: CompletionRecord | None,
    now: datetime,
) -> datetime | None:
    """Instant of the next time-triggered change, or None when already DUE."""
    status = derive_status(task, last_completion, now)
    if status == ChoreStatus.DUE or last_completion is None:
        return None
    if status == ChoreStatus.DONE:
        return last_completion.done_at + task.done_window
    return last_completion.done_at + task.recurrence_period


def evaluate(
    task: TaskDefinition,
    last_completion: CompletionRecord | None,
    now: datetime,
) -> StatusView:
    return StatusView(
        name=task.name,
        status=derive_status(task, last_completion, now),
        last_done_at=last_completion.done_at if last_completion else None,
        next_transition_at=next_transition(task, last_completion, now),
    )
