# src/chore_tracker/chores/timeline.py

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

from .chore_models import CompletionRecord, Occurrence, TaskDefinition

DEFAULT_HORIZON = timedelta(days=365)


def project_timeline(
    tasks: Iterable[TaskDefinition],
    latest: Mapping[str, CompletionRecord],
    now: datetime,
    horizon: timedelta = DEFAULT_HORIZON,
) -> list[Occurrence]:
    """
    Projected due dates for every task within [now, now + horizon].

    The first occurrence is one period after the last completion, or `now` for a
    task never done. A first occurrence already in the past is pinned to `now`
    and flagged overdue. Each task yields at least that first occurrence.
    Result is ordered by (task_name, due_at).
    """
    end = now + horizon
    out: list[Occurrence] = []

    for task in tasks:
        last = latest.get(task.name)
        due = now if last is None else last.done_at + task.recurrence_period
        overdue = False
        if due < now:
            due = now
            overdue = True

        out.append(Occurrence(task_name=task.name, due_at=due, overdue=overdue))
        due += task.recurrence_period
        while due <= end:
            out.append(Occurrence(task_name=task.name, due_at=due))
            due += task.recurrence_period

    out.sort(key=lambda o: (o.task_name, o.due_at))
    return out
