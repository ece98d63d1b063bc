# src/chore_tracker/chores/chore_api.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from ..core.state import AppState
from .chore_errors import StorageFailure, StoreBusy
from .chore_models import (
    ChoreStatus,
    CompletionRecord,
    Occurrence,
    StatusView,
    SubmissionResult,
    as_utc,
    utc_now,
)
from .recurrence import evaluate
from .timeline import DEFAULT_HORIZON, project_timeline

logger = logging.getLogger(__name__)


def _resolve_now(now: datetime | None) -> datetime:
    return as_utc(now) if now is not None else utc_now()


def submit_completions(
    state: AppState,
    task_names: Iterable[str],
    *,
    at: datetime | None = None,
) -> SubmissionResult:
    """
    Submission API: mark a batch of chores done.

    The completion time is stamped here (server clock) unless `at` is given.
    Errors (UnknownTask, StoreBusy, StorageFailure) propagate to the caller.
    """
    return state.transactor.submit(task_names, at=_resolve_now(at))


async def submit_completions_async(
    state: AppState,
    task_names: Iterable[str],
    *,
    at: datetime | None = None,
) -> SubmissionResult:
    """Same as submit_completions, run in a worker thread for asyncio hosts."""
    names = list(task_names)
    return await asyncio.to_thread(submit_completions, state, names, at=at)


def list_statuses(state: AppState, *, now: datetime | None = None) -> list[StatusView]:
    """
    Current derived status of every active chore, ordered by name.

    A stale status cache is rewritten on the way, but only when the write lock
    is free right now; a read never waits for a writer.
    """
    now = _resolve_now(now)
    latest = state.store.latest_completions()
    tasks = state.store.load_definitions()
    views = [evaluate(task, latest.get(task.name), now) for task in tasks]

    if any(task.cached_status != view.status for task, view in zip(tasks, views)):
        try:
            state.transactor.refresh_status_cache(now, wait=False)
        except StoreBusy:
            logger.debug("Status cache refresh skipped, store is busy")
        except StorageFailure as e:
            logger.warning("Status cache refresh failed: %s", e)

    views.sort(key=lambda v: v.name)
    return views


def due_and_upcoming(
    state: AppState, *, now: datetime | None = None
) -> tuple[list[StatusView], list[StatusView]]:
    """
    Dashboard panels.

    Due: never-done chores first, then the longest overdue.
    Upcoming: soonest to become due first.
    """
    views = list_statuses(state, now=now)
    due = [v for v in views if v.status == ChoreStatus.DUE]
    upcoming = [v for v in views if v.status == ChoreStatus.UPCOMING]

    oldest = datetime.min.replace(tzinfo=UTC)
    latest = datetime.max.replace(tzinfo=UTC)
    due.sort(key=lambda v: (v.last_done_at is not None, v.last_done_at or oldest, v.name))
    upcoming.sort(key=lambda v: (v.next_transition_at or latest, v.name))
    return due, upcoming


def yearly_timeline(
    state: AppState,
    *,
    now: datetime | None = None,
    horizon: timedelta | None = None,
) -> list[Occurrence]:
    """Occurrences for the yearly diagram (read-only)."""
    if horizon is None:
        days = getattr(state.settings, "timeline_horizon_days", None)
        horizon = timedelta(days=days) if days else DEFAULT_HORIZON
    return project_timeline(
        state.store.load_definitions(),
        state.store.latest_completions(),
        _resolve_now(now),
        horizon,
    )


def completion_history(state: AppState, task_name: str | None = None) -> list[CompletionRecord]:
    """Audit view: full history, or the history of one chore."""
    if task_name is None:
        return state.store.all_completions()
    return state.store.completions_for(task_name)
