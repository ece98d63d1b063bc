# src/chore_tracker/chores/completion.py

from __future__ import annotations

"""
Completion transactor.

Applies a batch of "mark done" submissions to the store:
- validate every name (unknown names reject the whole batch)
- derive current status per task at the submission instant
- DONE tasks are idempotent no-ops; DUE/UPCOMING tasks get one new record
- commit all new records together through the store

The read-validate-write sequence runs under the store's process-wide write
lock, so two concurrent submissions can never both see a task as not done.
"""

import contextlib
import logging
from collections.abc import Iterable, Iterator
from datetime import datetime

from ..core.ports import ChoreRepo
from .chore_errors import StoreBusy, UnknownTask
from .chore_models import (
    ChoreStatus,
    CompletionOutcome,
    CompletionRecord,
    SubmissionResult,
    as_utc,
    utc_now,
)
from .recurrence import derive_status

logger = logging.getLogger(__name__)


def _normalize_names(task_names: Iterable[str]) -> list[str]:
    """Strip and de-duplicate, keeping first-seen order."""
    out: list[str] = []
    seen: set[str] = set()
    for raw in task_names:
        name = str(raw).strip()
        if not name or name in seen:
            continue
        seen.add(name)
        out.append(name)
    return out


def _utc(ts: datetime | None) -> datetime:
    return utc_now() if ts is None else as_utc(ts)


class CompletionTransactor:
    def __init__(self, store: ChoreRepo, *, lock_timeout_seconds: float = 5.0) -> None:
        self._store = store
        self._lock_timeout = max(0.0, float(lock_timeout_seconds))

    @contextlib.contextmanager
    def _write_locked(self, *, wait: bool = True) -> Iterator[None]:
        lock = self._store.write_lock
        if not wait:
            if not lock.acquire(blocking=False):
                raise StoreBusy(0.0)
        elif not lock.acquire(timeout=self._lock_timeout):
            logger.warning("Write lock not acquired within %.2fs", self._lock_timeout)
            raise StoreBusy(self._lock_timeout)
        try:
            yield
        finally:
            lock.release()

    def submit(self, task_names: Iterable[str], at: datetime | None = None) -> SubmissionResult:
        """
        Mark the given tasks done at `at` (server time when omitted).

        Raises:
        - UnknownTask: any name is not an active task (nothing written)
        - StoreBusy: write lock wait timed out (nothing written)
        - StorageFailure: durable commit failed (previous state intact)
        """
        names = _normalize_names(task_names)
        at_utc = _utc(at)
        if not names:
            return SubmissionResult(at=at_utc, outcomes=())

        with self._write_locked():
            definitions = {d.name: d for d in self._store.load_definitions()}
            unknown = [n for n in names if n not in definitions]
            if unknown:
                logger.info("Submission rejected, unknown task(s): %s", unknown)
                raise UnknownTask(unknown)

            latest = self._store.latest_completions()
            outcomes: list[CompletionOutcome] = []
            records: list[CompletionRecord] = []
            statuses: dict[str, ChoreStatus] = {}

            for name in names:
                task = definitions[name]
                last = latest.get(name)
                if derive_status(task, last, at_utc) == ChoreStatus.DONE:
                    outcomes.append(CompletionOutcome(name, ChoreStatus.DONE, newly_completed=False))
                    continue

                rec = CompletionRecord(task_name=name, done_at=at_utc)
                records.append(rec)
                statuses[name] = derive_status(task, rec, at_utc)
                outcomes.append(CompletionOutcome(name, statuses[name], newly_completed=True))

            if records:
                self._store.append_completions(records, status_cache=statuses)

        logger.info(
            "Submission at=%s completed=%s already_done=%s",
            at_utc.isoformat(),
            [o.task_name for o in outcomes if o.newly_completed],
            [o.task_name for o in outcomes if not o.newly_completed],
        )
        return SubmissionResult(at=at_utc, outcomes=tuple(outcomes))

    def refresh_status_cache(
        self, now: datetime | None = None, *, wait: bool = True
    ) -> dict[str, ChoreStatus]:
        """
        Recompute every cached status; only changed entries are rewritten.

        With wait=False a held write lock raises StoreBusy immediately, so read
        paths can skip the refresh instead of blocking behind a writer.
        """
        now_utc = _utc(now)
        with self._write_locked(wait=wait):
            latest = self._store.latest_completions()
            current: dict[str, ChoreStatus] = {}
            changed: dict[str, ChoreStatus] = {}
            for task in self._store.load_definitions():
                status = derive_status(task, latest.get(task.name), now_utc)
                current[task.name] = status
                if task.cached_status != status:
                    changed[task.name] = status
            if changed:
                self._store.write_status_cache(changed)
                logger.info("Refreshed status cache for %d task(s)", len(changed))
        return current
