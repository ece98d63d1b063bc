# src/chore_tracker/chores/chore_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(ts: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to already be UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC)


class ChoreStatus(StrEnum):
    """
    Derived chore lifecycle status.

    Notes:
    - never stored as truth; the "status" field in the definitions file is a cache
    - cycle order is DONE -> UPCOMING -> DUE, reset to DONE by a completion
    """

    DUE = "due"
    UPCOMING = "upcoming"
    DONE = "done"

    @classmethod
    def from_cache(cls, raw: str | None) -> ChoreStatus | None:
        if not raw:
            return None
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None


@dataclass(slots=True, frozen=True)
class TaskDefinition:
    name: str
    recurrence_period: timedelta
    lead_time: timedelta

    # Last status written to the definitions file (cache only).
    cached_status: ChoreStatus | None = None

    @property
    def done_window(self) -> timedelta:
        """How long after a completion the chore still counts as done."""
        return self.recurrence_period - self.lead_time


@dataclass(slots=True, frozen=True)
class CompletionRecord:
    task_name: str
    done_at: datetime


@dataclass(slots=True, frozen=True)
class StatusView:
    name: str
    status: ChoreStatus
    last_done_at: datetime | None
    next_transition_at: datetime | None


@dataclass(slots=True, frozen=True)
class Occurrence:
    task_name: str
    due_at: datetime
    overdue: bool = False


@dataclass(slots=True, frozen=True)
class CompletionOutcome:
    task_name: str
    status: ChoreStatus
    newly_completed: bool


@dataclass(slots=True, frozen=True)
class SubmissionResult:
    at: datetime
    outcomes: tuple[CompletionOutcome, ...]

    @property
    def newly_completed(self) -> list[str]:
        return [o.task_name for o in self.outcomes if o.newly_completed]

    @property
    def already_done(self) -> list[str]:
        return [o.task_name for o in self.outcomes if not o.newly_completed]
