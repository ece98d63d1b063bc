# src/chore_tracker/chores/chore_store.py

from __future__ import annotations

import contextlib
import csv
import io
import json
import logging
import math
import os
import threading
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from .chore_errors import InvalidDefinition, StorageFailure
from .chore_models import ChoreStatus, CompletionRecord, TaskDefinition, as_utc

logger = logging.getLogger(__name__)

HISTORY_HEADER = ("task", "done_at")
STAGING_SUFFIX = ".tmp"
JOURNAL_SUFFIX = ".commit"

# One write lock per history file for the whole process, shared by every store
# instance pointing at the same files.
_WRITE_LOCKS: dict[Path, threading.Lock] = {}
_WRITE_LOCKS_GUARD = threading.Lock()


def _write_lock_for(path: Path) -> threading.Lock:
    key = path.resolve()
    with _WRITE_LOCKS_GUARD:
        lock = _WRITE_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _WRITE_LOCKS[key] = lock
        return lock


def _staging_path(path: Path) -> Path:
    return path.with_name(path.name + STAGING_SUFFIX)


def _parse_days(raw: Any, field: str, task_name: str) -> timedelta:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise InvalidDefinition(task_name, f"{field} must be a number of days")
    if not math.isfinite(raw):
        raise InvalidDefinition(task_name, f"{field} must be finite")
    return timedelta(days=raw)


def parse_definition(name: Any, entry: Any) -> TaskDefinition:
    """
    Validate one definitions-file entry.

    Invariants:
    - name is a non-empty string
    - recurrence period > 0
    - 0 <= lead time <= recurrence period
    """
    if not isinstance(name, str) or not name.strip():
        raise InvalidDefinition(str(name), "task name must be a non-empty string")
    task_name = name.strip()

    if not isinstance(entry, dict):
        raise InvalidDefinition(task_name, "entry must be an object")
    if "period_days" not in entry:
        raise InvalidDefinition(task_name, "period_days is required")

    period = _parse_days(entry["period_days"], "period_days", task_name)
    lead = _parse_days(entry.get("lead_days", 0), "lead_days", task_name)

    if period <= timedelta(0):
        raise InvalidDefinition(task_name, "recurrence period must be > 0")
    if lead < timedelta(0):
        raise InvalidDefinition(task_name, "lead time must be >= 0")
    if lead > period:
        raise InvalidDefinition(task_name, "lead time must not exceed recurrence period")

    return TaskDefinition(
        name=task_name,
        recurrence_period=period,
        lead_time=lead,
        cached_status=ChoreStatus.from_cache(entry.get("status")),
    )


class ChoreStore:
    """
    File-backed chore store.

    Two durable files:
    - definitions (JSON object keyed by task name; human-editable)
    - completion history (CSV rows of task,done_at; append-only)

    Commit discipline:
    - new content is staged next to each target as "<name>.tmp" and fsynced
    - a journal "<history>.commit" naming every staged file is put in place
    - each staged file is os.replace()d over its target, then the journal goes
    - a failed replace restores the previous history and raises StorageFailure
    - opening a store rolls a journaled commit forward and drops stray staging

    Readers never lock: every call re-reads the files, and os.replace() means a
    reader sees either the previous or the new file, never a partial one.
    Writers must hold `write_lock` (see CompletionTransactor).
    """

    def __init__(
        self,
        definitions_path: str | Path = "tasks.json",
        history_path: str | Path = "history.csv",
        *,
        strict: bool = False,
    ) -> None:
        self._definitions_path = Path(definitions_path)
        self._history_path = Path(history_path)
        self._strict = strict
        self._definitions_path.parent.mkdir(parents=True, exist_ok=True)
        self._history_path.parent.mkdir(parents=True, exist_ok=True)
        self._recover_interrupted_commit()

        definitions, rejected = self._parse_definitions()
        for err in rejected:
            logger.warning("Excluding task %r: %s", err.task_name, err.reason)
        if strict and rejected:
            raise rejected[0]

        logger.info(
            "ChoreStore ready definitions=%s history=%s tasks=%d rejected=%d",
            self._definitions_path,
            self._history_path,
            len(definitions),
            len(rejected),
        )

    @property
    def definitions_path(self) -> Path:
        return self._definitions_path

    @property
    def history_path(self) -> Path:
        return self._history_path

    @property
    def write_lock(self) -> threading.Lock:
        return _write_lock_for(self._history_path)

    # ---- low-level helpers ----

    @property
    def _journal_path(self) -> Path:
        return self._history_path.with_name(self._history_path.name + JOURNAL_SUFFIX)

    def _targets(self) -> dict[Path, Path]:
        return {
            _staging_path(p).resolve(): p
            for p in (self._definitions_path, self._history_path)
        }

    def _read_journal(self) -> list[tuple[Path, Path]]:
        try:
            data = json.loads(self._journal_path.read_text("utf-8"))
            pairs = [(Path(tmp), Path(dst)) for tmp, dst in data["replace"]]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("Ignoring unreadable commit journal %s (%s)", self._journal_path, e)
            return []
        targets = self._targets()
        out: list[tuple[Path, Path]] = []
        for tmp, dst in pairs:
            target = targets.get(tmp.resolve())
            if target is None or target.resolve() != dst.resolve():
                logger.warning("Ignoring foreign journal entry %s -> %s", tmp, dst)
                continue
            out.append((tmp, target))
        return out

    def _recover_interrupted_commit(self) -> None:
        """
        A journal on disk means every staged file was complete before any
        replace ran, so the commit is finished. Without one, staging files
        were never committed and are dropped.
        """
        journal = self._journal_path
        if journal.exists():
            pending = [(tmp, dst) for tmp, dst in self._read_journal() if tmp.exists()]
            try:
                for tmp, dst in pending:
                    os.replace(tmp, dst)
            except OSError as e:
                raise StorageFailure(f"cannot finish interrupted commit {journal}: {e}") from e
            logger.warning(
                "Finished interrupted commit from %s (%d file(s) replaced)", journal, len(pending)
            )
            journal.unlink()

        for path in (self._definitions_path, self._history_path, journal):
            tmp = _staging_path(path)
            if tmp.exists():
                logger.warning("Discarding uncommitted staging file %s", tmp)
                tmp.unlink()

    def _read_definitions_raw(self) -> dict[str, Any]:
        if not self._definitions_path.exists():
            return {}
        try:
            data = json.loads(self._definitions_path.read_text("utf-8"))
        except (OSError, ValueError) as e:
            raise StorageFailure(f"cannot read definitions file {self._definitions_path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageFailure(f"definitions file {self._definitions_path} must contain an object")
        return data

    def _parse_definitions(self) -> tuple[list[TaskDefinition], list[InvalidDefinition]]:
        ok: list[TaskDefinition] = []
        rejected: list[InvalidDefinition] = []
        seen: set[str] = set()
        for name, entry in self._read_definitions_raw().items():
            try:
                task = parse_definition(name, entry)
                if task.name in seen:
                    raise InvalidDefinition(task.name, "duplicate task name")
            except InvalidDefinition as e:
                rejected.append(e)
                continue
            seen.add(task.name)
            ok.append(task)
        return ok, rejected

    def _read_history(self) -> list[CompletionRecord]:
        if not self._history_path.exists():
            return []
        try:
            text = self._history_path.read_text("utf-8")
        except OSError as e:
            raise StorageFailure(f"cannot read history file {self._history_path}: {e}") from e

        out: list[CompletionRecord] = []
        reader = csv.DictReader(io.StringIO(text))
        for line_no, row in enumerate(reader, start=2):
            name = (row.get("task") or "").strip()
            raw_ts = (row.get("done_at") or "").strip()
            try:
                if not name:
                    raise ValueError("missing task name")
                done_at = as_utc(datetime.fromisoformat(raw_ts))
            except ValueError as e:
                logger.warning("Skipping malformed history row %s:%d (%s)", self._history_path, line_no, e)
                continue
            out.append(CompletionRecord(task_name=name, done_at=done_at))
        return out

    @staticmethod
    def _encode_rows(records: Iterable[CompletionRecord], *, header: bool) -> str:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        if header:
            writer.writerow(HISTORY_HEADER)
        for rec in records:
            writer.writerow((rec.task_name, as_utc(rec.done_at).isoformat()))
        return buf.getvalue()

    def _stage_history(self, existing: str | None, records: list[CompletionRecord]) -> Path:
        if existing:
            if not existing.endswith("\n"):
                existing += "\n"
            content = existing + self._encode_rows(records, header=False)
        else:
            content = self._encode_rows(records, header=True)
        return self._stage(self._history_path, content)

    def _write_journal(self, pairs: list[tuple[Path, Path]]) -> None:
        entries = [[str(tmp.resolve()), str(dst.resolve())] for tmp, dst in pairs]
        tmp = self._stage(self._journal_path, json.dumps({"replace": entries}) + "\n")
        try:
            os.replace(tmp, self._journal_path)
        except OSError:
            self._cleanup(tmp)
            raise

    def _restore_history(self, previous: str | None) -> bool:
        """Put the pre-commit history back. Returns False when that failed too."""
        tmp: Path | None = None
        try:
            if previous is None:
                self._cleanup(self._history_path)
            else:
                tmp = self._stage(self._history_path, previous)
                os.replace(tmp, self._history_path)
        except OSError:
            self._cleanup(tmp)
            logger.exception("Could not restore %s; next open will finish the commit", self._history_path)
            return False
        return True

    def _stage_definitions(self, statuses: Mapping[str, ChoreStatus]) -> Path:
        raw = self._read_definitions_raw()
        for name, entry in raw.items():
            key = name.strip() if isinstance(name, str) else name
            if isinstance(entry, dict) and key in statuses:
                entry["status"] = statuses[key].value
        content = json.dumps(raw, ensure_ascii=False, indent=2) + "\n"
        return self._stage(self._definitions_path, content)

    @staticmethod
    def _stage(path: Path, content: str) -> Path:
        tmp = _staging_path(path)
        try:
            with open(tmp, "w", encoding="utf-8", newline="") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
        except OSError:
            ChoreStore._cleanup(tmp)
            raise
        return tmp

    @staticmethod
    def _cleanup(*paths: Path | None) -> None:
        for p in paths:
            if p is not None:
                with contextlib.suppress(FileNotFoundError):
                    p.unlink()

    # ---- public API: reads ----

    def load_definitions(self) -> list[TaskDefinition]:
        """Active (valid) definitions; malformed entries are excluded."""
        definitions, rejected = self._parse_definitions()
        for err in rejected:
            logger.debug("Task %r excluded: %s", err.task_name, err.reason)
        if self._strict and rejected:
            raise rejected[0]
        return definitions

    def rejected_definitions(self) -> list[InvalidDefinition]:
        _, rejected = self._parse_definitions()
        return rejected

    def all_completions(self) -> list[CompletionRecord]:
        return sorted(self._read_history(), key=lambda r: (r.done_at, r.task_name))

    def completions_for(self, task_name: str) -> list[CompletionRecord]:
        return [r for r in self.all_completions() if r.task_name == task_name]

    def latest_completions(self) -> dict[str, CompletionRecord]:
        latest: dict[str, CompletionRecord] = {}
        for rec in self._read_history():
            cur = latest.get(rec.task_name)
            if cur is None or rec.done_at >= cur.done_at:
                latest[rec.task_name] = rec
        return latest

    def latest_completion(self, task_name: str) -> CompletionRecord | None:
        return self.latest_completions().get(task_name)

    # ---- public API: writes (caller holds write_lock) ----

    def append_completions(
        self,
        records: Iterable[CompletionRecord],
        status_cache: Mapping[str, ChoreStatus] | None = None,
    ) -> None:
        """
        Durably append completion records and refresh the status cache.

        The new rows and the cache update become visible together or not at
        all. A crash between the two replaces is finished on the next open.
        """
        new_records = list(records)
        if not new_records and not status_cache:
            return

        staged: list[tuple[Path, Path]] = []
        previous_history: str | None = None
        try:
            if new_records:
                if self._history_path.exists():
                    previous_history = self._history_path.read_text("utf-8")
                staged.append((self._stage_history(previous_history, new_records), self._history_path))
            if status_cache:
                staged.append((self._stage_definitions(status_cache), self._definitions_path))
            self._write_journal(staged)
        except (OSError, StorageFailure) as e:
            self._cleanup(self._journal_path, *(tmp for tmp, _ in staged))
            if isinstance(e, StorageFailure):
                raise
            raise StorageFailure(f"commit of {len(new_records)} completion(s) failed: {e}") from e

        history_replaced = False
        try:
            for tmp, dst in staged:
                os.replace(tmp, dst)
                if dst == self._history_path:
                    history_replaced = True
        except OSError as e:
            if not history_replaced or self._restore_history(previous_history):
                self._cleanup(self._journal_path, *(tmp for tmp, _ in staged))
            raise StorageFailure(f"commit of {len(new_records)} completion(s) failed: {e}") from e

        self._cleanup(self._journal_path)
        logger.info("Committed %d completion(s) to %s", len(new_records), self._history_path)

    def write_status_cache(self, statuses: Mapping[str, ChoreStatus]) -> None:
        if not statuses:
            return
        tmp: Path | None = None
        try:
            tmp = self._stage_definitions(statuses)
            os.replace(tmp, self._definitions_path)
        except OSError as e:
            self._cleanup(tmp)
            raise StorageFailure(f"status cache update failed: {e}") from e
        logger.debug("Status cache refreshed for %d task(s)", len(statuses))
