# tests/test_completion.py

from __future__ import annotations

import asyncio
import threading
from datetime import timedelta

import pytest

from chore_tracker.chores import chore_store
from chore_tracker.chores.chore_api import submit_completions, submit_completions_async
from chore_tracker.chores.chore_errors import StorageFailure, StoreBusy, UnknownTask
from chore_tracker.chores.chore_models import ChoreStatus, CompletionRecord
from chore_tracker.chores.completion import CompletionTransactor

from .fakes import NOW, FakeChoreRepo, make_task


def _repo(history: list[CompletionRecord] | None = None) -> FakeChoreRepo:
    return FakeChoreRepo(
        [make_task("Mop Floor", 7, 2), make_task("Dust Shelves", 14, 3), make_task("Descale Kettle", 30, 30)],
        history,
    )


def test_due_and_upcoming_tasks_get_one_record_each() -> None:
    repo = _repo([CompletionRecord("Dust Shelves", NOW - timedelta(days=12))])
    tx = CompletionTransactor(repo)

    result = tx.submit(["Mop Floor", "Dust Shelves"], at=NOW)

    assert result.newly_completed == ["Mop Floor", "Dust Shelves"]
    assert result.already_done == []
    assert all(o.status == ChoreStatus.DONE for o in result.outcomes)
    assert repo.completions_for("Mop Floor") == [CompletionRecord("Mop Floor", NOW)]
    assert repo.latest_completion("Dust Shelves") == CompletionRecord("Dust Shelves", NOW)
    assert repo.status_cache == {"Mop Floor": ChoreStatus.DONE, "Dust Shelves": ChoreStatus.DONE}
    assert repo.commits == 1


def test_resubmitting_a_done_task_is_a_no_op() -> None:
    repo = _repo()
    tx = CompletionTransactor(repo)

    tx.submit(["Mop Floor"], at=NOW)
    history_after_first = list(repo.history)
    second = tx.submit(["Mop Floor"], at=NOW + timedelta(hours=3))

    assert repo.history == history_after_first
    assert second.already_done == ["Mop Floor"]
    assert second.outcomes[0].status == ChoreStatus.DONE
    assert repo.commits == 1


def test_unknown_name_rejects_whole_batch() -> None:
    repo = _repo()
    tx = CompletionTransactor(repo)

    with pytest.raises(UnknownTask) as exc:
        tx.submit(["Mop Floor", "Unknown Task"], at=NOW)

    assert exc.value.task_names == ("Unknown Task",)
    assert repo.history == []
    assert repo.commits == 0


def test_duplicate_and_blank_names_are_collapsed() -> None:
    repo = _repo()
    tx = CompletionTransactor(repo)

    result = tx.submit(["Mop Floor", " Mop Floor ", "", "Dust Shelves", "Mop Floor"], at=NOW)

    assert [o.task_name for o in result.outcomes] == ["Mop Floor", "Dust Shelves"]
    assert len(repo.history) == 2


def test_empty_batch_writes_nothing() -> None:
    repo = _repo()
    result = CompletionTransactor(repo).submit([], at=NOW)

    assert result.outcomes == ()
    assert repo.commits == 0


def test_lead_equal_to_period_reports_done_after_completion() -> None:
    repo = _repo()
    result = CompletionTransactor(repo).submit(["Descale Kettle"], at=NOW)

    assert result.outcomes[0].newly_completed is True
    assert result.outcomes[0].status == ChoreStatus.DONE


def test_same_instant_retry_of_lead_equal_to_period_task_records_once() -> None:
    repo = _repo()
    tx = CompletionTransactor(repo)

    tx.submit(["Descale Kettle"], at=NOW)
    retry = tx.submit(["Descale Kettle"], at=NOW)

    assert retry.already_done == ["Descale Kettle"]
    assert repo.completions_for("Descale Kettle") == [CompletionRecord("Descale Kettle", NOW)]
    assert repo.commits == 1


def test_naive_submission_time_is_taken_as_utc() -> None:
    repo = _repo()
    result = CompletionTransactor(repo).submit(["Mop Floor"], at=NOW.replace(tzinfo=None))

    assert result.at == NOW
    assert repo.history == [CompletionRecord("Mop Floor", NOW)]


def test_store_busy_when_lock_is_held() -> None:
    repo = _repo()
    tx = CompletionTransactor(repo, lock_timeout_seconds=0.05)

    with repo.write_lock, pytest.raises(StoreBusy):
        tx.submit(["Mop Floor"], at=NOW)

    assert repo.history == []


def test_refresh_status_cache_rewrites_only_changes() -> None:
    repo = _repo([CompletionRecord("Mop Floor", NOW - timedelta(days=6))])
    tx = CompletionTransactor(repo)

    current = tx.refresh_status_cache(NOW)

    assert current == {
        "Mop Floor": ChoreStatus.UPCOMING,
        "Dust Shelves": ChoreStatus.DUE,
        "Descale Kettle": ChoreStatus.DUE,
    }
    assert repo.status_cache == current


def test_non_waiting_refresh_gives_up_when_lock_is_held() -> None:
    repo = _repo([CompletionRecord("Mop Floor", NOW - timedelta(days=6))])
    tx = CompletionTransactor(repo, lock_timeout_seconds=5.0)

    with repo.write_lock, pytest.raises(StoreBusy):
        tx.refresh_status_cache(NOW, wait=False)

    assert repo.status_cache == {}


# ---- against the real file store ----


def test_mop_floor_scenario_end_to_end(state) -> None:
    with pytest.raises(UnknownTask):
        submit_completions(state, ["Mop Floor", "Unknown Task"], at=NOW)
    assert state.store.latest_completion("Mop Floor") is None

    result = submit_completions(state, ["Mop Floor"], at=NOW)
    assert result.newly_completed == ["Mop Floor"]

    again = submit_completions(state, ["Mop Floor"], at=NOW + timedelta(minutes=1))
    assert again.already_done == ["Mop Floor"]
    assert state.store.completions_for("Mop Floor") == [CompletionRecord("Mop Floor", NOW)]


def test_failed_commit_keeps_previous_state(state, monkeypatch) -> None:
    submit_completions(state, ["Water Plants"], at=NOW - timedelta(days=5))
    history_before = state.store.history_path.read_bytes()

    def boom(src, dst):
        raise OSError("read-only file system")

    monkeypatch.setattr(chore_store.os, "replace", boom)

    with pytest.raises(StorageFailure):
        submit_completions(state, ["Water Plants", "Mop Floor"], at=NOW)

    assert state.store.history_path.read_bytes() == history_before
    assert state.store.latest_completion("Mop Floor") is None


def test_failed_cache_update_rejects_the_submission(state, monkeypatch) -> None:
    real_replace = chore_store.os.replace

    def replace(src, dst):
        if str(dst).endswith("tasks.json"):
            raise OSError("read-only file system")
        return real_replace(src, dst)

    monkeypatch.setattr(chore_store.os, "replace", replace)

    with pytest.raises(StorageFailure):
        submit_completions(state, ["Mop Floor"], at=NOW)

    assert state.store.latest_completion("Mop Floor") is None
    (mop,) = [d for d in state.store.load_definitions() if d.name == "Mop Floor"]
    assert mop.cached_status is None


def _race(state, batches: list[list[str]]) -> list:
    barrier = threading.Barrier(len(batches))
    results: list = [None] * len(batches)

    def worker(i: int, names: list[str]) -> None:
        barrier.wait()
        results[i] = submit_completions(state, names, at=NOW)

    threads = [threading.Thread(target=worker, args=(i, b)) for i, b in enumerate(batches)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    return results


def test_concurrent_submissions_for_same_task_record_once(state) -> None:
    results = _race(state, [["Mop Floor"]] * 4)

    assert len(state.store.completions_for("Mop Floor")) == 1
    assert sum(len(r.newly_completed) for r in results) == 1
    assert sum(len(r.already_done) for r in results) == 3


def test_concurrent_disjoint_submissions_both_commit(state) -> None:
    results = _race(state, [["Mop Floor"], ["Dust Shelves", "Water Plants"]])

    assert all(r is not None for r in results)
    names = sorted(r.task_name for r in state.store.all_completions())
    assert names == ["Dust Shelves", "Mop Floor", "Water Plants"]


@pytest.mark.asyncio
async def test_async_submissions_serialize(state) -> None:
    results = await asyncio.gather(
        submit_completions_async(state, ["Dust Shelves"], at=NOW),
        submit_completions_async(state, ["Dust Shelves"], at=NOW),
    )

    assert sorted(len(r.newly_completed) for r in results) == [0, 1]
    assert len(state.store.completions_for("Dust Shelves")) == 1
