# tests/test_commands.py

from __future__ import annotations

from chore_tracker.chores.chore_models import ChoreStatus
from chore_tracker.cli.commands import CommandRegistry, registry


def test_command_registry_routes_args(state) -> None:
    reg = CommandRegistry()
    seen: list[str] = []

    def handler(state, args, emit):
        seen.append(args)
        if emit is not None:
            emit("note")
        return "ok"

    reg.register("a", handler, "a", aliases=["alpha"])

    assert reg.handle(state, "/a Mop Floor, Dust Shelves") == "ok"
    assert reg.handle(state, "/ALPHA", emit=lambda _: None) == "ok"
    assert seen == ["Mop Floor, Dust Shelves", ""]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Unknown command" in (reg.handle(state, "/nope") or "")
    assert "Empty command" in (reg.handle(state, "/") or "")


def test_done_then_status(state) -> None:
    reply = registry.handle(state, "/done Mop Floor, Water Plants") or ""
    assert "Mop Floor: marked done" in reply
    assert "Water Plants: marked done" in reply

    again = registry.handle(state, "/done Mop Floor") or ""
    assert "already done" in again

    status = registry.handle(state, "/status") or ""
    assert "Mop Floor: done" in status
    assert "Dust Shelves: due" in status


def test_done_with_unknown_name_saves_nothing(state) -> None:
    reply = registry.handle(state, "/done Mop Floor, Unknown Task") or ""

    assert "Unknown Task" in reply
    assert "nothing was saved" in reply
    assert state.store.all_completions() == []


def test_due_panels_and_timeline(state) -> None:
    registry.handle(state, "/done Water Plants")

    panels = registry.handle(state, "/due") or ""
    due_part, _, upcoming_part = panels.partition("Upcoming:")
    assert "Mop Floor" in due_part
    assert "Water Plants" not in panels

    timeline = registry.handle(state, "/timeline Water Plants") or ""
    assert timeline.startswith("Timeline for Water Plants:")
    assert "Unknown chore" in (registry.handle(state, "/timeline Nope") or "")


def test_history_lists_completions(state) -> None:
    assert "No completions" in (registry.handle(state, "/history") or "")
    registry.handle(state, "/done Dust Shelves")

    history = registry.handle(state, "/history Dust Shelves") or ""
    assert history.startswith("History for Dust Shelves:")
    assert state.transactor.refresh_status_cache()["Dust Shelves"] == ChoreStatus.DONE
