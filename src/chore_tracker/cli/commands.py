# src/chore_tracker/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from ..chores.chore_api import (
    completion_history,
    due_and_upcoming,
    list_statuses,
    submit_completions,
    yearly_timeline,
)
from ..chores.chore_errors import InvalidDefinition, StorageFailure, StoreBusy, UnknownTask
from ..chores.chore_models import StatusView
from ..core.state import AppState

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, str, CommandEmitter | None], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /done, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Chore core errors are turned into user-facing replies here.
        """
        if not line.startswith("/"):
            return None

        head, _, rest = line[1:].strip().partition(" ")
        if not head:
            return "Empty command. Use /help to list available commands."

        name = head.lower()
        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, rest.strip(), emit)
        except UnknownTask as e:
            return f"Rejected, nothing was saved. Unknown chore(s): {', '.join(e.task_names)}"
        except StoreBusy:
            return "The chore list is busy right now. Please try again."
        except StorageFailure as e:
            logger.error("Storage failure in /%s: %s", name, e)
            return "Could not save. Nothing was changed."
        except InvalidDefinition as e:
            return f"Invalid chore definition: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _fmt_ts(ts: datetime | None) -> str:
    if ts is None:
        return "never"
    return ts.astimezone().strftime("%Y-%m-%d %H:%M")


def _fmt_view(v: StatusView) -> str:
    line = f"{v.name}: {v.status.value} (last done {_fmt_ts(v.last_done_at)})"
    if v.next_transition_at is not None:
        line += f", changes {_fmt_ts(v.next_transition_at)}"
    return line


def _split_names(args: str) -> list[str]:
    return [p.strip() for p in args.split(",") if p.strip()]


def cmd_help(state: AppState, args: str, emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: str, emit: CommandEmitter | None = None) -> str:
    views = list_statuses(state)
    if not views:
        path = getattr(state.settings, "definitions_path", "the definitions file")
        return f"No chores defined. Edit {path}."
    return "Chores:\n" + "\n".join(f"  {_fmt_view(v)}" for v in views)


def cmd_due(state: AppState, args: str, emit: CommandEmitter | None = None) -> str:
    due, upcoming = due_and_upcoming(state)
    lines = ["Due:"]
    lines += [f"  {_fmt_view(v)}" for v in due] or ["  (nothing)"]
    lines.append("Upcoming:")
    lines += [f"  {_fmt_view(v)}" for v in upcoming] or ["  (nothing)"]
    return "\n".join(lines)


def cmd_done(state: AppState, args: str, emit: CommandEmitter | None = None) -> str:
    """
    /done Mop Floor               -> mark one chore done
    /done Mop Floor, Dust Shelves -> mark several (all or nothing)
    """
    names = _split_names(args)
    if not names:
        return "Usage: /done <chore>[, <chore>...]"

    result = submit_completions(state, names)
    lines = []
    for o in result.outcomes:
        if o.newly_completed:
            lines.append(f"  {o.task_name}: marked done (now {o.status.value})")
        else:
            lines.append(f"  {o.task_name}: already done, nothing recorded")
    return f"Submitted at {_fmt_ts(result.at)}:\n" + "\n".join(lines)


def cmd_timeline(state: AppState, args: str, emit: CommandEmitter | None = None) -> str:
    """
    /timeline        -> next due date and yearly count per chore
    /timeline <name> -> every projected due date of one chore
    """
    occurrences = yearly_timeline(state)
    name = args.strip()

    if name:
        dates = [o for o in occurrences if o.task_name == name]
        if not dates:
            return f"Unknown chore: {name}"
        lines = [f"Timeline for {name}:"]
        for o in dates:
            flag = " (overdue)" if o.overdue else ""
            lines.append(f"  {_fmt_ts(o.due_at)}{flag}")
        return "\n".join(lines)

    per_task: dict[str, list] = {}
    for o in occurrences:
        per_task.setdefault(o.task_name, []).append(o)
    if not per_task:
        return "No chores defined."
    lines = ["Timeline (next due, occurrences this year):"]
    for task_name, items in per_task.items():
        lines.append(f"  {task_name}: {_fmt_ts(items[0].due_at)}, {len(items)}x")
    return "\n".join(lines)


def cmd_history(state: AppState, args: str, emit: CommandEmitter | None = None) -> str:
    name = args.strip()
    records = completion_history(state, name or None)
    if not records:
        return f"No completions recorded{' for ' + name if name else ''}."
    title = f"History for {name}:" if name else "History:"
    return title + "\n" + "\n".join(f"  {_fmt_ts(r.done_at)}  {r.task_name}" for r in records)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show every chore with its current status.")
registry.register("due", cmd_due, help_text="Show the Due and Upcoming panels.")
registry.register(
    "done", cmd_done, help_text="Mark chores done: /done <chore>[, <chore>...].", aliases=["d"]
)
registry.register("timeline", cmd_timeline, help_text="Projected due dates: /timeline [chore].")
registry.register("history", cmd_history, help_text="Completion history: /history [chore].")
