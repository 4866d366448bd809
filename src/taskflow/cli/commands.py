# src/taskflow/cli/commands.py

from __future__ import annotations

import asyncio
import base64
import inspect
import logging
from collections.abc import Callable, Coroutine
from datetime import date
from pathlib import Path
from typing import Any, TypeVar, cast

from ..ai.structured import AIFlowError
from ..core.state import AppState
from ..storage.codec import parse_due_date
from ..tasks.task_api import (
    dashboard_stats,
    filter_tasks,
    is_overdue,
    task_progress,
    tasks_by_status,
    tasks_due_on,
)
from ..tasks.task_models import Priority, Status, Subtask, Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

T = TypeVar("T")

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, ...)."""

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
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def resolve_task(state: AppState, ref: str) -> Task | None:
    """
    A task reference is a 1-based position in the list, a full id,
    or an unambiguous id prefix.
    """
    tasks = state.task_store.tasks
    ref = ref.strip()
    if ref.isdigit():
        i = int(ref)
        if 1 <= i <= len(tasks):
            return tasks[i - 1]
        return None

    exact = state.task_store.get_task(ref)
    if exact is not None:
        return exact

    matches = [t for t in tasks if t.id.startswith(ref)]
    return matches[0] if len(matches) == 1 else None


def _resolve_subtask(task: Task, ref: str) -> Subtask | None:
    if ref.isdigit():
        i = int(ref)
        return task.subtasks[i - 1] if 1 <= i <= len(task.subtasks) else None
    return next((s for s in task.subtasks if s.id == ref), None)


def _pop_option(args: list[str], *names: str) -> str | None:
    """Remove `--name value` from args and return value."""
    for i, a in enumerate(args):
        if a in names and i + 1 < len(args):
            value = args[i + 1]
            del args[i : i + 2]
            return value
    return None


def _run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


def _format_task(task: Task, index: int | None = None, today: date | None = None) -> str:
    today = today or date.today()
    prefix = f"{index}. " if index is not None else ""
    line = f"{prefix}[{task.priority.value}] {task.title}"
    if task.due_date is not None:
        line += f" (due {task.due_date.isoformat()}{', OVERDUE' if is_overdue(task, today) else ''})"
    done, total = task_progress(task)
    if total:
        line += f" [{done}/{total}]"
    return f"{line}  <{task.id}>"


def _position(state: AppState, task: Task) -> int:
    for i, t in enumerate(state.task_store.tasks, start=1):
        if t.id == task.id:
            return i
    return 0


def _ai_error(e: Exception) -> str:
    logger.info("AI command failed: %s", e)
    return f"[AI] {e}"


# ---- general ----


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    models = ", ".join(list(getattr(state.settings, "llm_models", []) or []))
    ai = "OFFLINE (demo replies)" if state.offline else f"ON ({models})"
    media = "ON" if state.ai.has_images else "OFF"
    return (
        "Status:\n"
        f"  Tasks: {len(state.task_store)}\n"
        f"  Unread notifications: {state.notifications.unread_count}\n"
        f"  AI (priority -> fallback): {ai}\n"
        f"  Image/audio generation: {media}\n"
        f"  Data dir: {getattr(state.settings, 'data_dir', '?')}"
    )


# ---- tasks ----


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list            -> board view (all columns)
    /list <status>   -> a single column
    """
    tasks = state.task_store.tasks
    if not tasks:
        return "No tasks yet. Add one with /add <title>."

    only = Status.parse(" ".join(args)) if args else None
    if args and only is None:
        return "Unknown status. Use: todo | progress | done."

    index = {t.id: i for i, t in enumerate(tasks, start=1)}
    lines: list[str] = []
    for status, column in tasks_by_status(tasks).items():
        if only is not None and status is not only:
            continue
        lines.append(f"{status.value} ({len(column)}):")
        for t in column:
            lines.append("  " + _format_task(t, index[t.id]))
    return "\n".join(lines)


def cmd_show(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /show <task>"
    task = resolve_task(state, args[0])
    if task is None:
        return f"No such task: {args[0]}"

    lines = [
        _format_task(task, _position(state, task)),
        f"  Status: {task.status.value}",
    ]
    if task.description:
        lines.append(f"  {task.description}")
    if task.image_url:
        lines.append(f"  Image: {task.image_url[:60]}{'...' if len(task.image_url) > 60 else ''}")
    for i, s in enumerate(task.subtasks, start=1):
        lines.append(f"  {i}. [{'x' if s.completed else ' '}] {s.text}")
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title> [--priority High|Medium|Low] [--due YYYY-MM-DD]
    """
    args = list(args)
    raw_priority = _pop_option(args, "--priority", "-p")
    raw_due = _pop_option(args, "--due", "-d")
    title = " ".join(args).strip()
    if not title:
        return "Usage: /add <title> [--priority High|Medium|Low] [--due YYYY-MM-DD]"

    priority = Priority.parse(raw_priority) if raw_priority else Priority.MEDIUM
    if priority is None:
        return f"Unknown priority: {raw_priority}"
    due = parse_due_date(raw_due) if raw_due else None
    if raw_due and due is None:
        return f"Invalid due date: {raw_due} (expected YYYY-MM-DD)"

    task = state.task_store.add_task(title, priority=priority, due_date=due)
    return f"Added: {_format_task(task, 1)}"


def cmd_move(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /move <task> <todo|progress|done>"
    task = resolve_task(state, args[0])
    if task is None:
        return f"No such task: {args[0]}"
    status = Status.parse(" ".join(args[1:]))
    if status is None:
        return "Unknown status. Use: todo | progress | done."
    updated = state.task_store.move_task(task.id, status)
    return f'Moved "{task.title}" to {status.value}.' if updated else "Task disappeared."


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <task>"
    return cmd_move(state, [args[0], Status.DONE.value])


def cmd_del(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /del <task>"
    task = resolve_task(state, args[0])
    if task is None:
        return f"No such task: {args[0]}"
    state.task_store.delete_task(task.id)
    return f'Deleted "{task.title}".'


def cmd_sub(state: AppState, args: list[str]) -> str:
    """
    /sub add <task> <text>
    /sub toggle <task> <n>
    /sub del <task> <n>
    """
    usage = "Usage: /sub add <task> <text> | /sub toggle <task> <n> | /sub del <task> <n>"
    if len(args) < 3:
        return usage

    action = args[0].lower()
    task = resolve_task(state, args[1])
    if task is None:
        return f"No such task: {args[1]}"

    if action == "add":
        sub = state.task_store.add_subtask(task.id, " ".join(args[2:]))
        return f'Subtask added to "{task.title}": {sub.text}' if sub else "Task disappeared."

    target = _resolve_subtask(task, args[2])
    if target is None:
        return f"No such subtask: {args[2]}"

    if action == "toggle":
        sub = state.task_store.toggle_subtask(task.id, target.id)
        if sub is None:
            return "Subtask disappeared."
        return f"[{'x' if sub.completed else ' '}] {sub.text}"

    if action in ("del", "delete", "rm"):
        state.task_store.delete_subtask(task.id, target.id)
        return f"Subtask deleted: {target.text}"

    return usage


def cmd_find(state: AppState, args: list[str]) -> str:
    """/find <text> [--priority High,Low]"""
    args = list(args)
    raw = _pop_option(args, "--priority", "-p")
    priorities = [p for p in (raw or "").split(",") if p.strip()]
    found = filter_tasks(state.task_store.tasks, " ".join(args), priorities)
    if not found:
        return "No matching tasks."
    return "\n".join(_format_task(t, _position(state, t)) for t in found)


def cmd_due(state: AppState, args: list[str]) -> str:
    """/due [YYYY-MM-DD] -> tasks due on that day (default: today)"""
    day = parse_due_date(args[0]) if args else date.today()
    if day is None:
        return f"Invalid date: {args[0]} (expected YYYY-MM-DD)"
    found = tasks_due_on(state.task_store.tasks, day)
    if not found:
        return f"Nothing due on {day.isoformat()}."
    return "\n".join(
        [f"Due on {day.isoformat()}:"]
        + ["  " + _format_task(t, _position(state, t)) for t in found]
    )


def cmd_stats(state: AppState, args: list[str]) -> str:
    s = dashboard_stats(state.task_store.tasks)
    pct = round(100 * s.completed / s.total) if s.total else 0
    prios = ", ".join(f"{p.value}: {n}" for p, n in s.by_priority.items())
    return (
        "Dashboard:\n"
        f"  Total: {s.total}  (To Do {s.todo}, In Progress {s.in_progress}, Done {s.done})\n"
        f"  Completed: {pct}%\n"
        f"  Overdue: {s.overdue}\n"
        f"  Upcoming (7 days): {s.upcoming}\n"
        f"  By priority: {prios}"
    )


# ---- notifications ----


def cmd_notes(state: AppState, args: list[str]) -> str:
    limit = int(args[0]) if args and args[0].isdigit() else 10
    items = state.notifications.notifications[:limit]
    if not items:
        return "No notifications."
    lines = [f"Notifications ({state.notifications.unread_count} unread):"]
    for n in items:
        ts = n.timestamp.astimezone().strftime("%Y-%m-%d %H:%M")
        lines.append(f"  {'*' if not n.read else ' '} {ts} {n.message}")
    return "\n".join(lines)


def cmd_read(state: AppState, args: list[str]) -> str:
    n = state.notifications.mark_all_as_read()
    return f"Marked {n} notification(s) as read." if n else "Nothing unread."


# ---- AI ----


def _save_audio(state: AppState, data_uri: str) -> Path:
    _, _, payload = data_uri.partition("base64,")
    path = Path(getattr(state.settings, "data_dir", ".")) / "summary.wav"
    path.write_bytes(base64.b64decode(payload))
    return path


def cmd_ai(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /ai desc|prio|subtasks|image <task>
    /ai parse <free text>
    /ai full <title>
    /ai reprioritize
    /ai summary [audio]
    """
    usage = (
        "AI commands:\n"
        "  /ai desc <task>      - write a description\n"
        "  /ai prio <task>      - suggest a priority\n"
        "  /ai subtasks <task>  - break the task down\n"
        "  /ai image <task>     - generate an illustration\n"
        "  /ai parse <text>     - create a task from free text\n"
        "  /ai full <title>     - create a fully fleshed-out task\n"
        "  /ai reprioritize     - re-prioritize all open tasks\n"
        "  /ai summary [audio]  - dashboard summary (optionally spoken)"
    )
    if not args:
        return usage

    sub = args[0].lower()
    rest = args[1:]
    per_task = {
        "desc": state.ai.generate_description,
        "prio": state.ai.suggest_priority,
        "subtasks": state.ai.generate_subtasks,
        "image": state.ai.generate_image,
    }

    if emit:
        emit("[AI] Working...")

    try:
        if sub in per_task:
            if not rest:
                return f"Usage: /ai {sub} <task>"
            task = resolve_task(state, rest[0])
            if task is None:
                return f"No such task: {rest[0]}"
            updated = _run(per_task[sub](task.id))
            if updated is None:
                return "The task changed meanwhile; result discarded."
            return cmd_show(state, [updated.id])

        if sub == "parse":
            if not rest:
                return "Usage: /ai parse <text>"
            task = _run(state.ai.create_task_from_text(" ".join(rest)))
            return f"Added: {_format_task(task, 1)}"

        if sub == "full":
            if not rest:
                return "Usage: /ai full <title>"
            task = _run(state.ai.create_full_task(" ".join(rest)))
            return cmd_show(state, [task.id])

        if sub in ("reprioritize", "reprio"):
            changed = _run(state.ai.reprioritize())
            if not changed:
                return "No open tasks were re-prioritized."
            return "\n".join(f"  [{t.priority.value}] {t.title}" for t in changed)

        if sub == "summary":
            summary = _run(state.ai.dashboard_summary())
            if rest and rest[0].lower() == "audio":
                path = _save_audio(state, _run(state.ai.audio_summary(summary)))
                return f"{summary}\n[audio saved to {path}]"
            return summary

    except AIFlowError as e:
        return _ai_error(e)
    except ValueError as e:
        return f"Invalid input: {e}"

    return usage


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show counts and AI configuration.")
registry.register("list", cmd_list, help_text="Board view: /list [todo|progress|done].", aliases=["ls"])
registry.register("show", cmd_show, help_text="Task details: /show <task>.")
registry.register("add", cmd_add, help_text="Add a task: /add <title> [--priority P] [--due D].")
registry.register("move", cmd_move, help_text="Change status: /move <task> <todo|progress|done>.")
registry.register("done", cmd_done, help_text="Mark a task done: /done <task>.")
registry.register("del", cmd_del, help_text="Delete a task: /del <task>.", aliases=["rm"])
registry.register("sub", cmd_sub, help_text="Subtasks: /sub add|toggle|del <task> ...")
registry.register("find", cmd_find, help_text="Search: /find <text> [--priority High,Low].")
registry.register("due", cmd_due, help_text="Calendar day: /due [YYYY-MM-DD].")
registry.register("stats", cmd_stats, help_text="Dashboard statistics.")
registry.register("notes", cmd_notes, help_text="Recent notifications: /notes [n].")
registry.register("read", cmd_read, help_text="Mark all notifications as read.")
registry.register("ai", cmd_ai, help_text="AI helpers: /ai for the list.")
