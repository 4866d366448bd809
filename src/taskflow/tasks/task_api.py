# src/taskflow/tasks/task_api.py

"""
Read-side helpers over a task snapshot (board filter, calendar, dashboard).

Pure functions: they never touch the store, so views can call them on any
snapshot they received from TaskStore.subscribe().
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

from .task_models import Priority, Status, Task

UPCOMING_WINDOW_DAYS = 7


@dataclass(frozen=True, slots=True)
class DashboardStats:
    total: int
    todo: int
    in_progress: int
    done: int
    overdue: int
    upcoming: int
    by_priority: dict[Priority, int]

    @property
    def completed(self) -> int:
        return self.done


def filter_tasks(
    tasks: Iterable[Task],
    search: str = "",
    priorities: Iterable[Priority | str] = (),
) -> list[Task]:
    """
    Board filter: case-insensitive search over title/description combined
    with an optional priority whitelist (empty whitelist = all priorities).
    """
    needle = (search or "").strip().lower()
    wanted = {p for p in (Priority.parse(x) for x in priorities) if p is not None}

    out: list[Task] = []
    for t in tasks:
        if needle and needle not in t.title.lower() and needle not in t.description.lower():
            continue
        if wanted and t.priority not in wanted:
            continue
        out.append(t)
    return out


def tasks_by_status(tasks: Iterable[Task]) -> dict[Status, list[Task]]:
    columns: dict[Status, list[Task]] = {s: [] for s in Status}
    for t in tasks:
        columns[t.status].append(t)
    return columns


def tasks_due_on(tasks: Iterable[Task], day: date) -> list[Task]:
    """Calendar view: tasks whose due date falls on `day`."""
    return [t for t in tasks if t.due_date is not None and t.due_date == day]


def is_overdue(task: Task, today: date) -> bool:
    return task.due_date is not None and task.due_date < today and task.status is not Status.DONE


def is_upcoming(task: Task, today: date, window_days: int = UPCOMING_WINDOW_DAYS) -> bool:
    if task.due_date is None or task.status is Status.DONE:
        return False
    return today <= task.due_date <= today + timedelta(days=window_days)


def dashboard_stats(tasks: Iterable[Task], today: date | None = None) -> DashboardStats:
    today = today or date.today()
    items = list(tasks)
    columns = tasks_by_status(items)
    by_priority = {p: 0 for p in Priority}
    for t in items:
        by_priority[t.priority] += 1

    return DashboardStats(
        total=len(items),
        todo=len(columns[Status.TODO]),
        in_progress=len(columns[Status.IN_PROGRESS]),
        done=len(columns[Status.DONE]),
        overdue=sum(1 for t in items if is_overdue(t, today)),
        upcoming=sum(1 for t in items if is_upcoming(t, today)),
        by_priority=by_priority,
    )


def task_progress(task: Task) -> tuple[int, int]:
    """(completed subtasks, total subtasks)."""
    return sum(1 for s in task.subtasks if s.completed), len(task.subtasks)
