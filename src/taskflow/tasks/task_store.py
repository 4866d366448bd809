# src/taskflow/tasks/task_store.py

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from datetime import date, datetime
from typing import Any

from ..core.events import SnapshotPublisher
from ..core.ids import subtask_id, task_id as new_task_id
from ..core.ports import Notifier
from ..storage.codec import TASKS_KEY, PersistenceCodec, parse_due_date
from .seed import sample_tasks
from .task_models import UPDATABLE_FIELDS, Priority, Status, Subtask, Task

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _coerce_priority(v: Any) -> Priority:
    p = Priority.parse(v)
    if p is None:
        raise ValueError(f"invalid priority: {v!r}")
    return p


def _coerce_status(v: Any) -> Status:
    s = Status.parse(v)
    if s is None:
        raise ValueError(f"invalid status: {v!r}")
    return s


def _coerce_due_date(v: Any) -> date | None:
    if v is None:
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    parsed = parse_due_date(v)
    if parsed is None:
        raise ValueError(f"invalid due date: {v!r}")
    return parsed


def _coerce_subtasks(items: Iterable[Subtask | str]) -> tuple[Subtask, ...]:
    """
    Accept Subtask objects or plain strings (AI output). Strings get fresh ids;
    blank entries are skipped; ids are kept unique within the task.
    """
    if isinstance(items, str):
        raise TypeError("subtasks must be a sequence of Subtask or str, not a str")
    out: list[Subtask] = []
    seen: set[str] = set()
    for item in items:
        if isinstance(item, Subtask):
            sub = item
            if sub.id in seen:
                sub = replace(sub, id=subtask_id())
        elif isinstance(item, str):
            text = item.strip()
            if not text:
                continue
            sub = Subtask(id=subtask_id(), text=text)
        else:
            raise TypeError(f"subtask must be Subtask or str, got {type(item).__name__}")
        seen.add(sub.id)
        out.append(sub)
    return tuple(out)


def _coerce_title(v: Any) -> str:
    title = str(v or "").strip()
    if not title:
        raise ValueError("title is required")
    return title


def apply_patch(task: Task, patch: Mapping[str, Any]) -> Task:
    """
    Return a copy of `task` with `patch` merged in.

    Raises ValueError for unknown fields, an attempt to change the id,
    or a value that cannot be coerced to the field's type.
    """
    unknown = set(patch) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"unknown task field(s): {', '.join(sorted(unknown))}")

    changes: dict[str, Any] = {}
    for name, value in patch.items():
        if name == "title":
            changes[name] = _coerce_title(value)
        elif name == "description":
            changes[name] = str(value or "")
        elif name == "priority":
            changes[name] = _coerce_priority(value)
        elif name == "status":
            changes[name] = _coerce_status(value)
        elif name == "due_date":
            changes[name] = _coerce_due_date(value)
        elif name == "subtasks":
            changes[name] = _coerce_subtasks(value or ())
        elif name == "image_url":
            changes[name] = str(value) if value else None
    return replace(task, **changes)


def _dedupe_ids(tasks: list[Task]) -> list[Task]:
    seen: set[str] = set()
    out: list[Task] = []
    for t in tasks:
        if t.id in seen:
            logger.warning("Dropping task with duplicate id=%s title=%r", t.id, t.title)
            continue
        seen.add(t.id)
        out.append(t)
    return out


class TaskStore:
    """
    In-memory task list with write-through persistence.

    - Newest-created tasks come first.
    - Every transition replaces the list (snapshots are never mutated) and is
      persisted through the codec, then published to subscribers.
    - Unknown task/subtask ids are silent no-ops returning None; the caller may
      hold a stale reference to something deleted meanwhile.
    - Notable mutations are reported to the injected notifier.
    """

    def __init__(
        self,
        codec: PersistenceCodec,
        *,
        key: str = TASKS_KEY,
        notifier: Notifier | None = None,
        seed: Callable[[], list[Task]] = sample_tasks,
    ) -> None:
        self._codec = codec
        self._key = key
        self._notifier = notifier
        self._events: SnapshotPublisher[tuple[Task, ...]] = SnapshotPublisher("TaskStore")

        loaded = codec.load_tasks(key)
        if loaded is None:
            self._tasks: list[Task] = _dedupe_ids(list(seed()))
            self._codec.save_tasks(self._key, self._tasks)
            logger.info("TaskStore seeded key=%s total=%d", key, len(self._tasks))
        else:
            self._tasks = _dedupe_ids(loaded)
            logger.info("TaskStore ready key=%s total=%d", key, len(self._tasks))

    # ---- read side ----

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def _index(self, task_id: str) -> int:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return -1

    def get_task(self, task_id: str) -> Task | None:
        i = self._index(task_id)
        return self._tasks[i] if i >= 0 else None

    def subscribe(self, listener: Callable[[tuple[Task, ...]], None]) -> Callable[[], None]:
        return self._events.subscribe(listener)

    # ---- low-level helpers ----

    def _commit(self, tasks: list[Task]) -> None:
        self._tasks = tasks
        self._codec.save_tasks(self._key, tasks)
        self._events.publish(self.tasks)

    def _notify(self, message: str) -> None:
        if self._notifier is not None:
            self._notifier.add_notification(message)

    def _replace_at(self, i: int, task: Task) -> None:
        tasks = list(self._tasks)
        tasks[i] = task
        self._commit(tasks)

    # ---- tasks ----

    def add_task(
        self,
        title: str,
        description: str = "",
        priority: Priority | str = Priority.MEDIUM,
        *,
        due_date: date | str | None = None,
        subtasks: Iterable[Subtask | str] = (),
        image_url: str | None = None,
    ) -> Task:
        """Create a task in "To Do" and put it at the top of the list."""
        task = Task(
            id=new_task_id(),
            title=_coerce_title(title),
            description=str(description or ""),
            priority=_coerce_priority(priority),
            status=Status.TODO,
            due_date=_coerce_due_date(due_date),
            subtasks=_coerce_subtasks(subtasks),
            image_url=str(image_url) if image_url else None,
        )
        self._commit([task, *self._tasks])
        logger.debug("Task added id=%s priority=%s", task.id, task.priority.value)
        self._notify(f'New task added: "{task.title}"')
        return task

    def update_task(
        self,
        task_id: str,
        *,
        title: str = _UNSET,
        description: str = _UNSET,
        priority: Priority | str = _UNSET,
        status: Status | str = _UNSET,
        due_date: date | str | None = _UNSET,
        subtasks: Iterable[Subtask | str] = _UNSET,
        image_url: str | None = _UNSET,
    ) -> Task | None:
        """
        Merge the given fields into the task.

        Notifications: arriving in "Done" from another status -> "completed";
        any other effective change (leaving "Done" included) -> "updated".
        An update that changes nothing is a no-op.
        """
        patch = {
            name: value
            for name, value in (
                ("title", title),
                ("description", description),
                ("priority", priority),
                ("status", status),
                ("due_date", due_date),
                ("subtasks", subtasks),
                ("image_url", image_url),
            )
            if value is not _UNSET
        }
        return self.patch_task(task_id, patch)

    def patch_task(self, task_id: str, patch: Mapping[str, Any]) -> Task | None:
        """update_task() taking a field -> value mapping."""
        i = self._index(task_id)
        if i < 0:
            logger.debug("update_task: unknown id=%s (ignored)", task_id)
            return None

        before = self._tasks[i]
        after = apply_patch(before, patch)
        if after == before:
            return before

        self._replace_at(i, after)
        logger.debug("Task updated id=%s fields=%s", task_id, sorted(patch))

        if after.status is Status.DONE and before.status is not Status.DONE:
            self._notify(f'Task completed: "{before.title}"')
        else:
            self._notify(f'Task updated: "{before.title}"')
        return after

    def move_task(self, task_id: str, new_status: Status | str) -> Task | None:
        """Drag-and-drop between board columns."""
        return self.update_task(task_id, status=new_status)

    def delete_task(self, task_id: str) -> Task | None:
        i = self._index(task_id)
        if i < 0:
            logger.debug("delete_task: unknown id=%s (ignored)", task_id)
            return None

        removed = self._tasks[i]
        self._commit([t for t in self._tasks if t.id != task_id])
        logger.debug("Task deleted id=%s", task_id)
        self._notify(f'Task deleted: "{removed.title}"')
        return removed

    def update_multiple_tasks(
        self, updates: Iterable[tuple[str, Mapping[str, Any]]]
    ) -> list[Task]:
        """
        Apply several patches as one transition: one write, one published
        snapshot and a single summary notification.

        All patches are validated before anything is applied; unknown ids are
        skipped. Returns the updated tasks.
        """
        tasks = list(self._tasks)
        index = {t.id: i for i, t in enumerate(tasks)}
        touched: dict[str, int] = {}

        for tid, patch in updates:
            i = index.get(tid)
            if i is None:
                logger.debug("update_multiple_tasks: unknown id=%s (ignored)", tid)
                continue
            tasks[i] = apply_patch(tasks[i], patch)
            touched[tid] = i

        if not touched:
            return []

        self._commit(tasks)
        n = len(touched)
        logger.debug("Batch update applied to %d tasks", n)
        self._notify(f"AI has re-prioritized {n} task{'s' if n != 1 else ''}")
        return [tasks[i] for i in touched.values()]

    # ---- subtasks ----

    def add_subtask(self, task_id: str, text: str) -> Subtask | None:
        text = str(text or "").strip()
        if not text:
            raise ValueError("subtask text is required")

        i = self._index(task_id)
        if i < 0:
            return None

        task = self._tasks[i]
        existing = {s.id for s in task.subtasks}
        sid = subtask_id()
        while sid in existing:
            sid = subtask_id()

        sub = Subtask(id=sid, text=text, completed=False)
        self._replace_at(i, replace(task, subtasks=(*task.subtasks, sub)))
        logger.debug("Subtask added task=%s subtask=%s", task_id, sid)
        return sub

    def toggle_subtask(self, task_id: str, subtask_id_: str) -> Subtask | None:
        """Flip `completed`. Returns the subtask in its new state."""
        i = self._index(task_id)
        if i < 0:
            return None

        task = self._tasks[i]
        toggled: Subtask | None = None
        subs: list[Subtask] = []
        for s in task.subtasks:
            if s.id == subtask_id_:
                s = replace(s, completed=not s.completed)
                toggled = s
            subs.append(s)

        if toggled is None:
            return None

        self._replace_at(i, replace(task, subtasks=tuple(subs)))
        logger.debug(
            "Subtask toggled task=%s subtask=%s completed=%s",
            task_id,
            subtask_id_,
            toggled.completed,
        )
        return toggled

    def delete_subtask(self, task_id: str, subtask_id_: str) -> Subtask | None:
        i = self._index(task_id)
        if i < 0:
            return None

        task = self._tasks[i]
        removed = next((s for s in task.subtasks if s.id == subtask_id_), None)
        if removed is None:
            return None

        self._replace_at(
            i, replace(task, subtasks=tuple(s for s in task.subtasks if s.id != subtask_id_))
        )
        logger.debug("Subtask deleted task=%s subtask=%s", task_id, subtask_id_)
        return removed
