# tests/test_task_store.py

from __future__ import annotations

import json
from datetime import date

import pytest

from taskflow.notifications.notification_store import NotificationStore
from taskflow.storage.codec import TASKS_KEY, PersistenceCodec
from taskflow.storage.kv import MemoryStorage
from taskflow.tasks.task_models import Priority, Status
from taskflow.tasks.task_store import TaskStore

from .fakes import FailingStorage


def _messages(notifications: NotificationStore) -> list[str]:
    return [n.message for n in notifications.notifications]


def test_empty_storage_seeds_five_sample_tasks(task_store: TaskStore, storage: MemoryStorage) -> None:
    assert [t.status for t in task_store.tasks] == [
        Status.TODO,
        Status.IN_PROGRESS,
        Status.IN_PROGRESS,
        Status.DONE,
        Status.TODO,
    ]
    # Seed is persisted right away.
    assert len(json.loads(storage.get_item(TASKS_KEY))) == 5


def test_persisted_empty_list_is_not_reseeded(codec: PersistenceCodec) -> None:
    codec.save_tasks(TASKS_KEY, [])
    assert len(TaskStore(codec)) == 0


def test_list_without_readable_entries_is_reseeded(
    codec: PersistenceCodec, storage: MemoryStorage
) -> None:
    storage.set_item(TASKS_KEY, json.dumps([42, "x"]))

    store = TaskStore(codec)

    assert len(store) == 5
    assert len(json.loads(storage.get_item(TASKS_KEY))) == 5


def test_duplicate_subtask_ids_from_storage_toggle_independently(
    codec: PersistenceCodec, storage: MemoryStorage
) -> None:
    storage.set_item(
        TASKS_KEY,
        json.dumps(
            [
                {
                    "id": "task-1",
                    "title": "Legacy",
                    "subtasks": [{"id": "s1", "text": "a"}, {"id": "s1", "text": "b"}],
                }
            ]
        ),
    )
    store = TaskStore(codec)

    store.toggle_subtask("task-1", "s1")

    subs = store.get_task("task-1").subtasks
    assert [(s.text, s.completed) for s in subs] == [("a", True), ("b", False)]
    assert len({s.id for s in subs}) == 2


def test_subtasks_given_as_a_string_are_rejected(task_store: TaskStore) -> None:
    before = task_store.tasks
    with pytest.raises(TypeError):
        task_store.update_task("task-1", subtasks="abc")
    with pytest.raises(TypeError):
        task_store.add_task("New", subtasks="abc")
    assert task_store.tasks == before


def test_add_task_prepends_persists_and_notifies(
    empty_store: TaskStore, codec: PersistenceCodec, notifications: NotificationStore
) -> None:
    task = empty_store.add_task("Buy milk", "2 liters", Priority.LOW, due_date="2026-03-12")

    assert task.id.startswith("task-")
    assert task.status is Status.TODO
    assert task.subtasks == ()
    assert task.due_date == date(2026, 3, 12)
    assert empty_store.tasks[0] == task
    assert codec.load_tasks(TASKS_KEY) == [task]
    assert _messages(notifications) == ['New task added: "Buy milk"']

    second = empty_store.add_task("Call mom")
    assert [t.id for t in empty_store.tasks] == [second.id, task.id]


def test_add_task_rejects_blank_title(empty_store: TaskStore) -> None:
    with pytest.raises(ValueError):
        empty_store.add_task("   ")


def test_completion_notification_rules(empty_store: TaskStore, notifications: NotificationStore) -> None:
    t = empty_store.add_task("Ship it")

    empty_store.move_task(t.id, Status.IN_PROGRESS)
    empty_store.move_task(t.id, Status.DONE)
    empty_store.move_task(t.id, Status.DONE)  # no change, no notification
    empty_store.move_task(t.id, Status.TODO)

    assert _messages(notifications) == [
        'Task updated: "Ship it"',
        'Task completed: "Ship it"',
        'Task updated: "Ship it"',
        'New task added: "Ship it"',
    ]


def test_update_message_uses_title_before_rename(
    empty_store: TaskStore, notifications: NotificationStore
) -> None:
    t = empty_store.add_task("Old name")
    updated = empty_store.update_task(t.id, title="New name", priority="high")

    assert updated.title == "New name"
    assert updated.priority is Priority.HIGH
    assert notifications.notifications[0].message == 'Task updated: "Old name"'


def test_unknown_ids_are_silent_noops(task_store: TaskStore, storage: MemoryStorage) -> None:
    before = storage.get_item(TASKS_KEY)
    calls: list[object] = []
    task_store.subscribe(calls.append)

    assert task_store.update_task("missing", title="x") is None
    assert task_store.delete_task("missing") is None
    assert task_store.add_subtask("missing", "x") is None
    assert task_store.toggle_subtask("task-1", "missing") is None
    assert task_store.delete_subtask("missing", "subtask-1-1") is None

    assert storage.get_item(TASKS_KEY) == before
    assert calls == []


def test_invalid_patch_is_rejected_without_change(task_store: TaskStore) -> None:
    before = task_store.tasks
    with pytest.raises(ValueError):
        task_store.patch_task("task-1", {"id": "other"})
    with pytest.raises(ValueError):
        task_store.update_task("task-1", status="Blocked")
    assert task_store.tasks == before


def test_delete_task(task_store: TaskStore, notifications: NotificationStore) -> None:
    removed = task_store.delete_task("task-3")

    assert removed.title == "Set up CI/CD pipeline"
    assert task_store.get_task("task-3") is None
    assert len(task_store) == 4
    assert notifications.notifications[0].message == 'Task deleted: "Set up CI/CD pipeline"'


def test_subtask_add_and_toggle(empty_store: TaskStore, notifications: NotificationStore) -> None:
    t = empty_store.add_task("Trip")
    sub = empty_store.add_subtask(t.id, "Pack bags")

    assert sub.id.startswith("subtask-")
    assert sub.completed is False

    toggled = empty_store.toggle_subtask(t.id, sub.id)
    assert toggled.completed is True
    assert empty_store.get_task(t.id).subtasks == (toggled,)

    assert empty_store.toggle_subtask(t.id, sub.id).completed is False
    assert empty_store.delete_subtask(t.id, sub.id) == sub
    assert empty_store.get_task(t.id).subtasks == ()
    # Subtask edits stay out of the activity log.
    assert _messages(notifications) == ['New task added: "Trip"']


def test_batch_update_emits_single_notification(
    task_store: TaskStore, notifications: NotificationStore
) -> None:
    snapshots: list[object] = []
    task_store.subscribe(snapshots.append)

    updated = task_store.update_multiple_tasks(
        [
            ("task-1", {"priority": Priority.LOW}),
            ("task-5", {"priority": Priority.HIGH}),
            ("ghost", {"priority": Priority.HIGH}),
        ]
    )

    assert [t.id for t in updated] == ["task-1", "task-5"]
    assert task_store.get_task("task-1").priority is Priority.LOW
    assert task_store.get_task("task-5").priority is Priority.HIGH
    assert len(snapshots) == 1
    assert _messages(notifications) == ["AI has re-prioritized 2 tasks"]


def test_batch_update_is_all_or_nothing(task_store: TaskStore) -> None:
    before = task_store.tasks
    with pytest.raises(ValueError):
        task_store.update_multiple_tasks(
            [("task-1", {"priority": "Low"}), ("task-2", {"priority": "Whenever"})]
        )
    assert task_store.tasks == before


def test_snapshots_are_immutable_values(task_store: TaskStore) -> None:
    old = task_store.tasks
    task_store.move_task("task-1", Status.DONE)

    assert old[0].status is Status.TODO
    assert task_store.tasks[0].status is Status.DONE


def test_write_failure_keeps_memory_state() -> None:
    store = TaskStore(PersistenceCodec(FailingStorage()), seed=list)
    t = store.add_task("Still here")
    assert store.get_task(t.id) == t
