# tests/test_ids.py

from __future__ import annotations

import re

from taskflow.core.ids import generate_id, notification_id, subtask_id, task_id


def test_ids_are_unique_and_well_formed() -> None:
    ids = {generate_id() for _ in range(2000)}
    assert len(ids) == 2000
    for i in list(ids)[:50]:
        assert re.fullmatch(r"\d+-[0-9a-z]{7}", i)


def test_prefixed_ids() -> None:
    assert task_id().startswith("task-")
    assert subtask_id().startswith("subtask-")
    assert notification_id().startswith("notification-")
