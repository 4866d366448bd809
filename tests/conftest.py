# tests/conftest.py

from __future__ import annotations

from datetime import UTC, date, datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskflow.ai.runner import TaskAIRunner
from taskflow.core.state import AppState
from taskflow.notifications.notification_store import NotificationStore
from taskflow.storage.codec import PersistenceCodec
from taskflow.storage.kv import MemoryStorage
from taskflow.tasks.seed import sample_tasks
from taskflow.tasks.task_store import TaskStore

from .fakes import FakeImageClient, FakeLLMClient, FakeSpeechClient

TODAY = date(2026, 3, 10)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskflow-test",
        data_dir=tmp_path,
        user_id=None,
        notifications_max=100,
        llm_models=["test/model"],
        assistant_max_steps=4,
    )


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def codec(storage: MemoryStorage) -> PersistenceCodec:
    return PersistenceCodec(storage)


@pytest.fixture()
def notifications(codec: PersistenceCodec) -> NotificationStore:
    return NotificationStore(codec, clock=lambda: datetime(2026, 3, 10, 12, 0, tzinfo=UTC))


@pytest.fixture()
def task_store(codec: PersistenceCodec, notifications: NotificationStore) -> TaskStore:
    """Store seeded with the five sample tasks."""
    return TaskStore(codec, notifier=notifications, seed=lambda: sample_tasks(TODAY))


@pytest.fixture()
def empty_store(codec: PersistenceCodec, notifications: NotificationStore) -> TaskStore:
    return TaskStore(codec, notifier=notifications, seed=list)


@pytest.fixture()
def llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    codec: PersistenceCodec,
    notifications: NotificationStore,
    task_store: TaskStore,
    llm: FakeLLMClient,
) -> AppState:
    """AppState wired with deterministic fakes and in-memory storage."""
    return AppState(
        settings=settings,
        codec=codec,
        notifications=notifications,
        task_store=task_store,
        llm=llm,
        ai=TaskAIRunner(
            task_store,
            llm,
            images=FakeImageClient(),
            speech=FakeSpeechClient(),
            assistant_max_steps=settings.assistant_max_steps,
            today=lambda: TODAY,
        ),
    )
