# src/taskflow/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..ai.runner import TaskAIRunner
from ..notifications.notification_store import NotificationStore
from ..storage.codec import PersistenceCodec
from ..tasks.task_store import TaskStore
from .ports import LLMClient


@dataclass
class AppState:
    """
    Everything a connector needs, wired once by the composition root.

    Components receive their collaborators explicitly; nothing here is global.
    """

    settings: Any
    codec: PersistenceCodec
    notifications: NotificationStore
    task_store: TaskStore
    llm: LLMClient
    ai: TaskAIRunner
    offline: bool = False
