# src/taskflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data directory exists,
- wires storage, stores and AI clients into AppState.
"""

from __future__ import annotations

import logging

from ..ai.runner import TaskAIRunner
from ..config import get_settings
from ..core.ports import ImageClient, LLMClient, SpeechClient
from ..core.state import AppState
from ..llm.client import OpenRouterLLMClient
from ..llm.media import OpenAIImageClient, OpenAISpeechClient
from ..llm.offline import OfflineLLMClient
from ..notifications.notification_store import NotificationStore
from ..storage.codec import NOTIFICATIONS_KEY, TASKS_KEY, PersistenceCodec, storage_key
from ..storage.kv import FileStorage
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _build_media(settings) -> tuple[ImageClient | None, SpeechClient | None]:
    try:
        return OpenAIImageClient(settings), OpenAISpeechClient(settings)
    except RuntimeError as e:
        logger.info("Media generation disabled: %s", e)
        return None, None


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    settings.data_dir.mkdir(parents=True, exist_ok=True)

    codec = PersistenceCodec(FileStorage(settings.data_dir))
    user_id = getattr(settings, "user_id", None)

    notifications = NotificationStore(
        codec,
        key=storage_key(NOTIFICATIONS_KEY, user_id),
        max_items=settings.notifications_max,
    )
    task_store = TaskStore(
        codec,
        key=storage_key(TASKS_KEY, user_id),
        notifier=notifications,
    )

    llm_client: LLMClient
    offline = False
    try:
        llm_client = OpenRouterLLMClient(settings)
    except RuntimeError as e:
        # Demos / local runs without external services.
        logger.info("LLM not configured (%s); using offline client.", e)
        llm_client = OfflineLLMClient()
        offline = True

    images, speech = _build_media(settings)

    return AppState(
        settings=settings,
        codec=codec,
        notifications=notifications,
        task_store=task_store,
        llm=llm_client,
        ai=TaskAIRunner(
            task_store,
            llm_client,
            images=images,
            speech=speech,
            assistant_max_steps=settings.assistant_max_steps,
        ),
        offline=offline,
    )
