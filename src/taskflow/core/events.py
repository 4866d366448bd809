# src/taskflow/core/events.py

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[T], None]


class SnapshotPublisher(Generic[T]):
    """
    Minimal publish/subscribe channel.

    Stores publish their new snapshot after every transition; views re-derive
    whatever they show from it. A crashing listener is logged and skipped so
    it cannot break the store or the other listeners.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._listeners: list[Listener[T]] = []

    def subscribe(self, listener: Listener[T]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, snapshot: T) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("%s listener %r failed.", self._name, listener)

    def __len__(self) -> int:
        return len(self._listeners)
