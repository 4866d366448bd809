# src/taskflow/notifications/notification_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Notification:
    """
    One activity-log entry.

    Lifecycle: unread -> read (one way, only through mark-all-as-read).
    Entries leave the log only by falling off the bounded end.
    """

    id: str
    message: str
    timestamp: datetime
    read: bool = False
