# src/taskflow/storage/codec.py

"""
Persistence codec: typed values <-> JSON text in a key/value medium.

Contract:
- save() never raises; a failed write is logged and the in-memory state simply
  stays non-durable for this session.
- load() never raises; absent key, unreadable text, bad JSON or a wrong
  top-level shape all come back as None.
- Date fields are revived on load ("dueDate" -> date, "timestamp" -> datetime).
- Data written by older schema versions is patched up on load (missing
  "subtasks" becomes an empty list, unknown enum values fall back to defaults).
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any

from ..core.ids import subtask_id
from ..core.ports import KeyValueStorage
from ..notifications.notification_models import Notification
from ..tasks.task_models import Priority, Status, Subtask, Task

logger = logging.getLogger(__name__)

TASKS_KEY = "taskflow-tasks"
NOTIFICATIONS_KEY = "taskflow-notifications"


def storage_key(base: str, user_id: str | None = None) -> str:
    """Partition a logical key per authenticated user (no user -> shared key)."""
    uid = (user_id or "").strip()
    return f"{base}-{uid}" if uid else base


# ---- date helpers ----


def parse_due_date(raw: Any) -> date | None:
    """
    Accept "YYYY-MM-DD" and full ISO date-times (older data stored a
    timestamp); the latter are reduced to the calendar date as written.
    """
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return None
    s = raw.strip()
    try:
        return date.fromisoformat(s)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(s).date()
    except ValueError:
        return None


def parse_timestamp(raw: Any) -> datetime | None:
    if isinstance(raw, datetime):
        dt = raw
    elif isinstance(raw, str) and raw.strip():
        try:
            dt = datetime.fromisoformat(raw.strip())
        except ValueError:
            return None
    else:
        return None
    # Naive timestamps are treated as UTC.
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


_DATE_FIELDS = {
    "dueDate": parse_due_date,
    "timestamp": parse_timestamp,
}


def _revive_dates(obj: dict[str, Any]) -> dict[str, Any]:
    for name, parse in _DATE_FIELDS.items():
        if name in obj and obj[name] is not None:
            obj[name] = parse(obj[name])
    return obj


# ---- typed <-> plain dict ----


def subtask_to_dict(s: Subtask) -> dict[str, Any]:
    return {"id": s.id, "text": s.text, "completed": bool(s.completed)}


def task_to_dict(t: Task) -> dict[str, Any]:
    d: dict[str, Any] = {
        "id": t.id,
        "title": t.title,
        "description": t.description,
        "priority": t.priority.value,
        "status": t.status.value,
        "subtasks": [subtask_to_dict(s) for s in t.subtasks],
    }
    if t.due_date is not None:
        d["dueDate"] = t.due_date.isoformat()
    if t.image_url is not None:
        d["imageUrl"] = t.image_url
    return d


def notification_to_dict(n: Notification) -> dict[str, Any]:
    return {
        "id": n.id,
        "message": n.message,
        "timestamp": n.timestamp.isoformat(),
        "read": bool(n.read),
    }


def _flag(raw: Any) -> bool:
    """Booleans only; legacy string flags count as true only when they say so."""
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        return raw.strip().lower() == "true"
    return False


def _subtask_from_dict(raw: Any) -> Subtask | None:
    if not isinstance(raw, dict):
        return None
    text = str(raw.get("text") or "").strip()
    if not text:
        return None
    sid = str(raw.get("id") or "").strip() or subtask_id()
    return Subtask(id=sid, text=text, completed=_flag(raw.get("completed")))


def task_from_dict(raw: Any) -> Task | None:
    """Build a Task from a (date-revived) dict; None if it cannot be repaired."""
    if not isinstance(raw, dict):
        return None
    tid = str(raw.get("id") or "").strip()
    title = str(raw.get("title") or "").strip()
    if not tid or not title:
        return None

    raw_subtasks = raw.get("subtasks")
    subtasks: list[Subtask] = []
    seen: set[str] = set()
    if isinstance(raw_subtasks, list):
        for item in raw_subtasks:
            sub = _subtask_from_dict(item)
            if sub is None:
                continue
            # Subtask ids are unique within their task.
            if sub.id in seen:
                sub = Subtask(id=subtask_id(), text=sub.text, completed=sub.completed)
            seen.add(sub.id)
            subtasks.append(sub)

    image_url = raw.get("imageUrl")

    return Task(
        id=tid,
        title=title,
        description=str(raw.get("description") or ""),
        priority=Priority.from_db(raw.get("priority")),
        status=Status.from_db(raw.get("status")),
        due_date=parse_due_date(raw.get("dueDate")),
        subtasks=tuple(subtasks),
        image_url=str(image_url) if image_url else None,
    )


def notification_from_dict(raw: Any) -> Notification | None:
    if not isinstance(raw, dict):
        return None
    nid = str(raw.get("id") or "").strip()
    ts = parse_timestamp(raw.get("timestamp"))
    if not nid or ts is None:
        return None
    return Notification(
        id=nid,
        message=str(raw.get("message") or ""),
        timestamp=ts,
        read=_flag(raw.get("read")),
    )


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Task):
        return task_to_dict(obj)
    if isinstance(obj, Subtask):
        return subtask_to_dict(obj)
    if isinstance(obj, Notification):
        return notification_to_dict(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class PersistenceCodec:
    """Serialize/deserialize app data to a KeyValueStorage."""

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    @property
    def storage(self) -> KeyValueStorage:
        return self._storage

    # ---- generic ----

    def save(self, key: str, value: Any) -> None:
        try:
            text = json.dumps(value, default=_json_default, ensure_ascii=False)
        except (TypeError, ValueError):
            logger.exception("Failed to encode value for key=%s; not saved.", key)
            return
        try:
            self._storage.set_item(key, text)
        except Exception:
            logger.exception("Failed to save key=%s to storage.", key)
            return
        logger.debug("Saved key=%s (%d chars)", key, len(text))

    def load(self, key: str) -> Any | None:
        try:
            text = self._storage.get_item(key)
        except Exception:
            logger.exception("Failed to read key=%s from storage.", key)
            return None
        if text is None:
            return None
        try:
            return json.loads(text, object_hook=_revive_dates)
        except ValueError:
            logger.warning("Stored value for key=%s is not valid JSON; ignoring it.", key)
            return None

    # ---- typed ----

    def _load_list(self, key: str) -> list[Any] | None:
        raw = self.load(key)
        if raw is None:
            return None
        if not isinstance(raw, list):
            logger.warning(
                "Stored value for key=%s is %s, expected a list; ignoring it.",
                key,
                type(raw).__name__,
            )
            return None
        return raw

    def save_tasks(self, key: str, tasks: list[Task] | tuple[Task, ...]) -> None:
        self.save(key, [task_to_dict(t) for t in tasks])

    def load_tasks(self, key: str) -> list[Task] | None:
        raw = self._load_list(key)
        if raw is None:
            return None
        out: list[Task] = []
        dropped = 0
        for item in raw:
            task = task_from_dict(item)
            if task is None:
                dropped += 1
                continue
            out.append(task)
        if dropped:
            logger.warning("Dropped %d unreadable task entries from key=%s", dropped, key)
        if raw and not out:
            logger.warning("No readable tasks under key=%s; treating it as unreadable.", key)
            return None
        return out

    def save_notifications(
        self, key: str, notifications: list[Notification] | tuple[Notification, ...]
    ) -> None:
        self.save(key, [notification_to_dict(n) for n in notifications])

    def load_notifications(self, key: str) -> list[Notification] | None:
        raw = self._load_list(key)
        if raw is None:
            return None
        out: list[Notification] = []
        dropped = 0
        for item in raw:
            n = notification_from_dict(item)
            if n is None:
                dropped += 1
                continue
            out.append(n)
        if dropped:
            logger.warning(
                "Dropped %d unreadable notification entries from key=%s", dropped, key
            )
        return out
