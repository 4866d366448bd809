# src/taskflow/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import StrEnum


def _norm(raw: object) -> str:
    return " ".join(str(raw or "").replace("_", " ").replace("-", " ").lower().split())


class Priority(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def parse(cls, raw: object) -> Priority | None:
        """Case-insensitive parse; None for anything unrecognized."""
        if isinstance(raw, cls):
            return raw
        s = _norm(raw)
        for p in cls:
            if p.value.lower() == s:
                return p
        return None

    @classmethod
    def from_db(cls, raw: object) -> Priority:
        return cls.parse(raw) or cls.MEDIUM


class Status(StrEnum):
    """Board column. Stored values match the column titles."""

    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

    @classmethod
    def parse(cls, raw: object) -> Status | None:
        if isinstance(raw, cls):
            return raw
        s = _norm(raw)
        aliases = {
            "to do": cls.TODO,
            "todo": cls.TODO,
            "in progress": cls.IN_PROGRESS,
            "inprogress": cls.IN_PROGRESS,
            "progress": cls.IN_PROGRESS,
            "doing": cls.IN_PROGRESS,
            "done": cls.DONE,
            "completed": cls.DONE,
        }
        return aliases.get(s)

    @classmethod
    def from_db(cls, raw: object) -> Status:
        return cls.parse(raw) or cls.TODO


@dataclass(frozen=True, slots=True)
class Subtask:
    id: str
    text: str
    completed: bool = False


@dataclass(frozen=True, slots=True)
class Task:
    """
    A unit of trackable work (one card on the board).

    Instances are immutable; the store replaces them on every change, so a
    snapshot handed out earlier never changes under its holder.
    """

    id: str
    title: str
    description: str
    priority: Priority
    status: Status
    due_date: date | None = None
    subtasks: tuple[Subtask, ...] = ()
    image_url: str | None = None


# Fields a patch may touch ("id" is immutable).
UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {"title", "description", "priority", "status", "due_date", "subtasks", "image_url"}
)
