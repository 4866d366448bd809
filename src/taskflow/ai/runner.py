# src/taskflow/ai/runner.py

"""
Async glue between the AI flows and the task store.

Flows are blocking (streaming HTTP), so they run in a worker thread via
asyncio.to_thread. Their results reach the store only as ordinary store
operations, which keeps persistence and notifications in one place.

Stale results: every per-task call takes a ticket (task_id, purpose, seq).
A result is applied only if its ticket is still the newest one issued for
that (task_id, purpose) and the task still exists. The last-issued request
wins, not the last one to resolve.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any, TypeVar

from ..core.ports import ImageClient, LLMClient, SpeechClient
from ..tasks.task_api import dashboard_stats
from ..tasks.task_models import Priority, Status, Task
from ..tasks.task_store import TaskStore
from . import flows
from .assistant import DEFAULT_MAX_STEPS, AssistantResult, run_assistant

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Ticket subject for calls that span the whole list.
ALL_TASKS = "*"


@dataclass(frozen=True, slots=True)
class Ticket:
    task_id: str
    purpose: str
    seq: int


class TaskAIRunner:
    def __init__(
        self,
        task_store: TaskStore,
        llm: LLMClient,
        *,
        images: ImageClient | None = None,
        speech: SpeechClient | None = None,
        assistant_max_steps: int = DEFAULT_MAX_STEPS,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._store = task_store
        self._llm = llm
        self._images = images
        self._speech = speech
        self._assistant_max_steps = assistant_max_steps
        self._today = today
        self._seq = itertools.count(1)
        self._latest: dict[tuple[str, str], int] = {}

    @property
    def has_images(self) -> bool:
        return self._images is not None

    @property
    def has_speech(self) -> bool:
        return self._speech is not None

    # ---- stale-result guard ----

    def begin(self, task_id: str, purpose: str) -> Ticket:
        ticket = Ticket(task_id=task_id, purpose=purpose, seq=next(self._seq))
        self._latest[(task_id, purpose)] = ticket.seq
        return ticket

    def pending(self) -> int:
        """Number of (task, purpose) keys with an unresolved request."""
        return len(self._latest)

    def is_current(self, ticket: Ticket) -> bool:
        if self._latest.get((ticket.task_id, ticket.purpose)) != ticket.seq:
            return False
        return ticket.task_id == ALL_TASKS or self._store.get_task(ticket.task_id) is not None

    def _release(self, ticket: Ticket) -> None:
        key = (ticket.task_id, ticket.purpose)
        if self._latest.get(key) == ticket.seq:
            del self._latest[key]

    async def _call(self, ticket: Ticket, fn: Callable[..., T], *args: Any) -> T:
        try:
            return await asyncio.to_thread(fn, *args)
        except BaseException:
            self._release(ticket)
            raise

    def _accept(self, ticket: Ticket) -> bool:
        current = self.is_current(ticket)
        self._release(ticket)
        if current:
            return True
        logger.info(
            "Dropping stale AI result purpose=%s task=%s seq=%d",
            ticket.purpose,
            ticket.task_id,
            ticket.seq,
        )
        return False

    # ---- per-task flows ----

    async def generate_description(self, task_id: str) -> Task | None:
        task = self._store.get_task(task_id)
        if task is None:
            return None
        ticket = self.begin(task_id, "description")
        text = await self._call(ticket, flows.generate_task_description, self._llm, task.title)
        if not self._accept(ticket):
            return None
        return self._store.update_task(task_id, description=text)

    async def suggest_priority(self, task_id: str) -> Task | None:
        task = self._store.get_task(task_id)
        if task is None:
            return None
        ticket = self.begin(task_id, "priority")
        priority = await self._call(
            ticket, flows.determine_task_priority, self._llm, task.title, task.description
        )
        if not self._accept(ticket):
            return None
        return self._store.update_task(task_id, priority=priority)

    async def generate_subtasks(self, task_id: str) -> Task | None:
        """Generated subtasks are appended to whatever the task has when the reply lands."""
        task = self._store.get_task(task_id)
        if task is None:
            return None
        ticket = self.begin(task_id, "subtasks")
        texts = await self._call(
            ticket, flows.generate_subtasks, self._llm, task.title, task.description
        )
        if not self._accept(ticket):
            return None
        current = self._store.get_task(task_id)
        if current is None or not texts:
            return current
        return self._store.update_task(task_id, subtasks=(*current.subtasks, *texts))

    async def generate_image(self, task_id: str) -> Task | None:
        task = self._store.get_task(task_id)
        if task is None:
            return None
        ticket = self.begin(task_id, "image")
        url = await self._call(ticket, flows.generate_task_image, self._images, task.title)
        if not self._accept(ticket):
            return None
        return self._store.update_task(task_id, image_url=url)

    # ---- task creation ----

    async def create_task_from_text(self, text: str) -> Task:
        parsed = await asyncio.to_thread(
            flows.parse_natural_language_task, self._llm, text, self._today()
        )
        return self._store.add_task(
            parsed.title,
            parsed.description or "",
            parsed.priority or Priority.MEDIUM,
            due_date=parsed.due_date,
        )

    async def create_full_task(self, title: str) -> Task:
        draft = await asyncio.to_thread(
            flows.generate_full_task_from_title, self._llm, self._images, title
        )
        return self._store.add_task(
            title,
            draft.description,
            draft.priority,
            subtasks=draft.subtasks,
            image_url=draft.image_url,
        )

    # ---- whole-list flows ----

    async def reprioritize(self) -> list[Task]:
        """Re-prioritize every open task in one batch update."""
        open_tasks = [t for t in self._store.tasks if t.status is not Status.DONE]
        if not open_tasks:
            return []
        ticket = self.begin(ALL_TASKS, "reprioritize")
        pairs = await self._call(ticket, flows.prioritize_tasks, self._llm, open_tasks)
        if not self._accept(ticket):
            return []
        return self._store.update_multiple_tasks((tid, {"priority": p}) for tid, p in pairs)

    async def dashboard_summary(self) -> str:
        stats = dashboard_stats(self._store.tasks, self._today())
        return await asyncio.to_thread(
            flows.generate_dashboard_summary,
            self._llm,
            total_tasks=stats.total,
            completed_tasks=stats.completed,
            overdue_tasks=stats.overdue,
            upcoming_tasks=stats.upcoming,
        )

    async def audio_summary(self, summary: str) -> str:
        return await asyncio.to_thread(flows.generate_audio_summary, self._speech, summary)

    # ---- assistant ----

    async def ask(self, query: str) -> AssistantResult:
        """
        Run the assistant on a snapshot and replay its changes as store
        operations: new tasks are added, changed statuses are moved. Tasks
        deleted while the assistant was thinking are left alone.
        """
        snapshot = {t.id: t for t in self._store.tasks}
        result = await asyncio.to_thread(
            run_assistant,
            self._llm,
            query,
            list(snapshot.values()),
            max_steps=self._assistant_max_steps,
        )

        created = [t for t in result.tasks if t.id not in snapshot]
        for t in reversed(created):
            added = self._store.add_task(
                t.title, t.description, t.priority, due_date=t.due_date
            )
            if t.status is not Status.TODO:
                self._store.move_task(added.id, t.status)

        for t in result.tasks:
            before = snapshot.get(t.id)
            if before is None or before.status is t.status:
                continue
            if self._store.get_task(t.id) is None:
                logger.info("Assistant change skipped; task deleted meanwhile id=%s", t.id)
                continue
            self._store.move_task(t.id, t.status)

        return result
