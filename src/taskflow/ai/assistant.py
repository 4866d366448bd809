# src/taskflow/ai/assistant.py

"""
Conversational task assistant.

The model drives a small JSON tool protocol. Each reply is one JSON object:

    {"tool": "<name>", "args": {...}}   call a tool, result is fed back
    {"response": "<text>"}              final answer for the user

Tools operate on a private copy of the task list; the caller decides how
(and whether) to apply the resulting list to the store.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from ..core.ids import task_id as new_task_id
from ..core.ports import ChatMessage, LLMClient
from ..storage.codec import parse_due_date, task_to_dict
from ..tasks.task_models import Priority, Status, Task
from .structured import AIFlowError, collect_reply, extract_json_object

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 6

ASSISTANT_SYSTEM_PROMPT = """
You are TaskFlow, a helpful task management assistant. You can list tasks,
create tasks and change the status of tasks by calling tools.

Available tools:
- listTasks: {} -> the current task list.
- createTask: {"title": str, "description"?: str, "priority"?: "High"|"Medium"|"Low",
  "status"?: "To Do"|"In Progress"|"Done", "dueDate"?: "YYYY-MM-DD"} -> the new task.
- updateTaskStatus: {"taskId"?: str, "title"?: str, "status": "To Do"|"In Progress"|"Done"}
  Identify the task by id, or by its title when you do not know the id.

Reply with exactly one JSON object per turn and nothing else:
- to call a tool: {"tool": "<name>", "args": {...}}
- to answer the user: {"response": "<text>"}

Confirm what you changed in the final response.
""".strip()


@dataclass(frozen=True, slots=True)
class AssistantResult:
    response: str
    tasks: list[Task]
    actions: list[str] = field(default_factory=list)


class _Workspace:
    """Private, mutable copy of the task list the tools act on."""

    def __init__(self, tasks: Iterable[Task]) -> None:
        self.tasks: list[Task] = list(tasks)
        self.actions: list[str] = []

    def _find(self, args: dict[str, Any]) -> int:
        tid = str(args.get("taskId") or args.get("id") or "").strip()
        if tid:
            for i, t in enumerate(self.tasks):
                if t.id == tid:
                    return i
        title = str(args.get("title") or "").strip().lower()
        if title:
            for i, t in enumerate(self.tasks):
                if t.title.lower() == title:
                    return i
        return -1

    def list_tasks(self, args: dict[str, Any]) -> dict[str, Any]:
        return {"tasks": [task_to_dict(t) for t in self.tasks]}

    def create_task(self, args: dict[str, Any]) -> dict[str, Any]:
        title = str(args.get("title") or "").strip()
        if not title:
            return {"error": "title is required"}
        task = Task(
            id=new_task_id(),
            title=title,
            description=str(args.get("description") or ""),
            priority=Priority.parse(args.get("priority")) or Priority.MEDIUM,
            status=Status.parse(args.get("status")) or Status.TODO,
            due_date=parse_due_date(args.get("dueDate")),
        )
        self.tasks.insert(0, task)
        self.actions.append(f'created "{task.title}"')
        return {"task": task_to_dict(task)}

    def update_task_status(self, args: dict[str, Any]) -> dict[str, Any]:
        status = Status.parse(args.get("status"))
        if status is None:
            return {"error": f"invalid status: {args.get('status')!r}"}
        i = self._find(args)
        if i < 0:
            return {"error": "task not found"}
        task = replace(self.tasks[i], status=status)
        self.tasks[i] = task
        self.actions.append(f'moved "{task.title}" to {status.value}')
        return {"task": task_to_dict(task)}

    def call(self, name: str, args: dict[str, Any]) -> dict[str, Any]:
        handlers = {
            "listTasks": self.list_tasks,
            "createTask": self.create_task,
            "updateTaskStatus": self.update_task_status,
        }
        handler = handlers.get(name)
        if handler is None:
            return {"error": f"unknown tool: {name}"}
        return handler(args)


def _parse_turn(raw: str) -> dict[str, Any] | None:
    try:
        data = json.loads(extract_json_object(raw))
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def run_assistant(
    llm: LLMClient,
    query: str,
    tasks: Iterable[Task],
    *,
    max_steps: int = DEFAULT_MAX_STEPS,
) -> AssistantResult:
    """
    Answer `query`, letting the model call tools up to `max_steps` times.

    A reply that is not a JSON object is taken as the final plain-text answer.
    """
    query = str(query or "").strip()
    if not query:
        raise ValueError("query is required")

    ws = _Workspace(tasks)
    messages: list[ChatMessage] = [{"role": "user", "content": query}]

    for step in range(max_steps + 1):
        raw = collect_reply(llm, messages, ASSISTANT_SYSTEM_PROMPT)
        turn = _parse_turn(raw)

        if turn is None:
            return AssistantResult(response=raw, tasks=ws.tasks, actions=ws.actions)

        if "tool" not in turn:
            text = turn.get("response")
            if not isinstance(text, str) or not text.strip():
                raise AIFlowError("The model output is missing 'response'.")
            return AssistantResult(response=text.strip(), tasks=ws.tasks, actions=ws.actions)

        if step >= max_steps:
            break

        name = str(turn.get("tool") or "")
        args = turn.get("args")
        result = ws.call(name, args if isinstance(args, dict) else {})
        logger.debug("Assistant step=%d tool=%s ok=%s", step, name, "error" not in result)

        messages.append({"role": "assistant", "content": raw})
        messages.append(
            {
                "role": "user",
                "content": f"Tool result ({name}): {json.dumps(result, ensure_ascii=False)}",
            }
        )

    raise AIFlowError("The assistant did not finish within the step limit.")
