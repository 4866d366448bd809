# tests/test_assistant.py

from __future__ import annotations

from datetime import date

import pytest

from taskflow.ai.assistant import run_assistant
from taskflow.ai.structured import AIFlowError
from taskflow.tasks.seed import sample_tasks
from taskflow.tasks.task_models import Priority, Status

from .fakes import FakeLLMClient

TASKS = sample_tasks(date(2026, 3, 10))


def test_plain_answer_without_tools() -> None:
    llm = FakeLLMClient({"response": "You have 5 tasks."})

    result = run_assistant(llm, "How many tasks?", TASKS)

    assert result.response == "You have 5 tasks."
    assert result.tasks == list(TASKS)
    assert result.actions == []


def test_non_json_reply_is_the_answer() -> None:
    result = run_assistant(FakeLLMClient("Hello there!"), "hi", TASKS)
    assert result.response == "Hello there!"


def test_tool_loop_creates_and_moves_on_a_private_copy() -> None:
    llm = FakeLLMClient(
        {"tool": "listTasks", "args": {}},
        {"tool": "createTask", "args": {"title": "Book flights", "priority": "High"}},
        {"tool": "updateTaskStatus", "args": {"title": "set up ci/cd pipeline", "status": "Done"}},
        {"response": "Created and moved."},
    )
    original = list(TASKS)

    result = run_assistant(llm, "book flights and finish CI", original)

    assert result.response == "Created and moved."
    assert result.tasks[0].title == "Book flights"
    assert result.tasks[0].priority is Priority.HIGH
    assert next(t for t in result.tasks if t.id == "task-3").status is Status.DONE
    assert original == list(TASKS)
    assert len(result.actions) == 2

    # Tool results are fed back to the model.
    second_call_messages = llm.calls[1][0]
    assert second_call_messages[-1]["content"].startswith("Tool result (listTasks):")
    assert "task-1" in second_call_messages[-1]["content"]


def test_tool_errors_are_reported_to_the_model() -> None:
    llm = FakeLLMClient(
        {"tool": "updateTaskStatus", "args": {"taskId": "nope", "status": "Done"}},
        {"tool": "dance", "args": {}},
        {"response": "Could not find it."},
    )

    result = run_assistant(llm, "finish nope", TASKS)

    assert result.tasks == list(TASKS)
    assert "task not found" in llm.calls[1][0][-1]["content"]
    assert "unknown tool" in llm.calls[2][0][-1]["content"]


def test_step_limit() -> None:
    llm = FakeLLMClient(*[{"tool": "listTasks", "args": {}}] * 10)
    with pytest.raises(AIFlowError):
        run_assistant(llm, "loop forever", TASKS, max_steps=3)
    assert len(llm.calls) == 4
