# tests/test_ai_flows.py

from __future__ import annotations

import base64
from datetime import date

import pytest

from taskflow.ai import flows
from taskflow.ai.structured import AIFlowError, extract_json_object
from taskflow.llm.offline import OfflineLLMClient
from taskflow.tasks.seed import sample_tasks
from taskflow.tasks.task_models import Priority

from .fakes import FakeImageClient, FakeLLMClient, FakeSpeechClient


def test_extract_json_object_from_chatty_reply() -> None:
    raw = 'Sure! Here it is:\n```json\n{"priority": "High"}\n```'
    assert extract_json_object(raw) == '{"priority": "High"}'


def test_generate_description() -> None:
    llm = FakeLLMClient({"description": "  Do the thing well.  "})

    assert flows.generate_task_description(llm, "Thing") == "Do the thing well."
    messages, system_prompt = llm.calls[0]
    assert "Thing" in messages[0]["content"]
    assert system_prompt == flows.DESCRIPTION_SYSTEM_PROMPT


def test_determine_priority_rejects_unknown_value() -> None:
    assert flows.determine_task_priority(FakeLLMClient({"priority": "high"}), "Fix bug") is Priority.HIGH
    with pytest.raises(AIFlowError):
        flows.determine_task_priority(FakeLLMClient({"priority": "Critical"}), "Fix bug")


def test_generate_subtasks_drops_blank_items() -> None:
    llm = FakeLLMClient({"subtasks": ["Plan", " ", "Build"]})
    assert flows.generate_subtasks(llm, "Feature") == ["Plan", "Build"]


def test_transport_and_shape_failures_become_flow_errors() -> None:
    with pytest.raises(AIFlowError):
        flows.generate_task_description(FakeLLMClient(RuntimeError("All LLM models failed.")), "x")
    with pytest.raises(AIFlowError):
        flows.generate_task_description(FakeLLMClient("not json at all"), "x")
    with pytest.raises(AIFlowError):
        flows.generate_task_description(FakeLLMClient({"text": "wrong key"}), "x")
    with pytest.raises(AIFlowError):
        flows.generate_task_description(FakeLLMClient(""), "x")


def test_parse_natural_language_task() -> None:
    llm = FakeLLMClient(
        {"title": "Submit taxes", "priority": "High", "dueDate": "2026-03-11", "description": ""}
    )

    parsed = flows.parse_natural_language_task(llm, "urgent: submit taxes tomorrow", date(2026, 3, 10))

    assert parsed == flows.ParsedTask(
        title="Submit taxes", description=None, priority=Priority.HIGH, due_date=date(2026, 3, 11)
    )
    assert "2026-03-10" in llm.calls[0][0][0]["content"]


def test_parse_drops_invalid_optional_fields() -> None:
    llm = FakeLLMClient({"title": "Read", "priority": "someday", "dueDate": "next week"})
    parsed = flows.parse_natural_language_task(llm, "read a book", date(2026, 3, 10))
    assert parsed.priority is None
    assert parsed.due_date is None


def test_prioritize_tasks() -> None:
    tasks = sample_tasks(date(2026, 3, 10))[:2]
    llm = FakeLLMClient(
        {
            "prioritizedTasks": [
                {"id": "task-1", "priority": "Low"},
                {"id": "invented", "priority": "High"},
                {"id": "task-2", "priority": "High"},
            ]
        }
    )

    assert flows.prioritize_tasks(llm, tasks) == [("task-1", Priority.LOW), ("task-2", Priority.HIGH)]


def test_prioritize_empty_input_makes_no_call() -> None:
    llm = FakeLLMClient()
    assert flows.prioritize_tasks(llm, []) == []
    assert llm.calls == []


def test_dashboard_summary_short_circuits_on_empty_board() -> None:
    llm = FakeLLMClient()
    summary = flows.generate_dashboard_summary(
        llm, total_tasks=0, completed_tasks=0, overdue_tasks=0, upcoming_tasks=0
    )
    assert summary == flows.EMPTY_DASHBOARD_SUMMARY
    assert llm.calls == []


def test_full_task_combines_text_and_image() -> None:
    llm = FakeLLMClient({"description": "D", "priority": "Medium", "subtasks": ["a", "b"]})
    images = FakeImageClient()

    draft = flows.generate_full_task_from_title(llm, images, "Launch")

    assert draft == flows.FullTaskDraft(
        description="D", priority=Priority.MEDIUM, subtasks=["a", "b"], image_url=images.url
    )
    assert "Launch" in images.prompts[0]


def test_full_task_fails_when_image_fails() -> None:
    llm = FakeLLMClient({"description": "D", "priority": "Medium", "subtasks": []})
    with pytest.raises(AIFlowError):
        flows.generate_full_task_from_title(llm, FakeImageClient(error=RuntimeError("boom")), "x")
    with pytest.raises(AIFlowError):
        flows.generate_task_image(None, "x")


def test_audio_summary_is_wav_data_uri() -> None:
    speech = FakeSpeechClient(b"RIFFdata")
    uri = flows.generate_audio_summary(speech, "Good job")

    assert uri.startswith("data:audio/wav;base64,")
    assert base64.b64decode(uri.split(",", 1)[1]) == b"RIFFdata"
    assert speech.texts == ["Good job"]


def test_offline_client_answers_every_flow() -> None:
    llm = OfflineLLMClient()
    tasks = sample_tasks(date(2026, 3, 10))

    assert flows.generate_task_description(llm, "Write tests")
    assert flows.determine_task_priority(llm, "Fix critical bug") is Priority.HIGH
    assert flows.generate_subtasks(llm, "Write tests")
    assert flows.parse_natural_language_task(llm, "plan vacation").title == "plan vacation"
    assert {tid for tid, _ in flows.prioritize_tasks(llm, tasks)} == {t.id for t in tasks}
    assert flows.generate_dashboard_summary(
        llm, total_tasks=5, completed_tasks=1, overdue_tasks=0, upcoming_tasks=2
    )
