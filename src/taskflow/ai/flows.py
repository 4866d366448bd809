# src/taskflow/ai/flows.py

"""
One-shot AI capability flows.

Each flow is a plain request/response function over an injected client.
Every failure (transport, model, missing or malformed fields) surfaces as
AIFlowError; a flow never returns a partial result.
"""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date

from ..core.ports import ImageClient, LLMClient, SpeechClient
from ..storage.codec import parse_due_date
from ..tasks.task_models import Priority, Task
from .structured import AIFlowError, complete_json, require_str

logger = logging.getLogger(__name__)

EMPTY_DASHBOARD_SUMMARY = "No tasks yet! Add a new task to get started and see your progress here."

DESCRIPTION_SYSTEM_PROMPT = """
You are a task description writer for a project management app.
Given a task title, write a detailed, helpful description that clarifies the
task's purpose and scope (2-4 sentences).

Reply with a single JSON object and nothing else:
{"description": "<text>"}
""".strip()

PRIORITY_SYSTEM_PROMPT = """
You are a task priority expert. Decide the priority of a task from its title
and description: High, Medium or Low.
If the description is short or missing, rely on the title
(e.g. "Fix critical login bug" implies High).

Reply with a single JSON object and nothing else:
{"priority": "High" | "Medium" | "Low"}
""".strip()

SUBTASKS_SYSTEM_PROMPT = """
You are a task breakdown expert. Break the task into a list of smaller,
actionable subtasks. Each subtask is a short phrase.
If the description is brief, create general subtasks appropriate for the title.

Reply with a single JSON object and nothing else:
{"subtasks": ["<subtask>", ...]}
""".strip()

FULL_TASK_SYSTEM_PROMPT = """
You are a task planning expert. Take a simple task title and flesh it out:
a detailed description, an appropriate priority (High, Medium or Low) and
2-4 smaller, actionable subtasks.

Reply with a single JSON object and nothing else:
{"description": "<text>", "priority": "High" | "Medium" | "Low", "subtasks": ["<subtask>", ...]}
""".strip()

PARSE_TASK_SYSTEM_PROMPT = """
You are a task parsing assistant. Extract structured task fields from the
user's free text.

- title: a concise title (required).
- description: only if the text provides details.
- priority: High, Medium or Low. Infer from keywords ("urgent" -> High);
  omit it if nothing suggests a priority.
- dueDate: convert relative dates ("tomorrow", "next Friday", "in 2 weeks")
  to YYYY-MM-DD using the current date; omit it if no date is mentioned.

Reply with a single JSON object and nothing else:
{"title": "...", "description": "...", "priority": "...", "dueDate": "YYYY-MM-DD"}
""".strip()

PRIORITIZE_SYSTEM_PROMPT = """
You are a task prioritization expert. Assign a priority (High, Medium or Low)
to every task in the list. Pay attention to words implying urgency or
importance ("bug", "urgent", "critical", "ASAP") versus ones that do not
("plan", "research", "later").

Reply with a single JSON object and nothing else, covering every task id:
{"prioritizedTasks": [{"id": "<task id>", "priority": "High" | "Medium" | "Low"}, ...]}
""".strip()

DASHBOARD_SYSTEM_PROMPT = """
You are a friendly productivity coach. From the task statistics, write a short,
insightful and motivational summary (2-3 sentences). Stay positive and
encouraging, even when mentioning overdue tasks.

Reply with a single JSON object and nothing else:
{"summary": "<text>"}
""".strip()


@dataclass(frozen=True, slots=True)
class FullTaskDraft:
    description: str
    priority: Priority
    subtasks: list[str]
    image_url: str


@dataclass(frozen=True, slots=True)
class ParsedTask:
    title: str
    description: str | None = None
    priority: Priority | None = None
    due_date: date | None = None


def _require_title(title: str) -> str:
    t = str(title or "").strip()
    if not t:
        raise ValueError("title is required")
    return t


def _require_priority(data: dict, name: str = "priority") -> Priority:
    p = Priority.parse(data.get(name))
    if p is None:
        raise AIFlowError(f"The model returned an invalid priority: {data.get(name)!r}")
    return p


def _require_str_list(data: dict, name: str) -> list[str]:
    value = data.get(name)
    if not isinstance(value, list):
        raise AIFlowError(f"The model output is missing '{name}'.")
    return [str(x).strip() for x in value if isinstance(x, (str, int, float)) and str(x).strip()]


def generate_task_description(llm: LLMClient, title: str) -> str:
    title = _require_title(title)
    data = complete_json(llm, f"Task title: {title}", DESCRIPTION_SYSTEM_PROMPT)
    return require_str(data, "description")


def determine_task_priority(llm: LLMClient, title: str, description: str = "") -> Priority:
    title = _require_title(title)
    data = complete_json(
        llm,
        f"Title: {title}\nDescription: {description or ''}",
        PRIORITY_SYSTEM_PROMPT,
    )
    return _require_priority(data)


def generate_subtasks(llm: LLMClient, title: str, description: str = "") -> list[str]:
    title = _require_title(title)
    data = complete_json(
        llm,
        f"Task title: {title}\nTask description: {description or ''}",
        SUBTASKS_SYSTEM_PROMPT,
    )
    return _require_str_list(data, "subtasks")


def _image_prompt(title: str) -> str:
    return (
        "Generate a clean, modern, and professional image that visually represents "
        f'the following task: "{title}". The image should be suitable for a project '
        "management application. Avoid text and logos."
    )


def generate_task_image(images: ImageClient | None, title: str) -> str:
    title = _require_title(title)
    if images is None:
        raise AIFlowError(
            "Image generation is not configured. Set TASKFLOW_MEDIA_API_KEY in .env."
        )
    try:
        url = images.generate_image(_image_prompt(title))
    except Exception as e:
        logger.info("Image generation failed: %s", e.__class__.__name__)
        raise AIFlowError("No image was generated.") from e
    if not url:
        raise AIFlowError("No image was generated.")
    return url


def generate_full_task_from_title(
    llm: LLMClient, images: ImageClient | None, title: str
) -> FullTaskDraft:
    """Text details and illustration are generated concurrently; both must succeed."""
    title = _require_title(title)
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="taskflow-ai") as pool:
        details_future = pool.submit(
            complete_json, llm, f"Task title: {title}", FULL_TASK_SYSTEM_PROMPT
        )
        image_future = pool.submit(generate_task_image, images, title)
        details = details_future.result()
        image_url = image_future.result()

    return FullTaskDraft(
        description=require_str(details, "description"),
        priority=_require_priority(details),
        subtasks=_require_str_list(details, "subtasks"),
        image_url=image_url,
    )


def parse_natural_language_task(
    llm: LLMClient, text: str, current_date: date | None = None
) -> ParsedTask:
    text = str(text or "").strip()
    if not text:
        raise ValueError("text is required")
    current_date = current_date or date.today()

    data = complete_json(
        llm,
        f"Current date: {current_date.isoformat()}\nUser input: {text!r}",
        PARSE_TASK_SYSTEM_PROMPT,
    )
    description = data.get("description")
    return ParsedTask(
        title=require_str(data, "title"),
        description=description.strip() if isinstance(description, str) and description.strip() else None,
        priority=Priority.parse(data.get("priority")),
        due_date=parse_due_date(data.get("dueDate")),
    )


def prioritize_tasks(llm: LLMClient, tasks: Iterable[Task]) -> list[tuple[str, Priority]]:
    """
    Ask for a new priority for each task. Ids the model invents are dropped;
    an invalid priority fails the whole call.
    """
    items = list(tasks)
    if not items:
        return []

    listing = "\n".join(
        f"- {json.dumps({'id': t.id, 'title': t.title, 'description': t.description}, ensure_ascii=False)}"
        for t in items
    )
    data = complete_json(llm, f"Tasks to prioritize:\n{listing}", PRIORITIZE_SYSTEM_PROMPT)

    raw = data.get("prioritizedTasks")
    if not isinstance(raw, list):
        raise AIFlowError("The model output is missing 'prioritizedTasks'.")

    known = {t.id for t in items}
    out: dict[str, Priority] = {}
    for entry in raw:
        if not isinstance(entry, dict):
            raise AIFlowError("The model returned malformed output.")
        tid = str(entry.get("id") or "")
        priority = _require_priority(entry)
        if tid not in known:
            logger.debug("prioritize_tasks: model returned unknown id=%s (dropped)", tid)
            continue
        out.setdefault(tid, priority)
    return list(out.items())


def generate_dashboard_summary(
    llm: LLMClient,
    *,
    total_tasks: int,
    completed_tasks: int,
    overdue_tasks: int,
    upcoming_tasks: int,
) -> str:
    if total_tasks == 0:
        return EMPTY_DASHBOARD_SUMMARY

    data = complete_json(
        llm,
        "Statistics:\n"
        f"- Total Tasks: {total_tasks}\n"
        f"- Completed Tasks: {completed_tasks}\n"
        f"- Overdue Tasks: {overdue_tasks}\n"
        f"- Upcoming Tasks (next 7 days): {upcoming_tasks}",
        DASHBOARD_SYSTEM_PROMPT,
    )
    return require_str(data, "summary")


def generate_audio_summary(speech: SpeechClient | None, summary: str) -> str:
    """Speak `summary`; returns a "data:audio/wav;base64,..." URI."""
    summary = str(summary or "").strip()
    if not summary:
        raise ValueError("summary is required")
    if speech is None:
        raise AIFlowError(
            "Audio generation is not configured. Set TASKFLOW_MEDIA_API_KEY in .env."
        )
    try:
        wav = speech.synthesize(summary)
    except Exception as e:
        logger.info("Speech synthesis failed: %s", e.__class__.__name__)
        raise AIFlowError("No audio was generated.") from e
    if not wav:
        raise AIFlowError("No audio was generated.")
    return "data:audio/wav;base64," + base64.b64encode(wav).decode("ascii")
