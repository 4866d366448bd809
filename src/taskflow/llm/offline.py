# src/taskflow/llm/offline.py

from __future__ import annotations

import json
import re
from collections.abc import Iterable

from ..core.ports import ChatMessage

_URGENT_WORDS = ("urgent", "asap", "critical", "bug", "fix", "today", "immediately")
_LOW_WORDS = ("later", "someday", "research", "plan", "maybe", "idea")

_USER_INPUT_RE = re.compile(r"User input: '(.*)'\s*$", re.DOTALL)
_TITLE_RE = re.compile(r"(?:Task title|Title): (.*)")


def _last_user_text(messages: list[ChatMessage]) -> str:
    for m in reversed(messages):
        if m["role"] == "user":
            return m["content"]
    return ""


def _guess_priority(text: str) -> str:
    low = text.lower()
    if any(w in low for w in _URGENT_WORDS):
        return "High"
    if any(w in low for w in _LOW_WORDS):
        return "Low"
    return "Medium"


def _title_from(text: str) -> str:
    m = _TITLE_RE.search(text)
    return m.group(1).strip() if m else text.strip()


class OfflineLLMClient:
    """
    Offline deterministic LLM client used for demos when no external API is configured.

    Each AI flow is recognized by its system prompt and answered with
    well-formed JSON built from simple keyword heuristics.
    """

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        sp = (system_prompt or "").lower()
        user_text = _last_user_text(messages)
        yield json.dumps(self._reply(sp, user_text, messages), ensure_ascii=False)

    def _reply(self, sp: str, user_text: str, messages: list[ChatMessage]) -> dict:
        if "task description writer" in sp:
            title = _title_from(user_text)
            return {
                "description": (
                    f'Complete "{title}". Define what done looks like, '
                    "gather what is needed and track progress with subtasks."
                )
            }

        if "task priority expert" in sp:
            return {"priority": _guess_priority(user_text)}

        if "task breakdown expert" in sp:
            title = _title_from(user_text)
            return {"subtasks": [f"Plan: {title}", f"Do: {title}", f"Review: {title}"]}

        if "task planning expert" in sp:
            title = _title_from(user_text)
            return {
                "description": f'Offline draft for "{title}".',
                "priority": _guess_priority(title),
                "subtasks": [f"Plan: {title}", f"Do: {title}"],
            }

        if "task parsing assistant" in sp:
            m = _USER_INPUT_RE.search(user_text)
            text = m.group(1) if m else user_text
            return {"title": text.strip()[:80] or "New task", "priority": _guess_priority(text)}

        if "task prioritization expert" in sp:
            out = []
            for line in user_text.splitlines():
                line = line.strip()
                if not line.startswith("- {"):
                    continue
                try:
                    item = json.loads(line[2:])
                except ValueError:
                    continue
                text = f"{item.get('title', '')} {item.get('description', '')}"
                out.append({"id": item.get("id"), "priority": _guess_priority(text)})
            return {"prioritizedTasks": out}

        if "productivity coach" in sp:
            return {
                "summary": (
                    "Offline demo mode: here are your numbers. "
                    "Keep going, one task at a time!"
                )
            }

        # Assistant (and anything else): a final answer, no tool calls.
        first = messages[0]["content"] if messages else user_text
        return {
            "response": (
                "Offline demo mode: no external LLM is configured. "
                "Set TASKFLOW_LLM_API_KEY (and TASKFLOW_LLM_MODELS) to enable real responses.\n\n"
                f"You said: {first}"
            )
        }
