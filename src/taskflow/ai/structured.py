# src/taskflow/ai/structured.py

"""Collect a streamed LLM reply and parse the JSON object inside it."""

from __future__ import annotations

import json
import logging
from typing import Any

from ..core.ports import ChatMessage, LLMClient
from ..llm.client import friendly_llm_error_message

logger = logging.getLogger(__name__)


class AIFlowError(RuntimeError):
    """An AI capability call failed (network, model, or unusable output)."""


def extract_json_object(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith("{") and raw.endswith("}"):
        return raw
    first = raw.find("{")
    last = raw.rfind("}")
    if first != -1 and last != -1 and last > first:
        return raw[first : last + 1]
    return raw


def collect_reply(llm: LLMClient, messages: list[ChatMessage], system_prompt: str) -> str:
    raw = ""
    try:
        for piece in llm.stream_chat(messages, system_prompt):
            raw += piece
    except Exception as e:
        logger.info("LLM call failed: %s", e.__class__.__name__)
        raise AIFlowError(friendly_llm_error_message(e)) from e

    raw = raw.strip()
    if not raw:
        raise AIFlowError("The model returned no content.")
    return raw


def parse_json_reply(raw: str) -> dict[str, Any]:
    try:
        data = json.loads(extract_json_object(raw))
    except ValueError as e:
        logger.warning("LLM JSON parse failed. Raw=%r", raw[:2000])
        raise AIFlowError("The model returned malformed output.") from e
    if not isinstance(data, dict):
        raise AIFlowError("The model returned malformed output.")
    return data


def complete_json(llm: LLMClient, user_message: str, system_prompt: str) -> dict[str, Any]:
    """One user turn in, one JSON object out."""
    raw = collect_reply(llm, [{"role": "user", "content": user_message}], system_prompt)
    return parse_json_reply(raw)


def require_str(data: dict[str, Any], name: str) -> str:
    value = data.get(name)
    if not isinstance(value, str) or not value.strip():
        raise AIFlowError(f"The model output is missing '{name}'.")
    return value.strip()
