# tests/fakes.py

from __future__ import annotations

import json
import threading
from collections.abc import Iterable
from typing import Any

from taskflow.core.ports import ChatMessage


class FakeLLMClient:
    """
    Deterministic LLM client for unit tests.

    - Replies are scripted: each call consumes the next one (str, dict -> JSON,
      or an exception instance to raise)
    - Captures calls for assertions
    - Optional gate: calls block until the test releases them
    """

    def __init__(self, *replies: Any, gate: threading.Event | None = None) -> None:
        self.replies: list[Any] = list(replies)
        self.calls: list[tuple[list[ChatMessage], str]] = []
        self.gate = gate
        self.started = threading.Semaphore(0)
        self._lock = threading.Lock()

    def push(self, *replies: Any) -> None:
        self.replies.extend(replies)

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        with self._lock:
            self.calls.append((list(messages), system_prompt))
            reply = self.replies.pop(0) if self.replies else "ok"
        self.started.release()

        if self.gate is not None:
            self.gate.wait(timeout=5)

        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, (dict, list)):
            reply = json.dumps(reply)
        # Split into chunks to exercise stream collection.
        mid = len(reply) // 2
        yield reply[:mid]
        yield reply[mid:]


class FakeImageClient:
    def __init__(
        self, url: str = "data:image/png;base64,iVBORw0KGgo=", error: Exception | None = None
    ) -> None:
        self.url = url
        self.error = error
        self.prompts: list[str] = []

    def generate_image(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.url


class FakeSpeechClient:
    def __init__(self, wav: bytes = b"RIFF\x00\x00\x00\x00WAVE") -> None:
        self.wav = wav
        self.texts: list[str] = []

    def synthesize(self, text: str) -> bytes:
        self.texts.append(text)
        return self.wav


class FailingStorage:
    """KeyValueStorage whose every operation fails like a full/broken disk."""

    def __init__(self, *, fail_reads: bool = True, fail_writes: bool = True) -> None:
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.data: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        if self.fail_reads:
            raise OSError("read failed")
        return self.data.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise OSError("quota exceeded")
        self.data[key] = value

    def remove_item(self, key: str) -> None:
        self.data.pop(key, None)
