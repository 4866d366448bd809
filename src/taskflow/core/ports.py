# src/taskflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The stores and AI flows depend on Protocols instead of concrete implementations.
This keeps the storage medium and LLM providers swappable and makes testing easier.
"""

from typing import Any, Iterable, Protocol

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class KeyValueStorage(Protocol):
    """
    Text key/value medium (the local-storage equivalent).

    Implementations may raise OSError on failure; the persistence codec
    is responsible for catching it.
    """

    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...
    def remove_item(self, key: str) -> None: ...


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI/OpenRouter-compatible)."""
    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...


class ImageClient(Protocol):
    """Text-to-image generation. Returns a data URI or a remote URL."""
    def generate_image(self, prompt: str) -> str: ...


class SpeechClient(Protocol):
    """Text-to-speech. Returns raw WAV bytes."""
    def synthesize(self, text: str) -> bytes: ...


class Notifier(Protocol):
    """Where the task store reports notable mutations (the notification log)."""
    def add_notification(self, message: str) -> Any: ...
