# src/taskflow/llm/media.py

"""Image and speech generation over the OpenAI API."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from openai import OpenAI

logger = logging.getLogger(__name__)


def _build_client(settings: Any) -> OpenAI:
    api_key = getattr(settings, "media_api_key", None)
    base_url = str(getattr(settings, "media_base_url", "") or "")
    if not api_key or not str(api_key).strip():
        raise RuntimeError("Media API key is not set. Set TASKFLOW_MEDIA_API_KEY in your .env.")
    return OpenAI(
        base_url=base_url or None,
        api_key=str(api_key),
        timeout=httpx.Timeout(connect=5.0, read=90.0, write=10.0, pool=5.0),
        max_retries=1,
    )


class OpenAIImageClient:
    """Text-to-image; returns a PNG data URI (or the remote URL if that is all we get)."""

    def __init__(self, settings: Any, *, client: OpenAI | None = None) -> None:
        self._client = client or _build_client(settings)
        self._model = str(getattr(settings, "image_model", "dall-e-3"))

    def generate_image(self, prompt: str) -> str:
        logger.info("Image: generating with model=%s", self._model)
        resp = self._client.images.generate(
            model=self._model,
            prompt=prompt,
            n=1,
            size="1024x1024",
            response_format="b64_json",
        )
        item = resp.data[0] if resp.data else None
        if item is not None and item.b64_json:
            return f"data:image/png;base64,{item.b64_json}"
        if item is not None and item.url:
            return item.url
        raise RuntimeError("No image was generated.")


class OpenAISpeechClient:
    """Text-to-speech; returns WAV bytes."""

    def __init__(self, settings: Any, *, client: OpenAI | None = None) -> None:
        self._client = client or _build_client(settings)
        self._model = str(getattr(settings, "speech_model", "tts-1"))
        self._voice = str(getattr(settings, "speech_voice", "alloy"))

    def synthesize(self, text: str) -> bytes:
        logger.info("Speech: synthesizing %d chars with model=%s", len(text), self._model)
        resp = self._client.audio.speech.create(
            model=self._model,
            voice=self._voice,
            input=text,
            response_format="wav",
        )
        data = resp.read()
        if not data:
            raise RuntimeError("No audio was returned by the model.")
        return data
