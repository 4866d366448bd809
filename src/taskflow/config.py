# src/taskflow/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (the app runs offline without an API key).
- Every component accepts an injected settings object; get_settings() is only
  the default for the composition root.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKFLOW"

DEFAULT_NOTIFICATIONS_MAX = 100

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if minimum is not None and value < minimum:
        return default
    return value


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Local persistence ----
    data_dir: Path
    user_id: str | None
    notifications_max: int

    # ---- LLM (OpenAI-compatible chat, OpenRouter by default) ----
    llm_api_key: str | None
    llm_base_url: str
    llm_models: list[str]
    extra_headers: dict[str, str]

    # ---- Media generation (images / speech) ----
    media_api_key: str | None
    media_base_url: str
    image_model: str
    speech_model: str
    speech_voice: str

    # ---- Assistant ----
    assistant_max_steps: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskflow") or "taskflow"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskflow"))
        user_id = (_first_env(_k("USER_ID"), default="") or "").strip() or None
        notifications_max = _env_int(
            _k("NOTIFICATIONS_MAX"), DEFAULT_NOTIFICATIONS_MAX, minimum=1
        )

        llm_api_key = _first_env(_k("LLM_API_KEY"), "OPENROUTER_API_KEY", default=None)
        llm_base_url = _env(_k("LLM_BASE_URL"), "https://openrouter.ai/api/v1")
        llm_models = _env_list(
            _k("LLM_MODELS"),
            [
                "google/gemini-2.0-flash-001",
                "qwen/qwen-2.5-72b-instruct:free",
                "deepseek/deepseek-chat-v3-0324:free",
            ],
        )
        extra_headers = {
            "HTTP-Referer": _env(_k("HTTP_REFERER"), "https://example.com"),
            "X-Title": _env(_k("APP_TITLE"), app_name),
        }

        media_api_key = _first_env(_k("MEDIA_API_KEY"), "OPENAI_API_KEY", default=None)
        media_base_url = _env(_k("MEDIA_BASE_URL"), "https://api.openai.com/v1")
        image_model = _env(_k("IMAGE_MODEL"), "dall-e-3")
        speech_model = _env(_k("SPEECH_MODEL"), "tts-1")
        speech_voice = _env(_k("SPEECH_VOICE"), "alloy")

        assistant_max_steps = _env_int(_k("ASSISTANT_MAX_STEPS"), 6, minimum=1)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            user_id=user_id,
            notifications_max=notifications_max,
            llm_api_key=llm_api_key,
            llm_base_url=llm_base_url,
            llm_models=llm_models,
            extra_headers=extra_headers,
            media_api_key=media_api_key,
            media_base_url=media_base_url,
            image_model=image_model,
            speech_model=speech_model,
            speech_voice=speech_voice,
            assistant_max_steps=assistant_max_steps,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
