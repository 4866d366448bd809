# src/taskflow/core/ids.py

from __future__ import annotations

import secrets
import string
import time

_ALPHABET = string.digits + string.ascii_lowercase
_SUFFIX_LEN = 7


def generate_id() -> str:
    """
    Collision-resistant id: "<time_ns>-<7 base36 chars>".

    Local-storage-scale uniqueness only; not meant as a security token.
    """
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(_SUFFIX_LEN))
    return f"{time.time_ns()}-{suffix}"


def task_id() -> str:
    return f"task-{generate_id()}"


def subtask_id() -> str:
    return f"subtask-{generate_id()}"


def notification_id() -> str:
    return f"notification-{generate_id()}"
