# src/taskflow/storage/kv.py

"""
Text key/value storage media.

FileStorage keeps one document per key inside a local (gitignored) directory;
MemoryStorage is a plain dict used by tests and throwaway sessions.
Both only store text. Encoding/decoding is the codec's job.
"""

from __future__ import annotations

import contextlib
import logging
import os
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class FileStorage:
    """
    Directory-backed storage: key "taskflow-tasks" -> <root>/taskflow-tasks.json.

    Writes go through a temp file + os.replace so a crash mid-write never
    leaves a truncated document behind.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        logger.debug("FileStorage ready root=%s", self._root)

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        if not key or not key.strip():
            raise ValueError("storage key is required")
        return self._root / f"{_UNSAFE_KEY_CHARS.sub('_', key.strip())}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        return path.read_text("utf-8")

    def set_item(self, key: str, value: str) -> None:
        path = self._path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, "utf-8")
        os.replace(tmp, path)
        with contextlib.suppress(OSError):
            # Task text may be personal; keep the file private on disk.
            os.chmod(path, 0o600)

    def remove_item(self, key: str) -> None:
        path = self._path_for(key)
        with contextlib.suppress(FileNotFoundError):
            path.unlink()


class MemoryStorage:
    """In-process dict storage (nothing survives the process)."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)
