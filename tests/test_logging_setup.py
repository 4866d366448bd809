# tests/test_logging_setup.py

from __future__ import annotations

import logging

from taskflow.logging_setup import LOG_FILE_NAME, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_setup_logging_installs_file_and_filtered_console(tmp_path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        path = setup_logging(log_dir=tmp_path / "logs")

        assert path == tmp_path / "logs" / LOG_FILE_NAME
        assert path.exists()
        assert len(root.handlers) == 2

        console = next(h for h in root.handlers if not isinstance(h, logging.FileHandler))
        assert console.filter(_record("taskflow.tasks", logging.INFO))
        assert not console.filter(_record("httpx", logging.WARNING))
        assert console.filter(_record("httpx", logging.ERROR))
        assert logging.getLogger("openai").level == logging.WARNING

        # A second call replaces handlers instead of stacking them.
        setup_logging(log_dir=tmp_path / "logs")
        assert len(root.handlers) == 2
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            if isinstance(h, logging.FileHandler):
                h.close()
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
        logging.captureWarnings(False)
