# src/taskflow/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime

from ..ai.structured import AIFlowError
from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    try:
        if sys.stdout.isatty():
            sys.stdout.write("\033[1A\033[2K\r")
            sys.stdout.write(line + "\n")
            sys.stdout.flush()
        else:
            print(line)
    except OSError:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def handle_line(state: AppState, line: str, emit=None) -> str:
    """One console turn: slash command, or a question for the assistant."""
    try:
        reply = command_registry.handle(state, line, emit=emit)
    except Exception:
        logger.exception("Command handler crashed.")
        return "Internal error while handling a command."
    if reply is not None:
        return reply

    try:
        result = asyncio.run(state.ai.ask(line))
    except AIFlowError as e:
        logger.info("Assistant error: %s", e)
        return f"[AI] {e}"
    except Exception:
        logger.exception("Assistant crashed.")
        return "Internal error while generating a reply."

    if result.actions:
        logger.info("Assistant actions: %s", "; ".join(result.actions))
    return result.response


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (offline=%s).", state.offline)
    _print_ts("[CONSOLE] Type /help for commands, or ask the assistant. Use /exit to quit.\n")

    app_name = str(getattr(state.settings, "app_name", "taskflow"))

    def emit(text: str) -> None:
        # Immediate user-visible feedback for long operations (AI calls)
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = input(">>> You: ").strip()
            _rewrite_prev_line(f"[{_ts_local()}] >>> You: {user_input}")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        reply = handle_line(state, user_input, emit=emit)
        if user_input.startswith("/"):
            _print_ts(reply)
        else:
            _print_ts(f"<<< {app_name}: {reply}\n")

    logger.info("Console connector finished.")
