# src/tasksync/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..cli.commands import render_tasks
from ..core.state import AppState
from ..tasks.task_state import TaskSnapshot

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def _error_notifier():
    """Snapshot listener that prints an error once when it appears."""
    last: dict[str, str | None] = {"error": None}

    def _on_snapshot(snap: TaskSnapshot) -> None:
        if snap.error and snap.error != last["error"]:
            _print_ts(f"[ERROR] {snap.error}")
        last["error"] = snap.error

    return _on_snapshot


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (offline=%s).", getattr(state.settings, "offline", False))
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    unsubscribe = state.tasks.subscribe(_error_notifier())

    # Initial load, like opening the dashboard.
    await state.tasks.fetch_tasks()
    await state.tasks.fetch_task_stats()
    _print_ts(render_tasks(state))

    try:
        while True:
            try:
                user_input = (await asyncio.to_thread(input, ">>> ")).strip()
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

            try:
                response = await command_registry.handle(state, user_input)
            except Exception:
                logger.exception("Command handler crashed.")
                response = "Internal error while handling a command."

            if response is None:
                # Plain text is a quick search over loaded tasks.
                state.search_term = user_input
                response = render_tasks(state)

            _print_ts(response or "")
    finally:
        unsubscribe()
        logger.info("Console connector finished.")
