# src/tasksync/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data directory exists,
- wires the remote task store (HTTP or offline) into a TaskSyncController,
- closes the store on shutdown.
"""

from __future__ import annotations

import logging

from ..api.http_client import HttpTaskAPI
from ..api.offline import OfflineTaskAPI, seed_demo_tasks
from ..config import get_settings
from ..core.ports import TaskAPI
from ..core.state import AppState
from ..tasks.task_sync import TaskSyncController

logger = logging.getLogger(__name__)


def create_task_api(settings) -> TaskAPI:
    if settings.offline:
        logger.info("No API base URL configured; using the offline demo store.")
        api = OfflineTaskAPI(page_size=settings.offline_page_size)
        seed_demo_tasks(api)
        return api

    logger.info("Using remote task store at %s", settings.api_base_url)
    return HttpTaskAPI.from_settings(settings)


def create_initial_state(*, settings=None, api: TaskAPI | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and the store injectable makes the app easier to test.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    settings.data_dir.mkdir(parents=True, exist_ok=True)

    if api is None:
        api = create_task_api(settings)

    return AppState(settings=settings, api=api, tasks=TaskSyncController(api))


async def shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    aclose = getattr(state.api, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception:
        logger.debug("Task API close failed.", exc_info=True)
