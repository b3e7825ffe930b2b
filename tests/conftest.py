# tests/conftest.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from types import SimpleNamespace

import pytest

from tasksync.api.offline import OfflineTaskAPI
from tasksync.core.state import AppState
from tasksync.tasks.task_sync import TaskSyncController

from .fakes import ScriptedTaskAPI


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="tasksync-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        api_base_url="",
        api_token=None,
        connect_timeout_seconds=1.0,
        read_timeout_seconds=1.0,
        offline_page_size=2,
        refresh_stats_after_mutation=True,
        offline=True,
    )


@pytest.fixture()
def scripted_api() -> ScriptedTaskAPI:
    return ScriptedTaskAPI()


@pytest.fixture()
def controller(scripted_api: ScriptedTaskAPI) -> TaskSyncController:
    return TaskSyncController(scripted_api)


@pytest.fixture()
def offline_api() -> OfflineTaskAPI:
    """
    Offline store with a stepping clock, so createdAt ordering is stable.
    """
    start = datetime(2026, 1, 1, tzinfo=UTC)
    ticks = iter(range(10_000))
    return OfflineTaskAPI(page_size=2, now=lambda: start + timedelta(minutes=next(ticks)))


@pytest.fixture()
def state(settings: SimpleNamespace, offline_api: OfflineTaskAPI) -> AppState:
    """AppState wired with the real controller over the offline store."""
    return AppState(settings=settings, api=offline_api, tasks=TaskSyncController(offline_api))
