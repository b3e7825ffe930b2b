# src/tasksync/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.task_sync import TaskSyncController
from .ports import TaskAPI


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    api: TaskAPI
    tasks: TaskSyncController

    # Client-side search over loaded tasks; never sent to the server.
    search_term: str = ""
