# src/tasksync/tasks/task_actions.py

from __future__ import annotations

"""
Transition actions for the task snapshot.

The set is closed: the reducer in task_state.py understands exactly these
variants and nothing else.
"""

from dataclasses import dataclass, field
from typing import Any

from .task_models import Task, TaskStats


@dataclass(frozen=True, slots=True)
class BeginLoad:
    pass


@dataclass(frozen=True, slots=True)
class TasksLoaded:
    items: tuple[Task, ...]
    total: int
    page: int
    pages: int
    # True for "load more": the page is appended instead of replacing the list.
    append: bool = False


@dataclass(frozen=True, slots=True)
class TaskCreated:
    task: Task


@dataclass(frozen=True, slots=True)
class TaskUpdated:
    task: Task


@dataclass(frozen=True, slots=True)
class TaskDeleted:
    task_id: str


@dataclass(frozen=True, slots=True)
class StatsLoaded:
    stats: TaskStats


@dataclass(frozen=True, slots=True)
class Failed:
    message: str


@dataclass(frozen=True, slots=True)
class ErrorCleared:
    pass


@dataclass(frozen=True, slots=True)
class FiltersChanged:
    changes: dict[str, Any] = field(default_factory=dict)


TaskAction = (
    BeginLoad
    | TasksLoaded
    | TaskCreated
    | TaskUpdated
    | TaskDeleted
    | StatsLoaded
    | Failed
    | ErrorCleared
    | FiltersChanged
)
