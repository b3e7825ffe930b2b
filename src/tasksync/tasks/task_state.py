# src/tasksync/tasks/task_state.py

from __future__ import annotations

"""
Client-side snapshot of the remote task collection and its transition function.

reduce() is pure: it never performs I/O and never raises. Unknown actions and
updates/deletes for ids that are not in the snapshot leave it unchanged.

Local projections (create/update/delete) are not reconciled with server sort
order or pagination totals; the next full fetch replaces them.
"""

import logging
from dataclasses import dataclass, replace

from .task_actions import (
    BeginLoad,
    ErrorCleared,
    Failed,
    FiltersChanged,
    StatsLoaded,
    TaskAction,
    TaskCreated,
    TaskDeleted,
    TasksLoaded,
    TaskUpdated,
)
from .task_models import DEFAULT_FILTERS, Task, TaskFilters, TaskStats

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TaskSnapshot:
    tasks: tuple[Task, ...] = ()
    stats: TaskStats | None = None
    loading: bool = False
    error: str | None = None
    total: int = 0
    page: int = 1
    pages: int = 1
    filters: TaskFilters = DEFAULT_FILTERS

    @property
    def has_more(self) -> bool:
        return self.page < self.pages

    def find(self, task_id: str) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None


def initial_snapshot() -> TaskSnapshot:
    return TaskSnapshot()


def _dedupe_tail(existing: tuple[Task, ...], incoming: tuple[Task, ...]) -> tuple[Task, ...]:
    seen = {t.id for t in existing}
    out: list[Task] = []
    for task in incoming:
        if task.id in seen:
            continue
        seen.add(task.id)
        out.append(task)
    return tuple(out)


def reduce(snapshot: TaskSnapshot, action: TaskAction) -> TaskSnapshot:
    if isinstance(action, BeginLoad):
        return replace(snapshot, loading=True)

    if isinstance(action, TasksLoaded):
        if action.append:
            tasks = snapshot.tasks + _dedupe_tail(snapshot.tasks, action.items)
        else:
            tasks = _dedupe_tail((), action.items)
        page = action.page
        if action.pages > 0:
            page = min(page, action.pages)
        return replace(
            snapshot,
            tasks=tasks,
            total=action.total,
            page=page,
            pages=action.pages,
            loading=False,
            error=None,
        )

    if isinstance(action, TaskCreated):
        rest = tuple(t for t in snapshot.tasks if t.id != action.task.id)
        return replace(snapshot, tasks=(action.task,) + rest, error=None)

    if isinstance(action, TaskUpdated):
        updated = action.task
        tasks = tuple(updated if t.id == updated.id else t for t in snapshot.tasks)
        return replace(snapshot, tasks=tasks, error=None)

    if isinstance(action, TaskDeleted):
        tasks = tuple(t for t in snapshot.tasks if t.id != action.task_id)
        return replace(snapshot, tasks=tasks, error=None)

    if isinstance(action, StatsLoaded):
        return replace(snapshot, stats=action.stats, error=None)

    if isinstance(action, Failed):
        return replace(snapshot, error=action.message, loading=False)

    if isinstance(action, ErrorCleared):
        return replace(snapshot, error=None)

    if isinstance(action, FiltersChanged):
        try:
            filters = snapshot.filters.merged(action.changes)
        except (KeyError, ValueError):
            logger.warning("Ignoring invalid filter change: %r", action.changes)
            return snapshot
        if filters == snapshot.filters:
            return snapshot
        # Paging of the old result set no longer applies; load_more waits for a fetch.
        return replace(snapshot, filters=filters, page=1, pages=1)

    return snapshot
