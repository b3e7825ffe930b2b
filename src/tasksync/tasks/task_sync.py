# src/tasksync/tasks/task_sync.py

from __future__ import annotations

"""
Task synchronization controller.

Owns the task snapshot and bridges the remote store (TaskAPI port) with the
reducer. Every operation:
- builds its request from the current snapshot (task_query.py),
- awaits the store,
- turns the response or failure into a transition,
- returns an OpResult. No operation raises.

Operations may overlap on the event loop. Each completion applies its own
transition; there is no locking. List fetches carry a sequence number and a
response that was overtaken by a newer fetch is dropped instead of
overwriting fresher data.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any

from ..core.ports import TaskAPI, TaskAPIError
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
from .task_models import (
    DEFAULT_FILTERS,
    OpResult,
    Task,
    TaskDraft,
    TaskFilters,
    TaskPage,
    TaskPatch,
    TaskStats,
)
from .task_query import build_list_params, filters_require_refetch, next_page_params
from .task_state import TaskSnapshot, initial_snapshot, reduce

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[TaskSnapshot], None]

FETCH_TASKS_FAILED = "Failed to fetch tasks"
CREATE_TASK_FAILED = "Failed to create task"
UPDATE_TASK_FAILED = "Failed to update task"
DELETE_TASK_FAILED = "Failed to delete task"
FETCH_STATS_FAILED = "Failed to fetch task stats"


def _error_message(exc: Exception, fallback: str) -> str:
    if isinstance(exc, TaskAPIError) and exc.message:
        return exc.message
    return fallback


class TaskSyncController:
    """
    Explicit owner of the task snapshot.

    Pass the instance to whatever needs it; there is no module-level state.
    """

    def __init__(self, api: TaskAPI, *, snapshot: TaskSnapshot | None = None) -> None:
        self._api = api
        self._snapshot = snapshot or initial_snapshot()
        self._listeners: list[SnapshotListener] = []
        self._fetch_seq = 0

    # ---- state ----

    @property
    def snapshot(self) -> TaskSnapshot:
        return self._snapshot

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a listener called with every new snapshot. Returns an unsubscribe hook."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def dispatch(self, action: TaskAction) -> TaskSnapshot:
        before = self._snapshot
        after = reduce(before, action)
        self._snapshot = after
        logger.debug("dispatch %s", type(action).__name__)
        if after is not before:
            for listener in list(self._listeners):
                try:
                    listener(after)
                except Exception:
                    logger.exception("Snapshot listener failed")
        return after

    # ---- list queries ----

    async def fetch_tasks(
        self,
        params: Mapping[str, Any] | None = None,
        *,
        append: bool = False,
    ) -> OpResult[TaskPage]:
        """
        Fetch one page using the active filters with `params` merged over them.

        append=False replaces the task list; append=True adds the page after
        the tasks already loaded ("load more").
        """
        self._fetch_seq += 1
        seq = self._fetch_seq

        self.dispatch(BeginLoad())
        self.dispatch(ErrorCleared())

        query = build_list_params(self._snapshot.filters, params)
        try:
            raw = await self._api.list_tasks(query)
            page = TaskPage.from_api(raw)
        except Exception as e:
            message = _error_message(e, FETCH_TASKS_FAILED)
            if seq != self._fetch_seq:
                logger.debug("Dropping stale fetch failure seq=%s latest=%s", seq, self._fetch_seq)
                return OpResult(success=False, error=message, skipped=True)
            logger.warning(
                "fetch_tasks failed params=%s: %s",
                query,
                message,
                exc_info=not isinstance(e, TaskAPIError),
            )
            self.dispatch(Failed(message))
            return OpResult.fail(message)

        if seq != self._fetch_seq:
            logger.debug("Dropping stale fetch response seq=%s latest=%s", seq, self._fetch_seq)
            return OpResult(success=True, data=page, skipped=True)

        self.dispatch(
            TasksLoaded(
                items=page.items,
                total=page.total,
                page=page.page,
                pages=page.pages,
                append=append,
            )
        )
        logger.info(
            "Loaded %d task(s) page=%s/%s total=%s append=%s",
            len(page.items),
            page.page,
            page.pages,
            page.total,
            append,
        )
        return OpResult.ok(page)

    async def refresh(self) -> OpResult[TaskPage]:
        """Full reset: reload page 1 with the active filters."""
        return await self.fetch_tasks()

    async def load_more(self) -> OpResult[TaskPage]:
        params = next_page_params(self._snapshot)
        if params is None:
            snap = self._snapshot
            logger.debug("load_more: no more pages (page=%s pages=%s)", snap.page, snap.pages)
            return OpResult(success=True, skipped=True)
        return await self.fetch_tasks({"page": params["page"]}, append=True)

    # ---- filters ----

    async def set_filters(self, changes: Mapping[str, Any]) -> OpResult[TaskPage]:
        """
        Merge `changes` into the active filters.

        A real change resets paging and re-fetches page 1.
        Invalid filter values are reported without touching the snapshot.
        """
        before = self._snapshot.filters
        try:
            after = before.merged(dict(changes))
        except (KeyError, ValueError) as e:
            message = f"Invalid filter: {e}"
            logger.info("set_filters rejected %r: %s", dict(changes), e)
            return OpResult.fail(message)

        self.dispatch(FiltersChanged(dict(changes)))

        if not filters_require_refetch(before, after):
            return OpResult(success=True, skipped=True)
        logger.info("Filters changed: %s", after.to_params())
        return await self.fetch_tasks()

    async def reset_filters(self) -> OpResult[TaskPage]:
        return await self.set_filters(
            {
                "status": DEFAULT_FILTERS.status,
                "priority": DEFAULT_FILTERS.priority,
                "sort": DEFAULT_FILTERS.sort,
            }
        )

    @property
    def filters(self) -> TaskFilters:
        return self._snapshot.filters

    # ---- mutations ----

    async def create_task(self, draft: TaskDraft) -> OpResult[Task]:
        self.dispatch(ErrorCleared())
        try:
            raw = await self._api.create_task(draft.to_api())
            task = Task.from_api(raw)
        except Exception as e:
            return self._mutation_failed("create_task", e, CREATE_TASK_FAILED)

        self.dispatch(TaskCreated(task))
        logger.info("Task created id=%s", task.id)
        return OpResult.ok(task)

    async def update_task(self, task_id: str, patch: TaskPatch) -> OpResult[Task]:
        self.dispatch(ErrorCleared())
        try:
            raw = await self._api.update_task(task_id, patch.to_api())
            task = Task.from_api(raw)
        except Exception as e:
            return self._mutation_failed("update_task", e, UPDATE_TASK_FAILED)

        self.dispatch(TaskUpdated(task))
        logger.info("Task updated id=%s", task.id)
        return OpResult.ok(task)

    async def delete_task(self, task_id: str) -> OpResult[str]:
        self.dispatch(ErrorCleared())
        try:
            await self._api.delete_task(task_id)
        except Exception as e:
            return self._mutation_failed("delete_task", e, DELETE_TASK_FAILED)

        self.dispatch(TaskDeleted(task_id))
        logger.info("Task deleted id=%s", task_id)
        return OpResult.ok(task_id)

    def _mutation_failed(self, op: str, exc: Exception, fallback: str) -> OpResult[Any]:
        message = _error_message(exc, fallback)
        logger.warning("%s failed: %s", op, message, exc_info=not isinstance(exc, TaskAPIError))
        self.dispatch(Failed(message))
        return OpResult.fail(message)

    # ---- stats ----

    async def fetch_task_stats(self) -> OpResult[TaskStats]:
        """Stats failures are reported to the caller only; the snapshot error is untouched."""
        try:
            raw = await self._api.get_stats()
            stats = TaskStats.from_api(raw)
        except Exception as e:
            message = _error_message(e, FETCH_STATS_FAILED)
            logger.info("fetch_task_stats failed: %s", message)
            return OpResult.fail(message)

        self.dispatch(StatsLoaded(stats))
        return OpResult.ok(stats)

    def clear_error(self) -> OpResult[None]:
        self.dispatch(ErrorCleared())
        return OpResult.ok()
