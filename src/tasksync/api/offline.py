# src/tasksync/api/offline.py

from __future__ import annotations

import itertools
import logging
import math
from datetime import UTC, datetime, timedelta
from typing import Any

from ..core.ports import JSON, TaskAPIError
from ..tasks.task_models import (
    SortKey,
    Task,
    TaskPriority,
    TaskStatus,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

_PRIORITY_RANK = {TaskPriority.LOW: 0, TaskPriority.MEDIUM: 1, TaskPriority.HIGH: 2}


class OfflineTaskAPI:
    """
    In-memory task store used for demos when no API base URL is configured.

    Behaves like the real server for everything the client relies on:
    - server-assigned ids and createdAt
    - status/priority filtering, every SortKey, page-based slicing
    - aggregate stats
    - errors with a human-readable message (400 / 404)
    """

    def __init__(self, *, page_size: int = 10, now=None) -> None:
        self._page_size = max(1, int(page_size))
        self._now = now or (lambda: datetime.now(UTC))
        self._tasks: dict[str, Task] = {}
        self._ids = itertools.count(1)
        # createdAt may collide for bulk inserts; keep insertion order as a tiebreaker.
        self._order: dict[str, int] = {}
        self._inserts = itertools.count()

    def count(self) -> int:
        return len(self._tasks)

    def _next_id(self) -> str:
        return f"task-{next(self._ids)}"

    def _get(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskAPIError("Task not found", status_code=404)
        return task

    def _sorted(self, tasks: list[Task], sort: SortKey) -> list[Task]:
        descending = sort.value.startswith("-")
        field_name = sort.value.lstrip("-")
        epoch = datetime.min.replace(tzinfo=UTC)

        def key(task: Task) -> Any:
            if field_name == "title":
                return task.title.lower()
            if field_name == "priority":
                return _PRIORITY_RANK[task.priority]
            if field_name == "dueDate":
                # Tasks without a due date go last.
                return (task.due_date is None, task.due_date or epoch)
            return (task.created_at or epoch, self._order[task.id])

        return sorted(tasks, key=key, reverse=descending)

    # ---- TaskAPI ----

    async def list_tasks(self, params: dict[str, Any]) -> JSON:
        status = params.get("status") or None
        priority = params.get("priority") or None
        try:
            sort = SortKey(params.get("sort") or SortKey.NEWEST)
            page = max(1, int(params.get("page") or 1))
        except ValueError as e:
            raise TaskAPIError(f"Invalid query: {e}", status_code=400) from e

        items = [
            t
            for t in self._tasks.values()
            if (status is None or t.status.value == status)
            and (priority is None or t.priority.value == priority)
        ]
        items = self._sorted(items, sort)

        total = len(items)
        pages = max(1, math.ceil(total / self._page_size))
        # Past the end (e.g. after server-side deletes) serves the last page.
        page = min(page, pages)
        start = (page - 1) * self._page_size
        chunk = items[start : start + self._page_size]

        logger.debug("offline list params=%s -> %d/%d", params, len(chunk), total)
        return {
            "success": True,
            "data": [t.to_api() for t in chunk],
            "total": total,
            "page": page,
            "pages": pages,
        }

    def add(self, payload: JSON) -> Task:
        """Insert a task synchronously (also used to seed demo data)."""
        title = str(payload.get("title") or "").strip()
        if not title:
            raise TaskAPIError("Title is required", status_code=400)

        task_id = self._next_id()
        task = Task(
            id=task_id,
            title=title,
            description=payload.get("description") or None,
            priority=TaskPriority.from_api(payload.get("priority")),
            status=TaskStatus.from_api(payload.get("status")),
            due_date=parse_timestamp(payload.get("dueDate")),
            created_at=self._now(),
        )
        self._tasks[task_id] = task
        self._order[task_id] = next(self._inserts)
        return task

    async def create_task(self, payload: JSON) -> JSON:
        return self.add(payload).to_api()

    async def update_task(self, task_id: str, payload: JSON) -> JSON:
        current = self._get(task_id)
        data = current.to_api()
        for key in ("title", "description", "priority", "status", "dueDate"):
            if key in payload:
                data[key] = payload[key]
        if not str(data.get("title") or "").strip():
            raise TaskAPIError("Title is required", status_code=400)

        task = Task.from_api(data)
        self._tasks[task_id] = task
        return task.to_api()

    async def delete_task(self, task_id: str) -> None:
        self._get(task_id)
        del self._tasks[task_id]
        self._order.pop(task_id, None)

    async def get_stats(self) -> JSON:
        counts = {s: 0 for s in TaskStatus}
        for task in self._tasks.values():
            counts[task.status] += 1
        return {
            "total": len(self._tasks),
            "pending": counts[TaskStatus.PENDING],
            "in-progress": counts[TaskStatus.IN_PROGRESS],
            "completed": counts[TaskStatus.COMPLETED],
        }


def seed_demo_tasks(api: OfflineTaskAPI, now: datetime | None = None) -> None:
    """Fill an empty offline store with a few sample tasks."""
    if api.count():
        return
    now = now or datetime.now(UTC)
    samples = [
        ("Write project README", TaskPriority.MEDIUM, TaskStatus.COMPLETED, None),
        ("Review pull requests", TaskPriority.HIGH, TaskStatus.IN_PROGRESS, now + timedelta(days=1)),
        ("Plan next sprint", TaskPriority.HIGH, TaskStatus.PENDING, now + timedelta(days=3)),
        ("Renew domain", TaskPriority.LOW, TaskStatus.PENDING, now - timedelta(days=2)),
    ]
    for title, priority, status, due in samples:
        api.add(
            {
                "title": title,
                "priority": priority.value,
                "status": status.value,
                "dueDate": due.isoformat() if due else None,
            }
        )
