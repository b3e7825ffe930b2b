# src/tasksync/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The synchronization layer depends on the TaskAPI Protocol instead of a concrete
transport. This keeps the HTTP client and the offline store swappable and makes
testing easier.
"""

from typing import Any, Protocol

JSON = dict[str, Any]


class TaskAPIError(Exception):
    """
    Failure reported by the remote task store.

    `message` is the human-readable text from the store's error payload, or
    None when the store did not provide one (network failure, non-JSON body).
    """

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        super().__init__(message or "task store request failed")
        self.message = message
        self.status_code = status_code


class TaskAPI(Protocol):
    """Remote task store. Every call may raise TaskAPIError."""

    async def list_tasks(self, params: dict[str, Any]) -> JSON: ...

    async def create_task(self, payload: JSON) -> JSON: ...

    async def update_task(self, task_id: str, payload: JSON) -> JSON: ...

    async def delete_task(self, task_id: str) -> None: ...

    async def get_stats(self) -> JSON: ...
