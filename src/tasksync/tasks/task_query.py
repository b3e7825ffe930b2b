# src/tasksync/tasks/task_query.py

from __future__ import annotations

"""
Filter/pagination coordinator.

Shapes list-query parameters from the active filters and an optional page
override. It never talks to the network; task_sync.py consumes the result.

Policy:
- a filter change targets page 1 implicitly: the request carries no page
- "load more" asks for page + 1, and is refused once page >= pages
"""

from collections.abc import Iterable, Mapping
from typing import Any

from .task_models import Task, TaskFilters
from .task_state import TaskSnapshot

QueryParams = dict[str, Any]


def build_list_params(filters: TaskFilters, overrides: Mapping[str, Any] | None = None) -> QueryParams:
    """
    Merge `overrides` over the filter params.

    Keys whose value is None or "" are dropped, so an override can also
    clear a filter for a single request.
    """
    params: QueryParams = dict(filters.to_params())
    for key, value in (overrides or {}).items():
        params[key] = value
    return {k: v for k, v in params.items() if v is not None and v != ""}


def next_page_params(snapshot: TaskSnapshot) -> QueryParams | None:
    if snapshot.page >= snapshot.pages:
        return None
    return build_list_params(snapshot.filters, {"page": snapshot.page + 1})


def filters_require_refetch(before: TaskFilters, after: TaskFilters) -> bool:
    return before != after


def search_tasks(tasks: Iterable[Task], term: str) -> list[Task]:
    """Client-side search over the already loaded page(s); state is untouched."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(tasks)
    return [
        t
        for t in tasks
        if needle in t.title.lower() or needle in (t.description or "").lower()
    ]
