# src/tasksync/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class TaskStatus(StrEnum):
    """Task lifecycle status (wire values)."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    @classmethod
    def from_api(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_api(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


class SortKey(StrEnum):
    """
    Server-side sort order.

    A leading "-" means descending; the values are sent to the API as-is.
    """

    NEWEST = "-createdAt"
    OLDEST = "createdAt"
    TITLE_ASC = "title"
    TITLE_DESC = "-title"
    DUE_DATE = "dueDate"
    PRIORITY_DESC = "-priority"
    PRIORITY_ASC = "priority"


def parse_timestamp(raw: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp from the API ("Z" suffix accepted)."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=UTC)
    try:
        text = str(raw).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    except ValueError:
        return None
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    priority: TaskPriority
    status: TaskStatus
    description: str | None = None
    due_date: datetime | None = None
    created_at: datetime | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Task:
        raw_id = data.get("_id", data.get("id"))
        if raw_id is None:
            raise ValueError("task payload has no id")
        return cls(
            id=str(raw_id),
            title=str(data.get("title") or ""),
            description=data.get("description") or None,
            priority=TaskPriority.from_api(data.get("priority")),
            status=TaskStatus.from_api(data.get("status")),
            due_date=parse_timestamp(data.get("dueDate")),
            created_at=parse_timestamp(data.get("createdAt")),
        )

    def to_api(self) -> dict[str, Any]:
        return {
            "_id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority.value,
            "status": self.status.value,
            "dueDate": format_timestamp(self.due_date),
            "createdAt": format_timestamp(self.created_at),
        }

    def is_overdue(self, now: datetime | None = None) -> bool:
        if self.due_date is None or self.status == TaskStatus.COMPLETED:
            return False
        now = now or datetime.now(UTC)
        return self.due_date < now


@dataclass(frozen=True, slots=True)
class TaskDraft:
    """Create payload. The server assigns id and createdAt."""

    title: str
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    description: str | None = None
    due_date: datetime | None = None

    def to_api(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "title": self.title,
            "priority": self.priority.value,
            "status": self.status.value,
        }
        if self.description:
            out["description"] = self.description
        if self.due_date is not None:
            out["dueDate"] = format_timestamp(self.due_date)
        return out


@dataclass(frozen=True, slots=True)
class TaskPatch:
    """Partial update: only fields that are not None are sent."""

    title: str | None = None
    description: str | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    due_date: datetime | None = None

    def to_api(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.title is not None:
            out["title"] = self.title
        if self.description is not None:
            out["description"] = self.description
        if self.priority is not None:
            out["priority"] = self.priority.value
        if self.status is not None:
            out["status"] = self.status.value
        if self.due_date is not None:
            out["dueDate"] = format_timestamp(self.due_date)
        return out

    def is_empty(self) -> bool:
        return not self.to_api()


@dataclass(frozen=True, slots=True)
class TaskStats:
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> TaskStats:
        def _int(key: str) -> int:
            try:
                return int(data.get(key) or 0)
            except (TypeError, ValueError):
                return 0

        return cls(
            total=_int("total"),
            pending=_int("pending"),
            in_progress=_int("in-progress"),
            completed=_int("completed"),
        )

    @property
    def completion_rate(self) -> int:
        """Completed share of all tasks, as a rounded percentage."""
        if self.total <= 0:
            return 0
        return round(self.completed / self.total * 100)

    @property
    def remaining(self) -> int:
        return max(0, self.total - self.completed)


_UNSET_FILTER = ""


@dataclass(frozen=True, slots=True)
class TaskFilters:
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    sort: SortKey = SortKey.NEWEST

    def merged(self, changes: dict[str, Any]) -> TaskFilters:
        """
        Shallow merge: keys missing from `changes` keep their current value.

        None or "" clears status/priority (the "all" choice); for sort it
        restores the default order.
        """
        kwargs: dict[str, Any] = {}
        for key, raw in changes.items():
            if key == "status":
                kwargs[key] = None if raw in (None, _UNSET_FILTER) else TaskStatus(raw)
            elif key == "priority":
                kwargs[key] = None if raw in (None, _UNSET_FILTER) else TaskPriority(raw)
            elif key == "sort":
                kwargs[key] = SortKey.NEWEST if raw in (None, _UNSET_FILTER) else SortKey(raw)
            else:
                raise KeyError(f"unknown filter: {key}")
        return replace(self, **kwargs) if kwargs else self

    @property
    def is_active(self) -> bool:
        return self.status is not None or self.priority is not None or self.sort != SortKey.NEWEST

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {"sort": self.sort.value}
        if self.status is not None:
            params["status"] = self.status.value
        if self.priority is not None:
            params["priority"] = self.priority.value
        return params


DEFAULT_FILTERS = TaskFilters()


@dataclass(frozen=True, slots=True)
class TaskPage:
    items: tuple[Task, ...]
    total: int
    page: int
    pages: int

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> TaskPage:
        raw_items = data.get("items")
        if raw_items is None:
            raw_items = data.get("data") or []
        items = tuple(Task.from_api(item) for item in raw_items)
        return cls(
            items=items,
            total=int(data.get("total") or len(items)),
            page=max(1, int(data.get("page") or 1)),
            pages=max(0, int(data.get("pages") if data.get("pages") is not None else 1)),
        )


@dataclass(frozen=True, slots=True)
class OpResult(Generic[T]):
    """
    Outcome of a synchronization operation.

    skipped=True means nothing was applied to the snapshot (no more pages,
    or a fetch response that was superseded by a newer one).
    """

    success: bool
    data: T | None = None
    error: str | None = None
    skipped: bool = False

    @classmethod
    def ok(cls, data: T | None = None) -> OpResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, message: str) -> OpResult[T]:
        return cls(success=False, error=message)
