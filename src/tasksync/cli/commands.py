# src/tasksync/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

from ..core.state import AppState
from ..tasks.task_models import (
    OpResult,
    Task,
    TaskDraft,
    TaskPatch,
    TaskPriority,
    TaskStatus,
    parse_timestamp,
)
from ..tasks.task_query import search_tasks

CommandHandler = Callable[[AppState, list[str]], Awaitable[str]]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /list, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Could not parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        logger.debug("command /%s args=%s", name, args)
        return await handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting ----


def _fmt_date(value: datetime | None) -> str:
    if value is None:
        return "-"
    return value.astimezone().strftime("%Y-%m-%d")


def format_task(task: Task, now: datetime | None = None) -> str:
    line = f"[{task.id}] {task.title} ({task.priority.value}, {task.status.value})"
    if task.due_date is not None:
        line += f" due {_fmt_date(task.due_date)}"
        if task.is_overdue(now):
            line += " OVERDUE"
    if task.description:
        line += f"\n      {task.description}"
    return line


def render_tasks(state: AppState) -> str:
    snap = state.tasks.snapshot
    visible = search_tasks(snap.tasks, state.search_term)

    if not visible:
        if state.search_term:
            return f"No tasks found for '{state.search_term}'. Try adjusting your search terms or filters."
        return "No tasks yet. Create one with /add <title>."

    lines = [format_task(t) for t in visible]
    footer = f"Showing {len(visible)} of {snap.total} task(s), page {snap.page}/{snap.pages}."
    if snap.has_more:
        footer += " Use /more to load more."
    lines.append(footer)
    return "\n".join(lines)


def _result_line(result: OpResult, ok_text: str) -> str:
    if result.success:
        return ok_text
    return f"Error: {result.error}"


async def _after_mutation(state: AppState) -> None:
    # Keep the stats summary in step with local changes.
    if getattr(state.settings, "refresh_stats_after_mutation", True):
        await state.tasks.fetch_task_stats()


# ---- option parsing ----

_FIELD_KEYS = {"priority", "status", "due", "desc", "title"}


def _parse_due(raw: str) -> datetime:
    value = parse_timestamp(raw)
    if value is None:
        raise ValueError(f"invalid date: {raw!r} (use YYYY-MM-DD)")
    return value.astimezone(UTC)


def _split_fields(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Separate key=value options from free words."""
    words: list[str] = []
    fields: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if sep and key.lower() in _FIELD_KEYS:
            fields[key.lower()] = value
        else:
            words.append(arg)
    return words, fields


# ---- handlers ----


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_list(state: AppState, args: list[str]) -> str:
    snap = state.tasks.snapshot
    if snap.loading and not snap.tasks:
        return "Loading..."
    return render_tasks(state)


async def cmd_refresh(state: AppState, args: list[str]) -> str:
    result = await state.tasks.refresh()
    if not result.success:
        return f"Error: {result.error}"
    return render_tasks(state)


async def cmd_more(state: AppState, args: list[str]) -> str:
    result = await state.tasks.load_more()
    if not result.success:
        return f"Error: {result.error}"
    if result.skipped:
        return "No more tasks to load."
    return render_tasks(state)


async def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title> [priority=low|medium|high] [status=...] [due=YYYY-MM-DD] [desc="..."]
    """
    words, fields = _split_fields(args)
    title = (fields.get("title") or " ".join(words)).strip()
    if not title:
        return "Usage: /add <title> [priority=..] [status=..] [due=YYYY-MM-DD] [desc=..]"

    try:
        draft = TaskDraft(
            title=title,
            priority=TaskPriority(fields.get("priority", TaskPriority.MEDIUM)),
            status=TaskStatus(fields.get("status", TaskStatus.PENDING)),
            description=fields.get("desc") or None,
            due_date=_parse_due(fields["due"]) if fields.get("due") else None,
        )
    except ValueError as e:
        return f"Invalid task: {e}"

    result = await state.tasks.create_task(draft)
    if result.success:
        await _after_mutation(state)
        created = format_task(result.data) if result.data else ""
        return f"Task created successfully! {created}".rstrip()
    return f"Error: {result.error}"


async def cmd_edit(state: AppState, args: list[str]) -> str:
    """/edit <id> [title=..] [priority=..] [status=..] [due=..] [desc=..]"""
    if not args:
        return "Usage: /edit <id> [title=..] [priority=..] [status=..] [due=YYYY-MM-DD] [desc=..]"

    task_id, rest = args[0], args[1:]
    words, fields = _split_fields(rest)
    if words:
        return f"Unexpected arguments: {' '.join(words)}"

    try:
        patch = TaskPatch(
            title=fields.get("title"),
            description=fields.get("desc"),
            priority=TaskPriority(fields["priority"]) if "priority" in fields else None,
            status=TaskStatus(fields["status"]) if "status" in fields else None,
            due_date=_parse_due(fields["due"]) if fields.get("due") else None,
        )
    except ValueError as e:
        return f"Invalid change: {e}"

    if patch.title is not None and not patch.title.strip():
        return "Title cannot be empty."
    if patch.is_empty():
        return "Nothing to change."

    result = await state.tasks.update_task(task_id, patch)
    if result.success:
        await _after_mutation(state)
    return _result_line(result, "Task updated successfully!")


async def cmd_status(state: AppState, args: list[str]) -> str:
    """/status <id> <pending|in-progress|completed>"""
    if len(args) != 2:
        return "Usage: /status <id> <pending|in-progress|completed>"
    try:
        status = TaskStatus(args[1].lower())
    except ValueError:
        return f"Unknown status: {args[1]}"

    result = await state.tasks.update_task(args[0], TaskPatch(status=status))
    if result.success:
        await _after_mutation(state)
    return _result_line(result, f"Task marked {status.value}.")


async def cmd_done(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /done <id>"
    return await cmd_status(state, [args[0], TaskStatus.COMPLETED.value])


async def cmd_rm(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /rm <id>"
    result = await state.tasks.delete_task(args[0])
    if result.success:
        await _after_mutation(state)
    return _result_line(result, "Task deleted successfully!")


async def cmd_filter(state: AppState, args: list[str]) -> str:
    """
    /filter                      -> show active filters
    /filter status=pending       -> filter (empty value clears: status=)
    /filter sort=-priority       -> change server-side sort
    """
    if not args:
        f = state.tasks.filters
        return (
            "Filters:\n"
            f"  status: {f.status.value if f.status else 'all'}\n"
            f"  priority: {f.priority.value if f.priority else 'all'}\n"
            f"  sort: {f.sort.value}"
        )

    changes: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep:
            return "Usage: /filter status=<..> priority=<..> sort=<..>"
        changes[key.lower()] = value

    result = await state.tasks.set_filters(changes)
    if not result.success:
        return f"Error: {result.error}"
    if result.skipped:
        return "Filters unchanged."
    return render_tasks(state)


async def cmd_reset(state: AppState, args: list[str]) -> str:
    if not state.tasks.filters.is_active:
        return "No active filters."
    result = await state.tasks.reset_filters()
    if not result.success:
        return f"Error: {result.error}"
    return render_tasks(state)


async def cmd_search(state: AppState, args: list[str]) -> str:
    state.search_term = " ".join(args).strip()
    return render_tasks(state)


async def cmd_stats(state: AppState, args: list[str]) -> str:
    result = await state.tasks.fetch_task_stats()
    stats = state.tasks.snapshot.stats
    if not result.success or stats is None:
        return f"Error: {result.error}"
    return (
        "Stats:\n"
        f"  Total: {stats.total}\n"
        f"  Pending: {stats.pending}\n"
        f"  In progress: {stats.in_progress}\n"
        f"  Completed: {stats.completed}\n"
        f"  Completion: {stats.completion_rate}% "
        f"({stats.completed} of {stats.total} done, {stats.remaining} remaining)"
    )


async def cmd_error(state: AppState, args: list[str]) -> str:
    """
    /error        -> show the last error
    /error clear  -> clear it
    """
    if args and args[0].lower() == "clear":
        state.tasks.clear_error()
        return "Error cleared."
    return state.tasks.snapshot.error or "No error."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="Show loaded tasks.", aliases=["ls"])
registry.register("refresh", cmd_refresh, help_text="Reload tasks from page 1.", aliases=["r"])
registry.register("more", cmd_more, help_text="Load the next page of tasks.")
registry.register("add", cmd_add, help_text="Create a task: /add <title> [priority=..] [due=..].")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> field=value ...")
registry.register("status", cmd_status, help_text="Change status: /status <id> <status>.")
registry.register("done", cmd_done, help_text="Mark a task completed: /done <id>.")
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.", aliases=["del"])
registry.register("filter", cmd_filter, help_text="Show/change filters: /filter status=.. sort=..")
registry.register("reset", cmd_reset, help_text="Reset filters to defaults.")
registry.register("search", cmd_search, help_text="Search loaded tasks: /search <text>.")
registry.register("stats", cmd_stats, help_text="Show task statistics.")
registry.register("error", cmd_error, help_text="Show or clear the last error: /error [clear].")
