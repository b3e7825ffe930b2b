# tests/test_task_sync.py

from __future__ import annotations

import asyncio

import pytest

from tasksync.tasks.task_models import (
    SortKey,
    TaskDraft,
    TaskPatch,
    TaskPriority,
    TaskStatus,
)
from tasksync.tasks.task_state import TaskSnapshot
from tasksync.tasks.task_sync import TaskSyncController

from .fakes import ScriptedTaskAPI, api_error, page_json, task_json


@pytest.mark.asyncio
async def test_fetch_tasks_loads_page_and_brackets_with_loading(controller, scripted_api) -> None:
    seen: list[TaskSnapshot] = []
    controller.subscribe(seen.append)
    scripted_api.script("list_tasks", page_json([task_json("1"), task_json("2")], total=2))

    result = await controller.fetch_tasks()

    assert result.success
    snap = controller.snapshot
    assert [t.id for t in snap.tasks] == ["1", "2"]
    assert (snap.total, snap.page, snap.pages) == (2, 1, 1)
    assert snap.loading is False and snap.error is None
    # BeginLoad first, then ErrorCleared, then TasksLoaded.
    assert seen[0].loading is True
    assert seen[1].loading is True and seen[1].error is None
    assert scripted_api.params_of("list_tasks") == [({"sort": "-createdAt"},)]


@pytest.mark.asyncio
async def test_fetch_tasks_merges_extra_params_over_filters(scripted_api) -> None:
    scripted_api.script("list_tasks", page_json([]), page_json([]))
    controller = TaskSyncController(scripted_api)
    await controller.set_filters({"status": "pending"})

    await controller.fetch_tasks({"sort": "title", "page": 2})

    assert scripted_api.params_of("list_tasks")[-1] == ({"status": "pending", "sort": "title", "page": 2},)


@pytest.mark.asyncio
async def test_fetch_failure_uses_store_message_or_fallback(controller, scripted_api) -> None:
    scripted_api.script("list_tasks", api_error("Server is down"), api_error(None), RuntimeError("socket"))

    r1 = await controller.fetch_tasks()
    assert (r1.success, r1.error) == (False, "Server is down")
    assert controller.snapshot.error == "Server is down"
    assert controller.snapshot.loading is False

    r2 = await controller.fetch_tasks()
    assert r2.error == "Failed to fetch tasks"

    r3 = await controller.fetch_tasks()
    assert r3.error == "Failed to fetch tasks"
    assert controller.snapshot.error == "Failed to fetch tasks"


@pytest.mark.asyncio
async def test_create_task_prepends_without_refetch(controller, scripted_api) -> None:
    scripted_api.script("list_tasks", page_json([task_json("1")]))
    await controller.fetch_tasks()
    scripted_api.script("create_task", task_json("9", "New"))

    result = await controller.create_task(TaskDraft(title="New", priority=TaskPriority.HIGH))

    assert result.success and result.data is not None
    assert result.data.id == "9"
    assert [t.id for t in controller.snapshot.tasks] == ["9", "1"]
    expected = {"title": "New", "priority": "high", "status": "pending"}
    assert scripted_api.params_of("create_task") == [(expected,)]
    assert len(scripted_api.params_of("list_tasks")) == 1


@pytest.mark.asyncio
async def test_create_failure_without_message_uses_fallback(controller, scripted_api) -> None:
    scripted_api.script("create_task", api_error(None, 500))

    result = await controller.create_task(TaskDraft(title="x"))

    assert result.success is False
    assert result.error == "Failed to create task"
    assert controller.snapshot.error == "Failed to create task"
    assert controller.snapshot.tasks == ()


@pytest.mark.asyncio
async def test_mutations_do_not_touch_loading(controller, scripted_api) -> None:
    scripted_api.script("update_task", task_json("1", status="completed"))
    seen: list[TaskSnapshot] = []
    controller.subscribe(seen.append)

    await controller.update_task("1", TaskPatch(status=TaskStatus.COMPLETED))

    assert all(not s.loading for s in seen)


@pytest.mark.asyncio
async def test_update_replaces_task_in_place(controller, scripted_api) -> None:
    scripted_api.script("list_tasks", page_json([task_json("1"), task_json("2")]))
    await controller.fetch_tasks()
    scripted_api.script("update_task", task_json("1", status="completed"))

    result = await controller.update_task("1", TaskPatch(status=TaskStatus.COMPLETED))

    assert result.success
    assert [t.id for t in controller.snapshot.tasks] == ["1", "2"]
    assert controller.snapshot.tasks[0].status == TaskStatus.COMPLETED
    assert scripted_api.params_of("update_task") == [("1", {"status": "completed"})]


@pytest.mark.asyncio
async def test_failed_mutation_leaves_tasks_unchanged(controller, scripted_api) -> None:
    scripted_api.script("list_tasks", page_json([task_json("1")]))
    await controller.fetch_tasks()
    before = controller.snapshot.tasks
    scripted_api.script("update_task", api_error("Task not found", 404))
    scripted_api.script("delete_task", api_error(None))

    upd = await controller.update_task("1", TaskPatch(title="x"))
    assert upd.error == "Task not found"
    dele = await controller.delete_task("1")
    assert dele.error == "Failed to delete task"

    assert controller.snapshot.tasks == before
    assert controller.snapshot.error == "Failed to delete task"


@pytest.mark.asyncio
async def test_delete_removes_task(controller, scripted_api) -> None:
    scripted_api.script("list_tasks", page_json([task_json("1"), task_json("2")]))
    await controller.fetch_tasks()
    scripted_api.script("delete_task", None)

    result = await controller.delete_task("1")

    assert result.success and result.data == "1"
    assert [t.id for t in controller.snapshot.tasks] == ["2"]


@pytest.mark.asyncio
async def test_stats_failure_is_not_a_global_error(controller, scripted_api) -> None:
    stats = {"total": 4, "pending": 1, "in-progress": 2, "completed": 1}
    scripted_api.script("get_stats", api_error(None), stats)

    failed = await controller.fetch_task_stats()
    assert failed.success is False
    assert failed.error == "Failed to fetch task stats"
    assert controller.snapshot.error is None
    assert controller.snapshot.stats is None

    ok = await controller.fetch_task_stats()
    assert ok.success
    assert controller.snapshot.stats is not None
    assert controller.snapshot.stats.in_progress == 2
    assert controller.snapshot.stats.completion_rate == 25


@pytest.mark.asyncio
async def test_set_filters_refetches_page_one(controller, scripted_api) -> None:
    scripted_api.script(
        "list_tasks",
        page_json([task_json("1"), task_json("2")], total=6, page=1, pages=3),
        page_json([task_json("3"), task_json("4")], total=6, page=2, pages=3),
        page_json([task_json("7")], total=1, page=1, pages=1),
    )
    await controller.fetch_tasks()
    await controller.load_more()
    assert controller.snapshot.page == 2

    result = await controller.set_filters({"priority": "high"})

    assert result.success
    last_params = scripted_api.params_of("list_tasks")[-1][0]
    assert "page" not in last_params
    assert last_params["priority"] == "high"
    snap = controller.snapshot
    assert [t.id for t in snap.tasks] == ["7"]
    assert snap.page == 1


@pytest.mark.asyncio
async def test_set_filters_without_change_does_not_fetch(controller, scripted_api) -> None:
    result = await controller.set_filters({"sort": "-createdAt"})
    assert result.success and result.skipped
    assert scripted_api.params_of("list_tasks") == []


@pytest.mark.asyncio
async def test_set_filters_rejects_invalid_values(controller, scripted_api) -> None:
    result = await controller.set_filters({"status": "archived"})
    assert result.success is False
    assert "Invalid filter" in (result.error or "")
    assert scripted_api.params_of("list_tasks") == []


@pytest.mark.asyncio
async def test_reset_filters(controller, scripted_api) -> None:
    scripted_api.script("list_tasks", page_json([]), page_json([]))
    await controller.set_filters({"status": "completed", "sort": "title"})
    assert controller.filters.is_active

    await controller.reset_filters()

    assert not controller.filters.is_active
    assert scripted_api.params_of("list_tasks")[-1] == ({"sort": SortKey.NEWEST.value},)


@pytest.mark.asyncio
async def test_load_more_is_additive(controller, scripted_api) -> None:
    scripted_api.script(
        "list_tasks",
        page_json([task_json("1"), task_json("2")], total=5, page=1, pages=3),
        page_json([task_json("3"), task_json("4")], total=5, page=2, pages=3),
    )
    await controller.fetch_tasks()

    result = await controller.load_more()

    assert result.success and not result.skipped
    assert scripted_api.params_of("list_tasks")[-1][0]["page"] == 2
    assert [t.id for t in controller.snapshot.tasks] == ["1", "2", "3", "4"]
    assert controller.snapshot.page == 2


@pytest.mark.asyncio
async def test_load_more_on_last_page_is_a_noop(controller, scripted_api) -> None:
    scripted_api.script("list_tasks", page_json([task_json("1")], total=1, page=1, pages=1))
    await controller.fetch_tasks()
    before = controller.snapshot

    result = await controller.load_more()

    assert result.success and result.skipped
    assert controller.snapshot is before
    assert len(scripted_api.params_of("list_tasks")) == 1


@pytest.mark.asyncio
async def test_stale_fetch_response_is_discarded(scripted_api) -> None:
    controller = TaskSyncController(scripted_api)
    # Outcomes are consumed in completion order: the newer fetch finishes first.
    scripted_api.script(
        "list_tasks",
        page_json([task_json("new")], total=1),
        page_json([task_json("old")], total=1),
    )
    gate = scripted_api.hold_next_list()

    slow = asyncio.create_task(controller.fetch_tasks())
    await asyncio.sleep(0)
    fresh = await controller.fetch_tasks({"status": "completed"})
    gate.set()
    stale = await slow

    assert fresh.success and not fresh.skipped
    assert stale.skipped
    assert [t.id for t in controller.snapshot.tasks] == ["new"]
    assert controller.snapshot.loading is False


@pytest.mark.asyncio
async def test_concurrent_fetch_and_delete_both_apply(scripted_api) -> None:
    controller = TaskSyncController(scripted_api)
    scripted_api.script("list_tasks", page_json([task_json("1"), task_json("2")]))
    await controller.fetch_tasks()

    scripted_api.script("list_tasks", page_json([task_json("1"), task_json("2"), task_json("3")], total=3))
    scripted_api.script("delete_task", None)
    gate = scripted_api.hold_next_list()

    fetch = asyncio.create_task(controller.fetch_tasks())
    await asyncio.sleep(0)
    await controller.delete_task("2")
    assert [t.id for t in controller.snapshot.tasks] == ["1"]
    assert controller.snapshot.loading is True

    gate.set()
    await fetch
    # Last writer wins: the fetch completed after the delete.
    assert [t.id for t in controller.snapshot.tasks] == ["1", "2", "3"]


def test_clear_error_and_unsubscribe() -> None:
    controller = TaskSyncController(ScriptedTaskAPI(), snapshot=TaskSnapshot(error="x"))
    seen: list[TaskSnapshot] = []
    unsubscribe = controller.subscribe(seen.append)

    assert controller.clear_error().success
    assert controller.snapshot.error is None
    assert len(seen) == 1

    unsubscribe()
    controller.clear_error()
    assert len(seen) == 1


def test_listener_failure_does_not_break_dispatch() -> None:
    controller = TaskSyncController(ScriptedTaskAPI())

    def boom(_snap: TaskSnapshot) -> None:
        raise RuntimeError("listener bug")

    controller.subscribe(boom)
    controller.clear_error()
    assert controller.snapshot.error is None


@pytest.mark.asyncio
async def test_filter_change_blocks_load_more_until_refetched(controller, scripted_api) -> None:
    scripted_api.script(
        "list_tasks",
        page_json([task_json("1")], total=3, page=1, pages=3),
        api_error("Server is down"),
    )
    await controller.fetch_tasks()
    assert controller.snapshot.has_more

    # The refetch for the new filter fails, leaving old-filter paging behind.
    result = await controller.set_filters({"status": "completed"})
    assert result.success is False

    more = await controller.load_more()

    assert more.success and more.skipped
    assert len(scripted_api.params_of("list_tasks")) == 2
    assert [t.id for t in controller.snapshot.tasks] == ["1"]


@pytest.mark.asyncio
async def test_load_more_after_server_shrinks_keeps_page_within_pages(offline_api) -> None:
    ids = [(await offline_api.create_task({"title": f"t{i}"}))["_id"] for i in range(3)]
    controller = TaskSyncController(offline_api)
    await controller.fetch_tasks()
    assert (controller.snapshot.page, controller.snapshot.pages) == (1, 2)

    # Deleted on the server, behind the client's back.
    await offline_api.delete_task(ids[0])
    await offline_api.delete_task(ids[1])

    result = await controller.load_more()

    assert result.success
    snap = controller.snapshot
    assert (snap.page, snap.pages) == (1, 1)
    assert not snap.has_more
