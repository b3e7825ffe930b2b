# src/tasksync/api/http_client.py

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..core.ports import JSON, TaskAPIError

logger = logging.getLogger(__name__)


def _make_timeout(connect_s: float, read_s: float) -> httpx.Timeout:
    # keep read >= connect as a sane baseline
    read_s = max(read_s, connect_s)
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


def _unwrap(body: Any) -> Any:
    """
    The server wraps payloads as {"success": true, "data": ...}.
    Bare payloads are passed through unchanged.
    """
    if isinstance(body, dict) and "data" in body and isinstance(body["data"], dict):
        return body["data"]
    return body


def _error_from_response(response: httpx.Response) -> TaskAPIError:
    message: str | None = None
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        raw = body.get("message") or body.get("error")
        if isinstance(raw, str) and raw.strip():
            message = raw.strip()
    return TaskAPIError(message, status_code=response.status_code)


class HttpTaskAPI:
    """
    Remote task store over HTTP/JSON (httpx.AsyncClient).

    Routes:
    - GET    /tasks          list (query: status, priority, sort, page)
    - POST   /tasks          create
    - PUT    /tasks/{id}     update
    - DELETE /tasks/{id}     delete
    - GET    /tasks/stats    aggregate counts

    Authentication is owned by an external provider; a bearer token, when
    configured, is passed through untouched.
    """

    def __init__(
        self,
        base_url: str,
        *,
        token: str | None = None,
        connect_timeout: float = 5.0,
        read_timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url or not base_url.strip():
            raise ValueError("base_url is required")

        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=_make_timeout(connect_timeout, read_timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings) -> HttpTaskAPI:
        return cls(
            settings.api_base_url,
            token=settings.api_token,
            connect_timeout=settings.connect_timeout_seconds,
            read_timeout=settings.read_timeout_seconds,
        )

    async def __aenter__(self) -> HttpTaskAPI:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            # Transport failures carry no server message; callers use their fallback.
            logger.warning("%s %s failed: %s", method, url, e.__class__.__name__)
            raise TaskAPIError(None) from e

        if response.is_error:
            err = _error_from_response(response)
            logger.info("%s %s -> %s %s", method, url, response.status_code, err.message or "")
            raise err

        logger.debug("%s %s -> %s", method, url, response.status_code)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise TaskAPIError(None, status_code=response.status_code) from e

    async def list_tasks(self, params: dict[str, Any]) -> JSON:
        body = await self._request("GET", "/tasks", params=params)
        if not isinstance(body, dict):
            raise TaskAPIError(None)
        return body

    async def create_task(self, payload: JSON) -> JSON:
        return self._expect_object(await self._request("POST", "/tasks", json=payload))

    async def update_task(self, task_id: str, payload: JSON) -> JSON:
        return self._expect_object(await self._request("PUT", self._task_path(task_id), json=payload))

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", self._task_path(task_id))

    async def get_stats(self) -> JSON:
        return self._expect_object(await self._request("GET", "/tasks/stats"))

    @staticmethod
    def _task_path(task_id: str) -> str:
        return f"/tasks/{quote(task_id, safe='')}"

    @staticmethod
    def _expect_object(body: Any) -> JSON:
        data = _unwrap(body)
        if not isinstance(data, dict):
            raise TaskAPIError(None)
        return data
