"""HTTP client for a remote task API exposing `/api/tasks`."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from .errors import (
    TaskNotFoundError,
    TaskStoreUnavailableError,
    TaskValidationError,
)
from .models import Task, tasks_from_json
from .validation import DEFAULT_TASK_DURATION_MINUTES

_FIELD_TO_JSON = {
    "name": "name",
    "duration": "duration",
    "is_interval": "isInterval",
    "parent_task_id": "parentTaskId",
}


class HttpTaskStore:
    """Synchronous task store client; callers run it off the timer thread."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 5.0,
        logger: Optional[logging.Logger] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._logger = logger or logging.getLogger("tasks.http")
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout_seconds,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def list(self) -> list[Task]:
        response = self._request("GET", "/api/tasks")
        try:
            return list(tasks_from_json(response.json()))
        except ValueError as error:
            raise TaskStoreUnavailableError(
                f"Task API returned an invalid task list: {error}"
            ) from error

    def create(
        self,
        name: str,
        duration: int = DEFAULT_TASK_DURATION_MINUTES,
        *,
        is_interval: bool = False,
        parent_task_id: Optional[int] = None,
    ) -> Task:
        payload = {
            "name": name,
            "duration": duration,
            "isInterval": is_interval,
            "parentTaskId": parent_task_id,
        }
        response = self._request("POST", "/api/tasks", json=payload)
        return self._task_from_response(response)

    def update(self, task_id: int, **fields: Any) -> Task:
        payload = {_FIELD_TO_JSON.get(key, key): value for key, value in fields.items()}
        response = self._request("PATCH", f"/api/tasks/{task_id}", json=payload, task_id=task_id)
        return self._task_from_response(response)

    def delete(self, task_id: int) -> None:
        self._request("DELETE", f"/api/tasks/{task_id}", task_id=task_id)

    def clear(self) -> int:
        """Delete every task one by one; the task API has no bulk delete."""
        removed = 0
        for task in self.list():
            try:
                self.delete(task.id)
            except TaskNotFoundError:
                continue
            removed += 1
        self._logger.info("Remote task store cleared: removed=%s", removed)
        return removed

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        task_id: Optional[int] = None,
    ) -> httpx.Response:
        try:
            response = self._client.request(method, path, json=json)
        except httpx.RequestError as error:
            raise TaskStoreUnavailableError(
                f"Task API request failed: {method} {path}: {error}"
            ) from error

        if response.status_code == 400:
            body = _safe_json(response)
            message = body.get("message") if isinstance(body, dict) else None
            errors = body.get("errors") if isinstance(body, dict) else None
            raise TaskValidationError(
                message or "Invalid task data",
                errors if isinstance(errors, list) else None,
            )
        if response.status_code == 404 and task_id is not None:
            raise TaskNotFoundError(task_id)
        if response.status_code >= 400:
            raise TaskStoreUnavailableError(
                f"Task API returned {response.status_code} for {method} {path}"
            )

        self._logger.debug("%s %s -> %s", method, path, response.status_code)
        return response

    @staticmethod
    def _task_from_response(response: httpx.Response) -> Task:
        try:
            return Task.from_dict(response.json())
        except ValueError as error:
            raise TaskStoreUnavailableError(
                f"Task API returned an invalid task: {error}"
            ) from error


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
