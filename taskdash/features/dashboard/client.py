"""Async HTTP client for the Tasks API"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from taskdash import config
from taskdash.features.tasks.domain import FieldError, StatusCounts, TaskStatus
from taskdash.features.tasks.schemas import (
    DashboardResponse,
    DeleteTaskResponse,
    SubtaskResponse,
    TaskMutationResponse,
    TaskSnapshot,
    ToggleSubtaskResponse,
)
from taskdash.features.tasks.transitions import DenialReason

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """The Tasks API could not be reached or refused the request"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        errors: Optional[List[FieldError]] = None,
        reason: Optional[DenialReason] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.errors = errors or []
        self.reason = reason

    @classmethod
    def from_response(cls, response: httpx.Response) -> "ApiError":
        errors: List[FieldError] = []
        reason = None
        message = f"{response.request.method} {response.request.url.path} returned {response.status_code}"
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            errors = [FieldError(**e) for e in body.get("errors") or []]
            if body.get("reason"):
                reason = DenialReason(body["reason"])
            if body.get("detail"):
                message = f"{message}: {body['detail']}"
        return cls(message, status_code=response.status_code, errors=errors, reason=reason)


class TaskApiClient:
    """
    Thin async wrapper over the /api/tasks endpoints.

    Every method returns the parsed response schema or raises ApiError.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url or config.TASKDASH_API_URL,
            transport=transport,
            timeout=timeout,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TaskApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, f"/api/tasks{path}", **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Request {method} {path} failed: {e}")
            raise ApiError(f"Request {method} {path} failed: {e}") from e

        if response.status_code >= 400:
            raise ApiError.from_response(response)
        return response.json()

    async def get_dashboard(self) -> DashboardResponse:
        return DashboardResponse.model_validate(await self._request("GET", ""))

    async def get_counts(self) -> StatusCounts:
        data = await self._request("GET", "/counts")
        return StatusCounts.model_validate(data["counts"])

    async def create_task(self, title: str, **fields) -> TaskMutationResponse:
        data = await self._request("POST", "", json={"title": title, **fields})
        return TaskMutationResponse.model_validate(data)

    async def update_task(self, task_id: int, changes: Dict[str, Any]) -> TaskMutationResponse:
        data = await self._request("PATCH", f"/{task_id}", json=changes)
        return TaskMutationResponse.model_validate(data)

    async def move_task(self, task_id: int, status: TaskStatus) -> TaskMutationResponse:
        data = await self._request("POST", f"/{task_id}/move", json={"status": TaskStatus(status).value})
        return TaskMutationResponse.model_validate(data)

    async def delete_task(self, task_id: int) -> DeleteTaskResponse:
        return DeleteTaskResponse.model_validate(await self._request("DELETE", f"/{task_id}"))

    async def undo_delete(self, task_data: TaskSnapshot) -> TaskMutationResponse:
        payload = {"task_data": task_data.model_dump(mode="json")}
        return TaskMutationResponse.model_validate(await self._request("POST", "/undo_delete", json=payload))

    async def create_subtask(self, task_id: int, title: str) -> SubtaskResponse:
        data = await self._request("POST", f"/{task_id}/subtasks", json={"title": title})
        return SubtaskResponse.model_validate(data)

    async def toggle_subtask(self, subtask_id: int) -> ToggleSubtaskResponse:
        data = await self._request("PATCH", f"/subtasks/{subtask_id}/toggle")
        return ToggleSubtaskResponse.model_validate(data)
