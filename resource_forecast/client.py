from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable

import anyio
import httpx

from forecast_grid.errors import BackendError
from forecast_grid.models import Assignment, Person, SavedView, SavedViewDraft, WorkItemCheck

from .ingest import (
    allocation_payload,
    normalize_allocation,
    normalize_member,
    normalize_saved_view,
    saved_view_changes,
    saved_view_payload,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Operation:
    method: str
    path_template: str
    idempotent: bool


OPERATIONS: dict[str, Operation] = {
    "list_members": Operation("GET", "/api/resource/members", True),
    "list_allocations": Operation("GET", "/api/resource/allocations", True),
    "create_allocation": Operation("POST", "/api/resource/allocations", False),
    "delete_allocation": Operation("DELETE", "/api/resource/allocations/{id}", False),
    "validate_work_item": Operation("POST", "/api/award-sheet/validate", True),
    "list_saved_views": Operation("GET", "/api/saved-views", True),
    "create_saved_view": Operation("POST", "/api/saved-views", False),
    "update_saved_view": Operation("PATCH", "/api/saved-views/{id}", False),
    "delete_saved_view": Operation("DELETE", "/api/saved-views/{id}", False),
}


def _error_message(resp: httpx.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return f"HTTP {resp.status_code} from {resp.request.method} {resp.request.url.path}"


class ForecastApiClient:
    """Async client for the resource forecast REST API.

    Only operations listed in OPERATIONS can be executed. Idempotent calls
    are retried on timeouts and 5xx responses; writes are attempted once.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_token: str | None = None,
        timeout_s: float = 30.0,
        retries: int = 3,
        backoff_s: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.retries = max(1, retries)
        self.backoff_s = backoff_s
        headers = {"Accept": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout_s,
            transport=transport,
        )

    async def __aenter__(self) -> ForecastApiClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(
        self,
        operation: str,
        *,
        path_args: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> httpx.Response:
        op = OPERATIONS.get(operation)
        if op is None:
            raise ValueError(f"Operation '{operation}' is not supported")
        path = op.path_template.format(**(path_args or {}))
        attempts = self.retries if op.idempotent else 1

        for attempt in range(attempts):
            last = attempt == attempts - 1
            try:
                resp = await self._http.request(op.method, path, params=params, json=json_body)
            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                if not last:
                    logger.warning("%s failed (%s), retrying", operation, exc)
                    await anyio.sleep(self.backoff_s * 2**attempt)
                    continue
                raise BackendError(f"{operation} failed: {exc}") from exc
            if resp.status_code >= 500 and not last:
                logger.warning("%s returned %s, retrying", operation, resp.status_code)
                await anyio.sleep(self.backoff_s * 2**attempt)
                continue
            if resp.is_error:
                raise BackendError(_error_message(resp), status_code=resp.status_code)
            return resp
        raise RuntimeError("request failed without an explicit exception")

    # -- reads ---------------------------------------------------------------

    async def list_members(
        self, *, department: str | None = None, shift: str | None = None
    ) -> list[Person]:
        params: dict[str, Any] = {}
        if department:
            params["department"] = department
        resp = await self._request("list_members", params=params)
        data = resp.json()
        rows = data if isinstance(data, list) else []
        members = [m for m in (normalize_member(r) for r in rows) if m is not None]
        if shift:
            members = [m for m in members if m.shift == shift]
        return members

    async def list_allocations(
        self, start: date, end: date, *, person_ids: Iterable[str] | None = None
    ) -> list[Assignment]:
        params: dict[str, Any] = {"startDate": start.isoformat(), "endDate": end.isoformat()}
        wanted = set(person_ids) if person_ids is not None else None
        if wanted is not None and len(wanted) == 1:
            params["resourceId"] = next(iter(wanted))
        resp = await self._request("list_allocations", params=params)
        data = resp.json()
        rows = data if isinstance(data, list) else []
        result = []
        for row in rows:
            record = normalize_allocation(row)
            if record is None:
                continue
            if wanted is not None and record.person_id not in wanted:
                continue
            result.append(record)
        return result

    async def validate_work_item(self, name: str) -> WorkItemCheck:
        resp = await self._request("validate_work_item", json_body={"shotName": name})
        payload = resp.json() or {}
        if not payload.get("valid"):
            return WorkItemCheck(valid=False)
        return WorkItemCheck(valid=True, group=payload.get("showName") or "")

    # -- writes --------------------------------------------------------------

    async def create_allocation(self, draft: Assignment) -> Assignment:
        resp = await self._request("create_allocation", json_body=allocation_payload(draft))
        payload = resp.json() or {}
        if payload.get("warning"):
            logger.warning("%s", payload["warning"])
        record = normalize_allocation(payload)
        if record is None:
            raise BackendError("create_allocation returned an unreadable record")
        return record

    async def delete_allocation(self, allocation_id: str) -> None:
        await self._request("delete_allocation", path_args={"id": allocation_id})

    # -- saved views ---------------------------------------------------------

    async def list_saved_views(self, view_type: str = "resource") -> list[SavedView]:
        resp = await self._request("list_saved_views", params={"viewType": view_type})
        data = resp.json()
        rows = data if isinstance(data, list) else []
        return [normalize_saved_view(r) for r in rows if r.get("id") is not None]

    async def create_saved_view(self, draft: SavedViewDraft) -> SavedView:
        resp = await self._request("create_saved_view", json_body=saved_view_payload(draft))
        return normalize_saved_view(resp.json())

    async def update_saved_view(self, view_id: str, **changes: Any) -> SavedView:
        resp = await self._request(
            "update_saved_view",
            path_args={"id": view_id},
            json_body=saved_view_changes(changes),
        )
        return normalize_saved_view(resp.json())

    async def delete_saved_view(self, view_id: str) -> None:
        await self._request("delete_saved_view", path_args={"id": view_id})
