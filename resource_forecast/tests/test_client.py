"""Tests for the REST client, driven through httpx.MockTransport."""

from __future__ import annotations

import json
from datetime import date

import httpx
import pytest

from forecast_grid.errors import BackendError
from forecast_grid.models import Assignment, CellKey, Leave, SavedViewDraft, Work
from forecast_grid.session import GridSession
from forecast_grid.views import FilterState
from resource_forecast.client import ForecastApiClient

pytestmark = pytest.mark.anyio

MON = date(2025, 1, 6)

MEMBERS = [
    {"id": "m1", "empId": "E001", "empName": "Asha Rao", "designation": "Compositor",
     "reportingTo": "Lead One", "department": "Comp", "shift": "Day", "isActive": True},
    {"id": "m2", "empId": "E002", "empName": "Ben Cole", "department": "Comp", "shift": "Night"},
]

ALLOCATIONS = [
    {"id": "a1", "resourceId": "m1", "showName": "Show A", "shotName": "SH010",
     "allocationDate": "2025-01-06T00:00:00.000Z", "manDays": 0.5,
     "isLeave": False, "isIdle": False, "isWeekendWorking": False},
    {"id": "a2", "resourceId": "m2", "showName": "Leave", "shotName": "Leave",
     "allocationDate": "2025-01-07T00:00:00.000Z", "manDays": 1, "isLeave": True},
]


class Api:
    """Scripted responses keyed by (method, path); records every request."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], list] = {}

    def on(self, method, path, *responses):
        self.routes[(method, path)] = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": "no route"})
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        status, body = item
        return httpx.Response(status, json=body)


@pytest.fixture
def api():
    return Api()


@pytest.fixture
async def client(api):
    async with ForecastApiClient(
        base_url="http://forecast.test/",
        api_token="secret",
        retries=3,
        backoff_s=0,
        transport=httpx.MockTransport(api),
    ) as c:
        yield c


def _body(request):
    return json.loads(request.content)


class TestReads:
    async def test_members(self, client, api):
        api.on("GET", "/api/resource/members", (200, MEMBERS))
        members = await client.list_members(department="Comp", shift="Night")
        assert [m.id for m in members] == ["m2"]
        request = api.requests[0]
        assert request.headers["authorization"] == "Bearer secret"
        assert request.url.params["department"] == "Comp"

    async def test_allocations(self, client, api):
        api.on("GET", "/api/resource/allocations", (200, ALLOCATIONS))
        rows = await client.list_allocations(MON, date(2025, 1, 12))
        assert rows[0].kind == Work("SH010", 0.5, "Show A")
        assert rows[0].day == MON
        assert rows[1].is_leave
        params = api.requests[0].url.params
        assert params["startDate"] == "2025-01-06"
        assert params["endDate"] == "2025-01-12"
        assert "resourceId" not in params

    async def test_single_person_filter_goes_to_server(self, client, api):
        api.on("GET", "/api/resource/allocations", (200, ALLOCATIONS))
        rows = await client.list_allocations(MON, MON, person_ids=["m1"])
        assert api.requests[0].url.params["resourceId"] == "m1"
        assert [r.id for r in rows] == ["a1"]

    async def test_validate(self, client, api):
        api.on("POST", "/api/award-sheet/validate", (200, {"valid": True, "showName": "Show A"}))
        check = await client.validate_work_item("SH010")
        assert check.valid and check.group == "Show A"
        assert _body(api.requests[0]) == {"shotName": "SH010"}

    async def test_unknown_shot(self, client, api):
        api.on("POST", "/api/award-sheet/validate", (200, {"valid": False}))
        assert not (await client.validate_work_item("BOGUS")).valid


class TestRetries:
    async def test_reads_retry_server_errors(self, client, api):
        api.on("GET", "/api/resource/members", (503, {"error": "busy"}), (200, MEMBERS))
        assert len(await client.list_members()) == 2
        assert len(api.requests) == 2

    async def test_reads_retry_timeouts(self, client, api):
        api.on("GET", "/api/resource/members", httpx.ReadTimeout("slow"), (200, MEMBERS))
        assert len(await client.list_members()) == 2

    async def test_reads_give_up(self, client, api):
        api.on("GET", "/api/resource/members", (503, {"error": "busy"}))
        with pytest.raises(BackendError) as excinfo:
            await client.list_members()
        assert excinfo.value.status_code == 503
        assert len(api.requests) == 3

    async def test_writes_are_attempted_once(self, client, api):
        api.on("POST", "/api/resource/allocations", (500, {"error": "Failed to create allocation"}))
        with pytest.raises(BackendError) as excinfo:
            await client.create_allocation(Assignment("m1", MON, Work("SH010", 1.0, "Show A")))
        assert str(excinfo.value) == "Failed to create allocation"
        assert len(api.requests) == 1

    async def test_client_errors_are_not_retried(self, client, api):
        api.on("GET", "/api/saved-views", (401, {"error": "Unauthorized"}))
        with pytest.raises(BackendError):
            await client.list_saved_views()
        assert len(api.requests) == 1


class TestWrites:
    async def test_create_payload(self, client, api):
        api.on("POST", "/api/resource/allocations", lambda r: httpx.Response(
            201, json={**_body(r), "id": "new1", "createdBy": "coordinator"}))
        record = await client.create_allocation(Assignment("m1", MON, Work("SH010", 0.5, "Show A")))
        assert _body(api.requests[0]) == {
            "resourceId": "m1",
            "allocationDate": "2025-01-06T00:00:00Z",
            "showName": "Show A",
            "shotName": "SH010",
            "manDays": 0.5,
            "isLeave": False,
            "isIdle": False,
            "isWeekendWorking": False,
        }
        assert record.id == "new1"
        assert record.created_by == "coordinator"

    async def test_leave_payload(self, client, api):
        api.on("POST", "/api/resource/allocations", lambda r: httpx.Response(201, json={**_body(r), "id": "l1"}))
        record = await client.create_allocation(Assignment("m1", MON, Leave()))
        body = _body(api.requests[0])
        assert body["isLeave"] is True
        assert body["manDays"] == 1.0
        assert record.is_leave

    async def test_delete(self, client, api):
        api.on("DELETE", "/api/resource/allocations/a1", (200, {"success": True}))
        await client.delete_allocation("a1")
        assert api.requests[0].url.path == "/api/resource/allocations/a1"


class TestSavedViews:
    async def test_create_and_update(self, client, api):
        view_row = {"id": "v1", "name": "Comp", "viewType": "resource",
                    "filters": '{"department": "Comp"}', "isPublic": False, "isQuickFilter": True}
        api.on("POST", "/api/saved-views", (201, view_row))
        api.on("PATCH", "/api/saved-views/v1", (200, {**view_row, "isDefault": True}))

        view = await client.create_saved_view(
            SavedViewDraft(name="Comp", filters={"department": "Comp"}, is_quick_filter=True)
        )
        assert view.is_quick_filter
        assert _body(api.requests[0])["filters"] == {"department": "Comp"}

        updated = await client.update_saved_view("v1", is_default=True)
        assert updated.is_default
        assert _body(api.requests[1]) == {"isDefault": True}

    async def test_list(self, client, api):
        api.on("GET", "/api/saved-views", (200, [{"id": "v1", "name": "A", "filters": {"shift": "Day"}}]))
        views = await client.list_saved_views()
        assert views[0].filters == '{"shift": "Day"}'
        assert api.requests[0].url.params["viewType"] == "resource"


class TestAsSessionBackend:
    async def test_write_cell_round_trip(self, client, api):
        created = []

        def create(request):
            row = {**_body(request), "id": f"n{len(created)}"}
            created.append(row)
            return httpx.Response(201, json=row)

        api.on("GET", "/api/resource/members", (200, MEMBERS))
        api.on("GET", "/api/saved-views", (200, []))
        api.on("GET", "/api/resource/allocations", lambda r: httpx.Response(200, json=created))
        api.on("POST", "/api/award-sheet/validate", (200, {"valid": True, "showName": "Show A"}))
        api.on("POST", "/api/resource/allocations", create)

        session = GridSession(client, filters=FilterState(start_date=MON, date_range=7))
        await session.open()
        await session.write_cell(CellKey("m1", 0), "SH010/SH020")

        assert sorted(row["shotName"] for row in created) == ["SH010", "SH020"]
        assert all(row["manDays"] == 0.5 for row in created)
        assert session.cell(CellKey("m1", 0)).total == pytest.approx(1.0)
