"""Tests for filter state, utilization buckets and saved views."""

import json
from datetime import date, timedelta

import pytest

from forecast_grid.models import Assignment, Leave, Person, SavedViewDraft, Work
from forecast_grid.views import (
    ALL,
    FULL_UTILIZATION,
    FilterState,
    available_shows,
    departments,
    filter_members,
    utilization_bucket,
)

MON = date(2025, 1, 6)
DATES = [MON, MON + timedelta(days=1)]


def _work(person, day, item, weight, group="Show A"):
    return Assignment(person, day, Work(item, weight, group))


class TestUtilizationBucket:
    @pytest.mark.parametrize(
        "average, bucket",
        [
            (0.0, "available"),
            (0.01, "partial"),
            (0.99, "partial"),
            (FULL_UTILIZATION, "full"),
            (FULL_UTILIZATION + 1e-12, "full"),
            (1.01, "overallocated"),
        ],
    )
    def test_boundaries(self, average, bucket):
        assert utilization_bucket(average) == bucket


class TestFilterState:
    def test_round_trip_keys(self):
        state = FilterState(start_date=MON, date_range=7, department="Comp", search="sh0")
        assert state.to_dict() == {
            "department": "Comp",
            "shift": ALL,
            "show": ALL,
            "utilization": ALL,
            "search": "sh0",
            "startDate": "2025-01-06",
            "dateRange": 7,
        }
        assert FilterState().merged(state.to_dict()) == state

    def test_missing_selectors_fall_back_to_all(self):
        state = FilterState(start_date=MON, department="Comp", show="Show A")
        merged = state.merged({"search": "x"})
        assert merged.department == ALL
        assert merged.show == ALL
        assert merged.start_date == MON
        assert merged.search == "x"

    def test_bad_values_are_tolerated(self):
        state = FilterState(start_date=MON, date_range=14)
        merged = state.merged({"startDate": "soon", "dateRange": "x", "utilization": "busy"})
        assert merged.start_date == MON
        assert merged.date_range == 14
        assert merged.utilization == ALL

    def test_dates_and_navigation(self):
        state = FilterState(start_date=MON, date_range=3)
        assert state.dates == [MON, MON + timedelta(days=1), MON + timedelta(days=2)]
        assert state.end_date == MON + timedelta(days=2)
        assert state.navigate(7).start_date == MON + timedelta(days=7)


class TestFilterMembers:
    people = [
        Person(id="p1", emp_id="E001", name="Asha Rao"),
        Person(id="p2", emp_id="E002", name="Ben Cole"),
        Person(id="p3", emp_id="E003", name="Chen Li"),
    ]
    allocations = {
        "p1": [_work("p1", MON, "SH010", 0.5), _work("p1", DATES[1], "SH010", 0.5)],
        "p2": [_work("p2", MON, "SH030", 1.0, "Show B"), _work("p2", DATES[1], "SH040", 1.0, "Show B")],
    }

    def _ids(self, **filters):
        state = FilterState(start_date=MON, date_range=2, **filters)
        return [m.id for m in filter_members(self.people, self.allocations, DATES, state)]

    def test_no_filters(self):
        assert self._ids() == ["p1", "p2", "p3"]

    def test_utilization(self):
        assert self._ids(utilization="available") == ["p3"]
        assert self._ids(utilization="partial") == ["p1"]
        assert self._ids(utilization="full") == ["p2"]
        assert self._ids(utilization="overallocated") == []

    def test_show(self):
        assert self._ids(show="Show B") == ["p2"]

    def test_search_by_emp_id(self):
        assert self._ids(search="e003") == ["p3"]


class TestOptions:
    def test_available_shows(self):
        rows = [
            _work("p1", MON, "SH010", 0.5),
            _work("p1", MON, "SH020", 0.5, "Default"),
            Assignment("p2", MON, Leave()),
            _work("p2", MON, "SH030", 1.0, "Show B"),
        ]
        assert available_shows(rows) == ["Show A", "Show B"]

    def test_departments(self):
        people = [Person("a", "1", "A", department="Roto"), Person("b", "2", "B", department="Comp"),
                  Person("c", "3", "C")]
        assert departments(people) == [ALL, "Comp", "Roto"]


@pytest.mark.anyio
class TestViewManager:
    async def test_save_and_apply(self, make_session, backend):
        session = await make_session(department="Roto", search="chen")
        view = await session.views.save("Roto team", is_quick_filter=True)
        assert json.loads(backend.views[view.id].filters)["department"] == "Roto"

        session.filters = FilterState(start_date=MON)
        await session.refresh()
        assert len(session.members) == 3

        await session.views.apply(view.id)
        assert session.filters.department == "Roto"
        assert session.filters.search == "chen"
        assert [m.id for m in session.members] == ["p3"]
        assert session.views.active_view_id == view.id
        assert session.views.quick_filters() == [view]

    async def test_blank_name_is_rejected(self, make_session):
        session = await make_session()
        with pytest.raises(ValueError):
            await session.views.save("  ")

    async def test_default_view_applies_on_open(self, make_session, backend):
        await backend.create_saved_view(
            SavedViewDraft(
                name="Week",
                filters={"department": "Comp", "startDate": "2025-01-13", "dateRange": 7},
                is_default=True,
            )
        )
        session = await make_session()
        assert session.filters.start_date == date(2025, 1, 13)
        assert session.filters.date_range == 7
        assert [m.id for m in session.members] == ["p1", "p2"]

    async def test_only_one_default(self, make_session, backend):
        session = await make_session()
        first = await session.views.save("First")
        second = await session.views.save("Second")
        await session.views.set_default(first.id)
        await session.views.set_default(second.id)
        assert [v.id for v in session.views.views if v.is_default] == [second.id]
        assert session.views.default_view().id == second.id
        await session.views.set_default(None)
        assert session.views.default_view() is None

    async def test_delete(self, make_session, backend):
        session = await make_session()
        view = await session.views.save("Temp")
        await session.views.apply(view)
        await session.views.delete(view.id)
        assert session.views.views == []
        assert session.views.active_view_id is None
        with pytest.raises(KeyError):
            session.views.find(view.id)

    async def test_quick_filters_listed_first(self, make_session):
        session = await make_session()
        await session.views.save("Plain")
        quick = await session.views.save("Quick", is_quick_filter=True)
        await session.views.save("Newest")
        assert session.views.views[0].id == quick.id
        assert [v.name for v in session.views.views[1:]] == ["Newest", "Plain"]
