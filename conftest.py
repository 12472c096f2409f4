from __future__ import annotations

from datetime import date

import pytest

from forecast_grid.backend import InMemoryBackend
from forecast_grid.models import Person
from forecast_grid.session import GridSession, MemoryStore
from forecast_grid.sync import ChangeBus
from forecast_grid.views import FilterState

# Monday
START = date(2025, 1, 6)

WORK_ITEMS = {
    "SH010": "Show A",
    "SH020": "Show A",
    "SH030": "Show B",
    "SH040": "Show B",
}


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def people():
    return [
        Person(id="p1", emp_id="E001", name="Asha Rao", designation="Compositor",
               department="Comp", shift="Day", reporting_to="Lead One"),
        Person(id="p2", emp_id="E002", name="Ben Cole", designation="Compositor",
               department="Comp", shift="Night"),
        Person(id="p3", emp_id="E003", name="Chen Li", designation="Roto Artist",
               department="Roto", shift="Day"),
    ]


@pytest.fixture
def backend(people):
    return InMemoryBackend(people, work_items=WORK_ITEMS)


@pytest.fixture
def bus():
    return ChangeBus()


@pytest.fixture
def make_session(backend, bus):
    async def factory(*, store=None, date_range=14, **filters):
        session = GridSession(
            backend,
            bus=bus,
            store=store if store is not None else MemoryStore(),
            filters=FilterState(start_date=START, date_range=date_range, **filters),
        )
        await session.open()
        return session

    return factory
