"""Tests for the change bus and write settlement."""

from datetime import date

import anyio
import pytest

from forecast_grid.backend import InMemoryBackend
from forecast_grid.errors import BackendError, WriteFailure
from forecast_grid.models import Assignment, Person, Work
from forecast_grid.sync import ALLOCATION_UPDATED, ChangeBus, GridSync

pytestmark = pytest.mark.anyio

MON = date(2025, 1, 6)


class Counter:
    def __init__(self):
        self.events = []

    async def __call__(self, event):
        self.events.append(event)


def _draft(item, weight=0.5, person="p1"):
    return Assignment(person, MON, Work(item, weight, "Show A"))


@pytest.fixture
def backend():
    return InMemoryBackend([Person("p1", "E001", "Asha Rao")], work_items={"SH010": "Show A"})


@pytest.fixture
def refreshes():
    return Counter()


@pytest.fixture
def sync(backend, refreshes):
    async def refresh():
        await refreshes("refresh")

    return GridSync(backend, refresh=refresh, bus=ChangeBus())


class TestChangeBus:
    async def test_publish_skips_source(self):
        bus = ChangeBus()
        own, sibling = Counter(), Counter()
        bus.subscribe(own)
        bus.subscribe(sibling)
        await bus.publish(ALLOCATION_UPDATED, source=own)
        assert own.events == []
        assert sibling.events == [ALLOCATION_UPDATED]

    async def test_failing_listener_does_not_block_others(self):
        bus = ChangeBus()
        received = Counter()

        async def broken(event):
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received)
        await bus.publish(ALLOCATION_UPDATED)
        assert received.events == [ALLOCATION_UPDATED]

    async def test_unsubscribe(self):
        bus = ChangeBus()
        listener = Counter()
        unsubscribe = bus.subscribe(listener)
        unsubscribe()
        unsubscribe()
        await bus.publish(ALLOCATION_UPDATED)
        assert listener.events == []
        assert bus.listener_count == 0


class TestMutation:
    async def test_commit_refreshes_and_notifies(self, sync, refreshes):
        sibling = Counter()
        sync.bus.subscribe(sibling)
        async with sync.mutation():
            await sync.create_all([_draft("SH010")])
        assert refreshes.events == ["refresh"]
        assert sibling.events == [ALLOCATION_UPDATED]

    async def test_nested_mutations_commit_once(self, sync, refreshes):
        async with sync.mutation():
            async with sync.mutation():
                await sync.create_all([_draft("SH010")])
            assert refreshes.events == []
        assert refreshes.events == ["refresh"]

    async def test_no_writes_no_refresh(self, sync, refreshes):
        async with sync.mutation():
            pass
        assert refreshes.events == []

    async def test_failures_surface_after_refresh(self, sync, backend, refreshes):
        with pytest.raises(WriteFailure) as excinfo:
            async with sync.mutation():
                await sync.create_all([_draft("SH010", 0.5), _draft("", 0.5)])
        assert len(excinfo.value.failures) == 1
        assert isinstance(excinfo.value.failures[0].error, BackendError)
        assert refreshes.events == ["refresh"]
        assert len(backend.allocations) == 1

    async def test_error_inside_block_still_commits_landed_writes(self, sync, refreshes):
        with pytest.raises(RuntimeError):
            async with sync.mutation():
                await sync.create_all([_draft("SH010")])
                raise RuntimeError("stop")
        assert refreshes.events == ["refresh"]

    async def test_cancelled_block_does_not_stall_later_commits(self, sync, refreshes):
        with anyio.move_on_after(0.01):
            async with sync.mutation():
                await sync.create_all([_draft("SH010")])
                await anyio.sleep(1)
        assert refreshes.events == []
        async with sync.mutation():
            pass
        assert refreshes.events == ["refresh"]


class TestReplaceAndMove:
    async def test_replace(self, sync, backend):
        old = await backend.create_allocation(_draft("SH010", 1.0))
        created = await sync.replace([old], [_draft("SH020", 0.5)])
        assert [a.item for a in created] == ["SH020"]
        assert list(backend.allocations) == [created[0].id]

    async def test_move_to_other_person(self, sync, backend):
        backend.members.append(Person("p2", "E002", "Ben Cole"))
        record = await backend.create_allocation(_draft("SH010", 1.0))
        moved = await sync.move(record, record.as_draft(person_id="p2"))
        assert moved.person_id == "p2"
        assert backend.on_day("p1", MON) == []

    async def test_failed_delete_blocks_move(self, sync, backend):
        ghost = Assignment("p1", MON, Work("SH010", 1.0, "Show A"), id="missing")
        assert await sync.move(ghost, ghost.as_draft(person_id="p2")) is None
        assert backend.allocations == {}
        with pytest.raises(WriteFailure):
            await sync.commit()
