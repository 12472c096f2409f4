"""Concurrency adapter: issue writes, re-fetch, notify sibling views.

Every write of one logical operation is started concurrently and settles
on its own; a failure never cancels or rolls back its siblings. Failures
are collected and raised together as WriteFailure once the operation has
re-fetched its snapshot, so the grid always shows what actually landed.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Sequence

import anyio

from .backend import AllocationBackend
from .errors import FailedWrite, WriteFailure
from .models import Assignment

logger = logging.getLogger(__name__)

ALLOCATION_UPDATED = "allocation-updated"

Listener = Callable[[str], Awaitable[None]]
Call = tuple[str, str, Callable[[], Awaitable[Any]]]


class ChangeBus:
    """In-process publish/subscribe channel shared by sibling views.

    Events carry no payload guarantees beyond "something changed".
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def publish(self, event: str, *, source: Listener | None = None) -> None:
        targets = [lst for lst in self._listeners if source is None or lst != source]
        if not targets:
            return
        async with anyio.create_task_group() as tg:
            for listener in targets:
                tg.start_soon(self._deliver, listener, event)

    @staticmethod
    async def _deliver(listener: Listener, event: str) -> None:
        try:
            await listener(event)
        except Exception:
            logger.exception("change listener failed for %s", event)


class GridSync:
    def __init__(
        self,
        backend: AllocationBackend,
        *,
        refresh: Callable[[], Awaitable[None]],
        bus: ChangeBus,
        source: Listener | None = None,
    ):
        self.backend = backend
        self._refresh = refresh
        self.bus = bus
        self._source = source
        self._failures: list[FailedWrite] = []
        self._writes = 0
        self._depth = 0

    # -- settlement ----------------------------------------------------------

    async def _attempt(self, operation: str, target: str, call: Callable[[], Awaitable[Any]]) -> Any:
        self._writes += 1
        try:
            return await call()
        except Exception as exc:
            logger.warning("%s %s failed: %s", operation, target, exc)
            self._failures.append(FailedWrite(operation, target, exc))
            return None

    async def _gather(self, calls: Sequence[Call]) -> list[Any]:
        results: list[Any] = [None] * len(calls)

        async def run(index: int, operation: str, target: str, call: Callable[[], Awaitable[Any]]) -> None:
            results[index] = await self._attempt(operation, target, call)

        async with anyio.create_task_group() as tg:
            for index, (operation, target, call) in enumerate(calls):
                tg.start_soon(run, index, operation, target, call)
        return results

    # -- primitives ----------------------------------------------------------

    def _create_call(self, draft: Assignment) -> Call:
        target = f"{draft.person_id}@{draft.day.isoformat()} {draft.item}"
        return ("create", target, lambda: self.backend.create_allocation(draft))

    def _delete_call(self, record: Assignment) -> Call:
        target = str(record.id)
        return ("delete", target, lambda: self.backend.delete_allocation(record.id))

    async def create_all(self, drafts: Sequence[Assignment]) -> list[Assignment]:
        results = await self._gather([self._create_call(d) for d in drafts])
        return [r for r in results if r is not None]

    async def delete_all(self, records: Sequence[Assignment]) -> bool:
        """Delete concurrently; True when every delete succeeded."""
        records = [r for r in records if r.id]
        before = len(self._failures)
        await self._gather([self._delete_call(r) for r in records])
        return len(self._failures) == before

    async def replace(self, existing: Sequence[Assignment], drafts: Sequence[Assignment]) -> list[Assignment]:
        """Delete-then-create for one cell. A failed delete skips the creates."""
        if not await self.delete_all(existing):
            return []
        if not drafts:
            return []
        return await self.create_all(drafts)

    async def move(self, record: Assignment, draft: Assignment) -> Assignment | None:
        before = len(self._failures)
        await self._attempt("delete", str(record.id), lambda: self.backend.delete_allocation(record.id))
        if len(self._failures) != before:
            return None
        operation, target, call = self._create_call(draft)
        return await self._attempt(operation, target, call)

    async def move_all(self, moves: Sequence[tuple[Assignment, Assignment]]) -> list[Assignment]:
        results: list[Assignment | None] = [None] * len(moves)

        async def run(index: int, record: Assignment, draft: Assignment) -> None:
            results[index] = await self.move(record, draft)

        async with anyio.create_task_group() as tg:
            for index, (record, draft) in enumerate(moves):
                tg.start_soon(run, index, record, draft)
        return [r for r in results if r is not None]

    async def run_concurrently(self, jobs: Sequence[Callable[[], Awaitable[Any]]]) -> None:
        """Run independent multi-step jobs (e.g. one per cell) side by side."""
        async with anyio.create_task_group() as tg:
            for job in jobs:
                tg.start_soon(job)

    # -- lifecycle -----------------------------------------------------------

    @asynccontextmanager
    async def mutation(self) -> AsyncIterator[GridSync]:
        """Group writes into one logical operation committed on exit.

        A cancelled operation is not committed here; its landed writes stay
        counted so the next outermost commit re-fetches.
        """
        self._depth += 1
        try:
            yield self
        except Exception:
            if self._depth == 1 and self._writes:
                try:
                    await self.commit()
                except WriteFailure as failure:
                    logger.warning("%s", failure)
            raise
        except BaseException:
            if self._depth == 1:
                self._failures = []
            raise
        else:
            if self._depth == 1:
                await self.commit()
        finally:
            self._depth -= 1

    async def commit(self) -> None:
        """Re-fetch and notify when anything was written, then surface failures."""
        failures, self._failures = self._failures, []
        writes, self._writes = self._writes, 0
        if writes:
            await self._refresh()
            await self.bus.publish(ALLOCATION_UPDATED, source=self._source)
        if failures:
            raise WriteFailure(failures)
