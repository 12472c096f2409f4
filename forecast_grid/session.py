"""Grid session: every piece of client-side grid state in one object.

A session is opened when a grid view mounts and closed when it unmounts::

    async with GridSession(backend, bus=bus, store=store) as session:
        session.selection.click(CellKey(person.id, 0))
        await session.write_cell(CellKey(person.id, 0), "SH010/SH020")

Components (selection, clipboard, drag-fill, bulk operations, saved views,
the concurrency adapter) are constructed by the session and read its
state, nothing is kept in module globals.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Mapping, Protocol, Sequence

from .aggregate import aggregate, is_weekend
from .backend import AllocationBackend
from .capacity import (
    UnknownItemsPolicy,
    ValidatedItem,
    abort_on_unknown,
    build_records,
    check_capacity,
    resolve_unknown,
    validate_items,
)
from .codec import decode, encode
from .models import Assignment, CellKey, DailyCell, Leave, Person
from .selection import SelectionModel
from .sync import ChangeBus, GridSync
from .views import FilterState, ViewManager, filter_members

logger = logging.getLogger(__name__)

WORKING_WEEKENDS_KEY = "workingWeekends"
COLUMN_WIDTHS_KEY = "columnWidths"
COLUMN_ORDER_KEY = "columnOrder"


class KeyValueStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class MemoryStore:
    def __init__(self, data: Mapping[str, Any] | None = None):
        self.data: dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value


class GridSession:
    def __init__(
        self,
        backend: AllocationBackend,
        *,
        bus: ChangeBus | None = None,
        store: KeyValueStore | None = None,
        filters: FilterState | None = None,
        on_unknown: UnknownItemsPolicy = abort_on_unknown,
    ):
        from .bulk import BulkEngine
        from .clipboard import Clipboard
        from .fill import FillPropagator

        self.backend = backend
        self.bus = bus or ChangeBus()
        self.store: KeyValueStore = store if store is not None else MemoryStore()
        self.filters = filters or FilterState()
        self.on_unknown = on_unknown

        self.members: list[Person] = []
        self.allocations: dict[str, list[Assignment]] = {}
        self.working_weekends: set[date] = set()
        self.column_widths: dict[str, int] = {}
        self.column_order: list[str] = []

        self.selection = SelectionModel(
            rows=lambda: [m.id for m in self.visible_members()],
            columns=lambda: len(self.dates),
        )
        self.sync = GridSync(backend, refresh=self.refresh, bus=self.bus, source=self._on_change)
        self.views = ViewManager(self)
        self.clipboard = Clipboard(self)
        self.fill = FillPropagator(self)
        self.bulk = BulkEngine(self)

        self._unsubscribe = None
        self.refresh_count = 0
        self.is_open = False

    # -- lifecycle -----------------------------------------------------------

    async def __aenter__(self) -> GridSession:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()

    async def open(self) -> None:
        self._load_local_settings()
        self._unsubscribe = self.bus.subscribe(self._on_change)
        await self.views.load()
        default = self.views.default_view()
        if default is not None:
            await self.views.apply(default)
        else:
            await self.refresh()
        self.is_open = True

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.selection.clear()
        self.clipboard.copied.clear()
        self.members = []
        self.allocations = {}
        self.is_open = False

    async def _on_change(self, event: str) -> None:
        logger.debug("sibling view changed (%s), re-fetching", event)
        await self.refresh()

    async def refresh(self) -> None:
        """Replace the snapshot with a fresh fetch of people and allocations."""
        f = self.filters
        members = await self.backend.list_members(
            department=None if f.department == "all" else f.department,
            shift=None if f.shift == "all" else f.shift,
        )
        rows = await self.backend.list_allocations(
            f.start_date, f.end_date, person_ids=[m.id for m in members]
        )
        by_person: dict[str, list[Assignment]] = {m.id: [] for m in members}
        for record in rows:
            by_person.setdefault(record.person_id, []).append(record)
            if record.is_work and record.kind.weekend_extra:
                self.working_weekends.add(record.day)
        self.members = members
        self.allocations = by_person
        self.refresh_count += 1

    # -- local settings ------------------------------------------------------

    def _load_local_settings(self) -> None:
        stored = self.store.get(WORKING_WEEKENDS_KEY) or []
        for value in stored:
            try:
                self.working_weekends.add(date.fromisoformat(str(value)[:10]))
            except ValueError:
                logger.warning("Failed to parse stored working weekend %r", value)
        self.column_widths = dict(self.store.get(COLUMN_WIDTHS_KEY) or {})
        self.column_order = list(self.store.get(COLUMN_ORDER_KEY) or [])

    def toggle_working_weekend(self, day: date) -> bool:
        """Flip the working flag of a weekend date; returns the new state."""
        if not is_weekend(day):
            raise ValueError(f"{day.isoformat()} is not a weekend day")
        if day in self.working_weekends:
            self.working_weekends.discard(day)
            working = False
        else:
            self.working_weekends.add(day)
            working = True
        self.store.set(WORKING_WEEKENDS_KEY, sorted(d.isoformat() for d in self.working_weekends))
        return working

    def set_column_width(self, column: str, width: int) -> None:
        self.column_widths[column] = int(width)
        self.store.set(COLUMN_WIDTHS_KEY, dict(self.column_widths))

    def set_column_order(self, columns: Sequence[str]) -> None:
        self.column_order = list(columns)
        self.store.set(COLUMN_ORDER_KEY, list(self.column_order))

    # -- reads ---------------------------------------------------------------

    @property
    def dates(self) -> list[date]:
        return self.filters.dates

    def day_at(self, index: int) -> date:
        dates = self.dates
        if not 0 <= index < len(dates):
            raise IndexError(f"day index {index} outside the visible range")
        return dates[index]

    def index_of(self, day: date) -> int:
        offset = (day - self.filters.start_date).days
        if not 0 <= offset < self.filters.date_range:
            raise ValueError(f"{day.isoformat()} is outside the visible range")
        return offset

    def member(self, person_id: str) -> Person:
        for m in self.members:
            if m.id == person_id:
                return m
        raise KeyError(f"unknown person: {person_id}")

    def visible_members(self) -> list[Person]:
        return filter_members(self.members, self.allocations, self.dates, self.filters)

    def cell(self, key: CellKey) -> DailyCell:
        return aggregate(
            key.person_id,
            self.allocations.get(key.person_id, ()),
            self.day_at(key.day_index),
            self.working_weekends,
        )

    def encoded(self, key: CellKey) -> str:
        return encode(self.cell(key).assignments)

    def all_allocations(self) -> list[Assignment]:
        return [a for rows in self.allocations.values() for a in rows]

    # -- writes --------------------------------------------------------------

    async def prepare_value(
        self, text: str, on_unknown: UnknownItemsPolicy | None = None
    ) -> list[ValidatedItem] | None:
        """Decode and validate a cell value once for any number of cells.

        Returns the accepted items (empty for a clearing write) or None when
        every named item was unknown and the caller kept the valid subset.
        """
        pairs = decode(text)
        if not pairs:
            return []
        check_capacity(pairs)
        outcome = await validate_items(pairs, self.backend)
        items = resolve_unknown(outcome, on_unknown or self.on_unknown)
        if not items:
            return None
        return items

    async def write_prepared(self, key: CellKey, items: list[ValidatedItem]) -> None:
        day = self.day_at(key.day_index)
        existing = list(self.cell(key).assignments)
        drafts = build_records(key.person_id, day, items, self.working_weekends)
        await self.sync.replace(existing, drafts)

    async def apply_value(
        self,
        cells: Iterable[CellKey],
        text: str,
        *,
        on_unknown: UnknownItemsPolicy | None = None,
    ) -> list[CellKey]:
        """Write the same value into every cell: decode, validate, replace.

        Capacity and unknown-item errors are raised before any write.
        """
        cells = list(cells)
        if not cells:
            return []
        items = await self.prepare_value(text, on_unknown)
        if items is None:
            return []
        async with self.sync.mutation():
            await self.sync.run_concurrently(
                [lambda k=k: self.write_prepared(k, items) for k in cells]
            )
        return cells

    async def write_cell(
        self, key: CellKey, text: str, *, on_unknown: UnknownItemsPolicy | None = None
    ) -> bool:
        return bool(await self.apply_value([key], text, on_unknown=on_unknown))

    async def clear_cells(self, cells: Iterable[CellKey]) -> list[CellKey]:
        return await self.apply_value(cells, "")

    async def mark_leave(self, cells: Iterable[CellKey]) -> list[CellKey]:
        cells = list(cells)

        async def one(key: CellKey) -> None:
            draft = Assignment(person_id=key.person_id, day=self.day_at(key.day_index), kind=Leave())
            await self.sync.replace(list(self.cell(key).assignments), [draft])

        async with self.sync.mutation():
            await self.sync.run_concurrently([lambda k=k: one(k) for k in cells])
        return cells

    async def delete_selected(self) -> list[CellKey]:
        cells = await self.clear_cells(self.selection.cells())
        self.selection.clear()
        return cells
