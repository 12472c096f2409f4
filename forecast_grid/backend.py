"""Collaborator protocol and an in-memory implementation.

The grid never owns people or allocations; it reads a snapshot through
an ``AllocationBackend`` and mutates it with create/delete calls only.
``InMemoryBackend`` applies the same rules as the resource API (1.0 MD
ceiling per person-day, show/shot required for work) and is what the
test-suite and offline runs use.
"""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from itertools import count
from typing import Any, Iterable, Mapping, Protocol
from uuid import uuid4

from .capacity import check_day_capacity
from .errors import BackendError, CapacityExceeded
from .models import (
    MAX_DAILY_MD,
    Assignment,
    Person,
    SavedView,
    SavedViewDraft,
    Work,
    WorkItemCheck,
)

UTC = timezone.utc

VIEW_FIELDS = ("name", "filters", "is_public", "is_quick_filter", "is_default")


class AllocationBackend(Protocol):
    async def list_members(
        self, *, department: str | None = None, shift: str | None = None
    ) -> list[Person]: ...

    async def list_allocations(
        self, start: date, end: date, *, person_ids: Iterable[str] | None = None
    ) -> list[Assignment]: ...

    async def create_allocation(self, draft: Assignment) -> Assignment: ...

    async def delete_allocation(self, allocation_id: str) -> None: ...

    async def validate_work_item(self, name: str) -> WorkItemCheck: ...

    async def list_saved_views(self, view_type: str = "resource") -> list[SavedView]: ...

    async def create_saved_view(self, draft: SavedViewDraft) -> SavedView: ...

    async def update_saved_view(self, view_id: str, **changes: Any) -> SavedView: ...

    async def delete_saved_view(self, view_id: str) -> None: ...


class InMemoryBackend:
    def __init__(
        self,
        members: Iterable[Person] = (),
        *,
        work_items: Mapping[str, str] | None = None,
        user: str = "coordinator",
    ):
        self.members: list[Person] = list(members)
        self.work_items: dict[str, str] = dict(work_items or {})
        self.user = user
        self.allocations: dict[str, Assignment] = {}
        self.views: dict[str, SavedView] = {}
        self._view_order: dict[str, int] = {}
        self._seq = count()

    # -- reads ---------------------------------------------------------------

    async def list_members(
        self, *, department: str | None = None, shift: str | None = None
    ) -> list[Person]:
        rows = self.members
        if department and department != "all":
            rows = [m for m in rows if m.department == department]
        if shift and shift != "all":
            rows = [m for m in rows if m.shift == shift]
        return list(rows)

    async def list_allocations(
        self, start: date, end: date, *, person_ids: Iterable[str] | None = None
    ) -> list[Assignment]:
        wanted = set(person_ids) if person_ids is not None else None
        rows = [
            a
            for a in self.allocations.values()
            if start <= a.day <= end and (wanted is None or a.person_id in wanted)
        ]
        rows.sort(key=lambda a: (a.day, a.person_id))
        return rows

    def on_day(self, person_id: str, day: date) -> list[Assignment]:
        return [a for a in self.allocations.values() if a.person_id == person_id and a.day == day]

    async def validate_work_item(self, name: str) -> WorkItemCheck:
        group = self.work_items.get(name)
        if group is None:
            return WorkItemCheck(valid=False)
        return WorkItemCheck(valid=True, group=group)

    # -- writes --------------------------------------------------------------

    async def create_allocation(self, draft: Assignment) -> Assignment:
        kind = draft.kind
        if isinstance(kind, Work):
            if not kind.item or not kind.group:
                raise BackendError("Show Name and Shot Name are required for active allocations", status_code=400)
            if kind.weight < 0 or kind.weight > MAX_DAILY_MD:
                raise BackendError("Man Days must be between 0 and 1.0", status_code=400)
        try:
            check_day_capacity(self.on_day(draft.person_id, draft.day), [draft])
        except CapacityExceeded as exc:
            raise BackendError(str(exc), status_code=400) from exc

        now = datetime.now(UTC)
        record = Assignment(
            person_id=draft.person_id,
            day=draft.day,
            kind=kind,
            id=uuid4().hex[:12],
            created_by=self.user,
            created_at=now,
            updated_at=now,
        )
        self.allocations[record.id] = record
        return record

    async def delete_allocation(self, allocation_id: str) -> None:
        if self.allocations.pop(allocation_id, None) is None:
            raise BackendError(f"Allocation {allocation_id} not found", status_code=404)

    # -- saved views ---------------------------------------------------------

    async def list_saved_views(self, view_type: str = "resource") -> list[SavedView]:
        rows = [v for v in self.views.values() if v.view_type == view_type]
        rows.sort(key=lambda v: (not v.is_quick_filter, -self._view_order[v.id]))
        return rows

    async def create_saved_view(self, draft: SavedViewDraft) -> SavedView:
        if not draft.name:
            raise BackendError("Name and filters are required", status_code=400)
        view = SavedView(
            id=f"view-{uuid4().hex[:12]}",
            name=draft.name,
            filters=json.dumps(draft.filters),
            view_type=draft.view_type,
            is_public=draft.is_public,
            is_quick_filter=draft.is_quick_filter,
            is_default=draft.is_default,
            created_by=self.user,
            created_at=datetime.now(UTC),
        )
        self.views[view.id] = view
        self._view_order[view.id] = next(self._seq)
        return view

    async def update_saved_view(self, view_id: str, **changes: Any) -> SavedView:
        view = self.views.get(view_id)
        if view is None:
            raise BackendError("Not found or unauthorized", status_code=404)
        for key, value in changes.items():
            if key not in VIEW_FIELDS:
                raise ValueError(f"Unknown saved view field: {key!r}")
            if key == "filters" and not isinstance(value, str):
                value = json.dumps(value)
            setattr(view, key, value)
        return view

    async def delete_saved_view(self, view_id: str) -> None:
        if self.views.pop(view_id, None) is None:
            raise BackendError("Not found or unauthorized", status_code=404)
        self._view_order.pop(view_id, None)
