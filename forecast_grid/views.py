"""Filter state, utilization buckets and saved views."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Sequence

from .aggregate import average_utilization
from .models import WEIGHT_EPSILON, Assignment, Person, SavedView, SavedViewDraft

if TYPE_CHECKING:
    from .session import GridSession

logger = logging.getLogger(__name__)

VIEW_TYPE = "resource"
DEFAULT_RANGE_DAYS = 30
ALL = "all"

# An average of exactly this many MD per day is "full": it matches neither
# the "partial" nor the "overallocated" filter.
FULL_UTILIZATION = 1.0

AVAILABLE = "available"
PARTIAL = "partial"
FULL = "full"
OVERALLOCATED = "overallocated"
UTILIZATION_FILTERS = (ALL, AVAILABLE, PARTIAL, FULL, OVERALLOCATED)


def utilization_bucket(average: float) -> str:
    if average <= 0:
        return AVAILABLE
    if abs(average - FULL_UTILIZATION) <= WEIGHT_EPSILON:
        return FULL
    if average < FULL_UTILIZATION:
        return PARTIAL
    return OVERALLOCATED


def _parse_start(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.warning("ignoring unparseable startDate %r", value)
        return None


@dataclass
class FilterState:
    start_date: date = field(default_factory=date.today)
    date_range: int = DEFAULT_RANGE_DAYS
    department: str = ALL
    shift: str = ALL
    show: str = ALL
    utilization: str = ALL
    search: str = ""

    @property
    def end_date(self) -> date:
        return self.start_date + timedelta(days=max(self.date_range, 1) - 1)

    @property
    def dates(self) -> list[date]:
        return [self.start_date + timedelta(days=i) for i in range(self.date_range)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "department": self.department,
            "shift": self.shift,
            "show": self.show,
            "utilization": self.utilization,
            "search": self.search,
            "startDate": self.start_date.isoformat(),
            "dateRange": self.date_range,
        }

    def merged(self, data: Mapping[str, Any]) -> FilterState:
        """Overwrite from a serialized snapshot.

        Missing selectors fall back to "all"; a missing start date or range
        keeps the current one.
        """
        start = _parse_start(data.get("startDate")) or self.start_date
        try:
            length = int(data.get("dateRange") or self.date_range)
        except (TypeError, ValueError):
            length = self.date_range
        utilization = data.get("utilization") or ALL
        if utilization not in UTILIZATION_FILTERS:
            utilization = ALL
        return replace(
            self,
            start_date=start,
            date_range=max(length, 1),
            department=data.get("department") or ALL,
            shift=data.get("shift") or ALL,
            show=data.get("show") or ALL,
            utilization=utilization,
            search=data.get("search") or "",
        )

    def navigate(self, days: int) -> FilterState:
        return replace(self, start_date=self.start_date + timedelta(days=days))


def filter_members(
    members: Sequence[Person],
    allocations: Mapping[str, Sequence[Assignment]],
    dates: Sequence[date],
    filters: FilterState,
) -> list[Person]:
    query = filters.search.strip().lower()
    result: list[Person] = []
    for member in members:
        rows = allocations.get(member.id, ())
        if query:
            matches = (
                query in member.name.lower()
                or query in member.emp_id.lower()
                or any(query in a.item.lower() for a in rows if a.is_work)
            )
            if not matches:
                continue
        if filters.show != ALL and not any(a.group == filters.show for a in rows):
            continue
        if filters.utilization != ALL:
            average = average_utilization(member.id, rows, dates)
            if utilization_bucket(average) != filters.utilization:
                continue
        result.append(member)
    return result


def available_shows(allocations: Iterable[Assignment]) -> list[str]:
    shows = {a.group for a in allocations if a.is_work and a.group and a.group != "Default"}
    return sorted(shows)


def departments(members: Iterable[Person]) -> list[str]:
    return [ALL, *sorted({m.department for m in members if m.department})]


class ViewManager:
    """Named filter presets of one session."""

    def __init__(self, session: GridSession):
        self.session = session
        self.views: list[SavedView] = []
        self.active_view_id: str | None = None

    async def load(self) -> list[SavedView]:
        self.views = await self.session.backend.list_saved_views(VIEW_TYPE)
        return self.views

    def find(self, view_id: str) -> SavedView:
        for view in self.views:
            if view.id == view_id:
                return view
        raise KeyError(f"saved view not found: {view_id}")

    def quick_filters(self) -> list[SavedView]:
        return [v for v in self.views if v.is_quick_filter]

    def default_view(self) -> SavedView | None:
        return next((v for v in self.views if v.is_default), None)

    async def save(self, name: str, *, is_public: bool = False, is_quick_filter: bool = False) -> SavedView:
        if not name or not name.strip():
            raise ValueError("view name is required")
        draft = SavedViewDraft(
            name=name.strip(),
            filters=self.session.filters.to_dict(),
            view_type=VIEW_TYPE,
            is_public=is_public,
            is_quick_filter=is_quick_filter,
        )
        view = await self.session.backend.create_saved_view(draft)
        await self.load()
        return view

    async def apply(self, view: SavedView | str) -> FilterState:
        if isinstance(view, str):
            view = self.find(view)
        try:
            data = json.loads(view.filters or "{}")
        except json.JSONDecodeError:
            logger.warning("saved view %s has unreadable filters", view.id)
            data = {}
        self.session.filters = self.session.filters.merged(data)
        self.active_view_id = view.id
        await self.session.refresh()
        return self.session.filters

    async def delete(self, view_id: str) -> None:
        await self.session.backend.delete_saved_view(view_id)
        if self.active_view_id == view_id:
            self.active_view_id = None
        await self.load()

    async def set_default(self, view_id: str | None) -> None:
        """Flag one view as default, clearing every other default."""
        for view in list(self.views):
            if view.is_default and view.id != view_id:
                await self.session.backend.update_saved_view(view.id, is_default=False)
        if view_id is not None:
            await self.session.backend.update_saved_view(view_id, is_default=True)
        await self.load()
