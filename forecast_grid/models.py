"""Domain records shared by every grid component."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import NamedTuple, Union

MAX_DAILY_MD = 1.0
WEIGHT_EPSILON = 1e-9

LEAVE_LABEL = "Leave"
IDLE_LABEL = "Idle"


def calendar_day(value: date | datetime) -> date:
    """Reduce a timestamp to its calendar date."""
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class Person:
    id: str
    emp_id: str
    name: str
    designation: str = ""
    department: str = ""
    shift: str = ""
    reporting_to: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class Work:
    item: str
    weight: float
    group: str = ""
    weekend_extra: bool = False


@dataclass(frozen=True)
class Leave:
    weight = MAX_DAILY_MD


@dataclass(frozen=True)
class Idle:
    weight = 0.0


AssignmentKind = Union[Work, Leave, Idle]


@dataclass(frozen=True)
class Assignment:
    person_id: str
    day: date
    kind: AssignmentKind
    id: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def weight(self) -> float:
        return self.kind.weight

    @property
    def is_work(self) -> bool:
        return isinstance(self.kind, Work)

    @property
    def is_leave(self) -> bool:
        return isinstance(self.kind, Leave)

    @property
    def is_idle(self) -> bool:
        return isinstance(self.kind, Idle)

    @property
    def item(self) -> str:
        if isinstance(self.kind, Work):
            return self.kind.item
        return LEAVE_LABEL if self.is_leave else IDLE_LABEL

    @property
    def group(self) -> str:
        if isinstance(self.kind, Work):
            return self.kind.group
        return LEAVE_LABEL if self.is_leave else IDLE_LABEL

    def as_draft(self, *, person_id: str | None = None, day: date | None = None) -> Assignment:
        """Copy without identity or audit fields, optionally moved."""
        return Assignment(
            person_id=person_id if person_id is not None else self.person_id,
            day=day if day is not None else self.day,
            kind=self.kind,
        )

    def with_weekend_extra(self, flag: bool) -> Assignment:
        if not isinstance(self.kind, Work) or self.kind.weekend_extra == flag:
            return self
        return replace(self, kind=replace(self.kind, weekend_extra=flag))


class CellStatus(str, Enum):
    AVAILABLE = "available"
    PARTIAL = "partial"
    FULL = "full"


@dataclass(frozen=True)
class DailyCell:
    person_id: str
    day: date
    assignments: tuple[Assignment, ...]
    total: float
    status: CellStatus
    weekend_off: bool = False

    @property
    def is_leave(self) -> bool:
        return any(a.is_leave for a in self.assignments)

    @property
    def is_empty(self) -> bool:
        return not self.assignments


class CellKey(NamedTuple):
    person_id: str
    day_index: int


@dataclass(frozen=True)
class WorkItemCheck:
    valid: bool
    group: str | None = None


@dataclass
class SavedView:
    id: str
    name: str
    filters: str
    view_type: str = "resource"
    is_public: bool = False
    is_quick_filter: bool = False
    is_default: bool = False
    created_by: str | None = None
    created_at: datetime | None = None


@dataclass
class SavedViewDraft:
    name: str
    filters: dict
    view_type: str = "resource"
    is_public: bool = False
    is_quick_filter: bool = False
    is_default: bool = False
