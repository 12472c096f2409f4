"""Per-cell projection of a person's allocations."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Sequence

from .models import (
    MAX_DAILY_MD,
    Assignment,
    CellStatus,
    DailyCell,
    calendar_day,
)

SATURDAY = 5
SUNDAY = 6


def is_weekend(day: date) -> bool:
    return day.weekday() in (SATURDAY, SUNDAY)


def is_working_day(day: date, working_weekends: Iterable[date] = ()) -> bool:
    if not is_weekend(day):
        return True
    return day in set(working_weekends)


def cell_status(total: float) -> CellStatus:
    if total >= MAX_DAILY_MD:
        return CellStatus.FULL
    if total > 0:
        return CellStatus.PARTIAL
    return CellStatus.AVAILABLE


def aggregate(
    person_id: str,
    assignments: Iterable[Assignment],
    day: date,
    working_weekends: Iterable[date] = (),
) -> DailyCell:
    """Build the DailyCell for ``person_id`` on ``day``.

    ``assignments`` may hold records of other people and other days; only
    matching ones are kept. Days are compared by calendar date.
    """
    day = calendar_day(day)
    matching = tuple(
        a for a in assignments if a.person_id == person_id and calendar_day(a.day) == day
    )
    total = sum(a.weight for a in matching)
    return DailyCell(
        person_id=person_id,
        day=day,
        assignments=matching,
        total=total,
        status=cell_status(total),
        weekend_off=not is_working_day(day, working_weekends),
    )


def work_total(assignments: Iterable[Assignment]) -> float:
    """Sum of work weights, the quantity bounded by the daily ceiling."""
    return sum(a.weight for a in assignments if a.is_work)


def average_utilization(
    person_id: str,
    assignments: Sequence[Assignment],
    dates: Sequence[date],
) -> float:
    if not dates:
        return 0.0
    total = sum(aggregate(person_id, assignments, d).total for d in dates)
    return total / len(dates)
