"""Bulk reassignment between people and week-pattern duplication.

Both operations describe their scope and ask for confirmation before any
write. Capacity of every receiving day is checked up-front; once writes
start there is no cross-day atomicity.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import TYPE_CHECKING, Callable, Iterable

from .aggregate import is_weekend, is_working_day
from .capacity import check_day_capacity
from .errors import OperationCancelled
from .models import Assignment, CellKey

if TYPE_CHECKING:
    from .session import GridSession

logger = logging.getLogger(__name__)

WEEK_DAYS = 7

Confirm = Callable[[str], bool]


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


class BulkEngine:
    def __init__(self, session: GridSession):
        self.session = session

    # -- reassign ------------------------------------------------------------

    def _plan_reassign(
        self, from_id: str, to_id: str, day_indices: Iterable[int]
    ) -> tuple[list[tuple[Assignment, Assignment]], str]:
        if from_id == to_id:
            raise ValueError("source and target person are the same")
        source = self.session.member(from_id)
        target = self.session.member(to_id)

        moves: list[tuple[Assignment, Assignment]] = []
        days: list[date] = []
        for index in sorted(set(day_indices)):
            day = self.session.day_at(index)
            records = list(self.session.cell(CellKey(from_id, index)).assignments)
            if not records:
                continue
            drafts = [r.as_draft(person_id=to_id) for r in records]
            existing = self.session.cell(CellKey(to_id, index)).assignments
            check_day_capacity(existing, drafts, label=f"{target.name} on {day.isoformat()}")
            moves.extend(zip(records, drafts))
            days.append(day)

        description = (
            f"Reassign {_plural(len(moves), 'allocation')} on {_plural(len(days), 'day')} "
            f"({', '.join(d.isoformat() for d in days)}) from {source.name} to {target.name}"
        )
        return moves, description

    def describe_reassign(self, from_id: str, to_id: str, day_indices: Iterable[int]) -> str:
        return self._plan_reassign(from_id, to_id, day_indices)[1]

    async def reassign(
        self, from_id: str, to_id: str, day_indices: Iterable[int], *, confirm: Confirm
    ) -> list[Assignment]:
        moves, description = self._plan_reassign(from_id, to_id, day_indices)
        if not moves:
            logger.info("reassign %s -> %s: nothing to move", from_id, to_id)
            return []
        if not confirm(description):
            raise OperationCancelled(description)
        logger.info("%s", description)
        async with self.session.sync.mutation() as sync:
            created = await sync.move_all(moves)
        return created

    # -- copy week -----------------------------------------------------------

    async def _plan_copy_week(
        self, person_id: str, source_start: date, target_start: date
    ) -> tuple[list[Assignment], str]:
        if source_start == target_start:
            raise ValueError("source and target week are the same")
        person = self.session.member(person_id)
        backend = self.session.backend
        last = timedelta(days=WEEK_DAYS - 1)
        source_rows = await backend.list_allocations(source_start, source_start + last, person_ids=[person_id])
        target_rows = await backend.list_allocations(target_start, target_start + last, person_ids=[person_id])

        drafts: list[Assignment] = []
        for offset in range(WEEK_DAYS):
            source_day = source_start + timedelta(days=offset)
            target_day = target_start + timedelta(days=offset)
            records = [r for r in source_rows if r.person_id == person_id and r.day == source_day]
            if not records:
                continue
            weekend_extra = is_weekend(target_day) and is_working_day(target_day, self.session.working_weekends)
            day_drafts = [r.as_draft(day=target_day).with_weekend_extra(weekend_extra) for r in records]
            existing = [r for r in target_rows if r.person_id == person_id and r.day == target_day]
            check_day_capacity(existing, day_drafts, label=f"{person.name} on {target_day.isoformat()}")
            drafts.extend(day_drafts)

        description = (
            f"Copy {_plural(len(drafts), 'allocation')} of {person.name} from the week of "
            f"{source_start.isoformat()} to the week of {target_start.isoformat()} "
            "(existing allocations are kept)"
        )
        return drafts, description

    async def describe_copy_week(self, person_id: str, source_start: date, target_start: date) -> str:
        return (await self._plan_copy_week(person_id, source_start, target_start))[1]

    async def copy_week(
        self, person_id: str, source_start: date, target_start: date, *, confirm: Confirm
    ) -> list[Assignment]:
        drafts, description = await self._plan_copy_week(person_id, source_start, target_start)
        if not drafts:
            logger.info("copy week for %s: source week is empty", person_id)
            return []
        if not confirm(description):
            raise OperationCancelled(description)
        logger.info("%s", description)
        async with self.session.sync.mutation() as sync:
            created = await sync.create_all(drafts)
        return created
