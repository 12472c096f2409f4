"""Daily capacity ceiling and work-item registry checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Callable, Iterable, Protocol, Sequence

from .aggregate import is_weekend, is_working_day, work_total
from .codec import Pair, total_weight
from .errors import CapacityExceeded, InvalidWeight, LeaveConflict, UnknownWorkItems
from .models import MAX_DAILY_MD, WEIGHT_EPSILON, Assignment, Work, WorkItemCheck

logger = logging.getLogger(__name__)


class WorkItemRegistry(Protocol):
    async def validate_work_item(self, name: str) -> WorkItemCheck: ...


class UnknownItemDecision(str, Enum):
    KEEP_VALID = "keep_valid"
    ABORT = "abort"


UnknownItemsPolicy = Callable[[list[str]], UnknownItemDecision]


def abort_on_unknown(names: list[str]) -> UnknownItemDecision:
    return UnknownItemDecision.ABORT


def keep_valid_items(names: list[str]) -> UnknownItemDecision:
    return UnknownItemDecision.KEEP_VALID


@dataclass(frozen=True)
class ValidatedItem:
    item: str
    weight: float
    group: str


@dataclass
class ValidationOutcome:
    valid: list[ValidatedItem] = field(default_factory=list)
    invalid: list[str] = field(default_factory=list)


def exceeds_ceiling(total: float) -> bool:
    return total > MAX_DAILY_MD + WEIGHT_EPSILON


def check_capacity(pairs: Sequence[Pair]) -> float:
    """Reject a cell value before anything is written; return its total.

    Each weight must lie in (0, 1.0] and the pairs together may not pass
    1.0 MD.
    """
    for name, weight in pairs:
        if weight <= 0 or exceeds_ceiling(weight):
            raise InvalidWeight(name, weight)
    total = total_weight(pairs)
    if exceeds_ceiling(total):
        raise CapacityExceeded(total)
    return total


async def validate_items(pairs: Sequence[Pair], registry: WorkItemRegistry) -> ValidationOutcome:
    outcome = ValidationOutcome()
    for name, weight in pairs:
        try:
            check = await registry.validate_work_item(name)
        except Exception:
            logger.exception("Error validating shot %s", name)
            outcome.invalid.append(name)
            continue
        if check.valid:
            outcome.valid.append(ValidatedItem(item=name, weight=weight, group=check.group or ""))
        else:
            outcome.invalid.append(name)
    return outcome


def resolve_unknown(outcome: ValidationOutcome, policy: UnknownItemsPolicy) -> list[ValidatedItem]:
    """Apply the caller's choice for unregistered names.

    Nothing is ever created for an unknown name: the caller either keeps the
    valid subset or the whole write is aborted.
    """
    if not outcome.invalid:
        return list(outcome.valid)
    decision = policy(list(outcome.invalid))
    if decision == UnknownItemDecision.ABORT:
        raise UnknownWorkItems(outcome.invalid)
    logger.info("skipping unknown shots: %s", ", ".join(outcome.invalid))
    return list(outcome.valid)


def build_records(
    person_id: str,
    day: date,
    items: Iterable[ValidatedItem],
    working_weekends: Iterable[date] = (),
) -> list[Assignment]:
    weekend_extra = is_weekend(day) and is_working_day(day, working_weekends)
    return [
        Assignment(
            person_id=person_id,
            day=day,
            kind=Work(item=v.item, weight=v.weight, group=v.group, weekend_extra=weekend_extra),
        )
        for v in items
    ]


def check_day_capacity(
    existing: Sequence[Assignment],
    incoming: Sequence[Assignment],
    *,
    label: str = "",
) -> None:
    """Guard an additive write of ``incoming`` onto a day holding ``existing``."""
    if not incoming:
        return
    combined = list(existing) + list(incoming)
    if any(a.is_leave for a in combined) and len(combined) > 1:
        raise LeaveConflict(label)
    total = work_total(combined)
    if exceeds_ceiling(total):
        raise CapacityExceeded(total, detail=label)
