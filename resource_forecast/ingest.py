"""Translate resource API payloads to grid records and back."""

from __future__ import annotations

import json
import logging
from typing import Any

from forecast_grid.models import (
    IDLE_LABEL,
    LEAVE_LABEL,
    MAX_DAILY_MD,
    Assignment,
    Idle,
    Leave,
    Person,
    SavedView,
    SavedViewDraft,
    Work,
)

from .utils import day_to_api, parse_day, parse_timestamp

logger = logging.getLogger(__name__)


def _to_float(value: Any, default: float = 0.0) -> float:
    if value is None or str(value).strip() == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def normalize_member(row: dict[str, Any]) -> Person | None:
    pid = row.get("id")
    if pid is None:
        return None
    return Person(
        id=str(pid),
        emp_id=_text(row.get("empId")),
        name=_text(row.get("empName")),
        designation=_text(row.get("designation")),
        department=_text(row.get("department")),
        shift=_text(row.get("shift")),
        reporting_to=_text(row.get("reportingTo")) or None,
        is_active=bool(row.get("isActive", True)),
    )


def normalize_allocation(row: dict[str, Any]) -> Assignment | None:
    day = parse_day(row.get("allocationDate"))
    person_id = row.get("resourceId")
    if day is None or person_id is None:
        logger.warning("skipping allocation without resource or date: %s", row.get("id"))
        return None

    is_leave = bool(row.get("isLeave"))
    is_idle = bool(row.get("isIdle"))
    if is_leave and is_idle:
        logger.warning("allocation %s flagged both leave and idle, treating as leave", row.get("id"))
    if is_leave:
        kind = Leave()
    elif is_idle:
        kind = Idle()
    else:
        kind = Work(
            item=_text(row.get("shotName")),
            group=_text(row.get("showName")),
            weight=_to_float(row.get("manDays")),
            weekend_extra=bool(row.get("isWeekendWorking")),
        )

    return Assignment(
        person_id=str(person_id),
        day=day,
        kind=kind,
        id=str(row["id"]) if row.get("id") is not None else None,
        created_by=row.get("createdBy"),
        created_at=parse_timestamp(row.get("createdDate")),
        updated_at=parse_timestamp(row.get("updatedDate")),
    )


def allocation_payload(draft: Assignment) -> dict[str, Any]:
    kind = draft.kind
    body: dict[str, Any] = {
        "resourceId": draft.person_id,
        "allocationDate": day_to_api(draft.day),
        "isLeave": isinstance(kind, Leave),
        "isIdle": isinstance(kind, Idle),
        "isWeekendWorking": False,
    }
    if isinstance(kind, Work):
        body.update(
            showName=kind.group,
            shotName=kind.item,
            manDays=kind.weight,
            isWeekendWorking=kind.weekend_extra,
        )
    elif isinstance(kind, Leave):
        body.update(showName=LEAVE_LABEL, shotName=LEAVE_LABEL, manDays=MAX_DAILY_MD)
    else:
        body.update(showName=IDLE_LABEL, shotName=IDLE_LABEL, manDays=0.0)
    return body


def normalize_saved_view(row: dict[str, Any]) -> SavedView:
    filters = row.get("filters")
    if not isinstance(filters, str):
        filters = json.dumps(filters or {})
    return SavedView(
        id=str(row["id"]),
        name=_text(row.get("name")),
        filters=filters,
        view_type=_text(row.get("viewType")) or "resource",
        is_public=bool(row.get("isPublic")),
        is_quick_filter=bool(row.get("isQuickFilter")),
        is_default=bool(row.get("isDefault")),
        created_by=row.get("createdBy"),
        created_at=parse_timestamp(row.get("createdAt")),
    )


def saved_view_payload(draft: SavedViewDraft) -> dict[str, Any]:
    return {
        "name": draft.name,
        "viewType": draft.view_type,
        "filters": draft.filters,
        "isPublic": draft.is_public,
        "isQuickFilter": draft.is_quick_filter,
        "isDefault": draft.is_default,
    }


_VIEW_FIELD_NAMES = {
    "name": "name",
    "filters": "filters",
    "is_public": "isPublic",
    "is_quick_filter": "isQuickFilter",
    "is_default": "isDefault",
}


def saved_view_changes(changes: dict[str, Any]) -> dict[str, Any]:
    body: dict[str, Any] = {}
    for key, value in changes.items():
        if key not in _VIEW_FIELD_NAMES:
            raise ValueError(f"Unknown saved view field: {key!r}")
        body[_VIEW_FIELD_NAMES[key]] = value
    return body
