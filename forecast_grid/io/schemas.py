"""Column constants and value helpers for grid export."""

from __future__ import annotations

from datetime import date
from typing import Callable, Sequence

from forecast_grid.models import Person

# ---------------------------------------------------------------------------
# Identity columns: header -> accessor
# ---------------------------------------------------------------------------

IDENTITY_COLS: dict[str, Callable[[Person], str]] = {
    "ID": lambda p: p.emp_id,
    "Name": lambda p: p.name,
    "Designation": lambda p: p.designation,
    "Reporting": lambda p: p.reporting_to or "",
    "Dept": lambda p: p.department,
    "Shift": lambda p: p.shift,
}

TOTAL_LABEL = "TOTAL MD"


def ordered_identity_cols(order: Sequence[str] | None = None) -> list[str]:
    """Identity headers in the user's column order; unknown names are ignored."""
    known = list(IDENTITY_COLS)
    if not order:
        return known
    head = [c for c in order if c in IDENTITY_COLS]
    return head + [c for c in known if c not in head]


def day_label(d: date) -> str:
    """Short column label, e.g. ``Jan 6``."""
    return f"{d:%b} {d.day}"


def fmt_md(value: float) -> str:
    return f"{value:.2f}"


def export_filename(today: date, suffix: str = "csv") -> str:
    return f"resource-forecast-{today.isoformat()}.{suffix}"
