"""CSV export of the forecast grid."""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from forecast_grid.codec import encode
from forecast_grid.aggregate import aggregate

from .schemas import IDENTITY_COLS, TOTAL_LABEL, day_label, fmt_md, ordered_identity_cols

if TYPE_CHECKING:
    from forecast_grid.session import GridSession


def grid_rows(session: GridSession) -> list[list[str]]:
    """Header, one row per fetched person, and the per-day totals row."""
    cols = ordered_identity_cols(session.column_order)
    dates = session.dates
    rows: list[list[str]] = [cols + [day_label(d) for d in dates]]
    totals = [0.0] * len(dates)

    for member in session.members:
        records = session.allocations.get(member.id, [])
        row = [IDENTITY_COLS[c](member) for c in cols]
        for i, d in enumerate(dates):
            cell = aggregate(member.id, records, d, session.working_weekends)
            row.append(encode(cell.assignments))
            totals[i] += cell.total
        rows.append(row)

    rows.append([""] * (len(cols) - 1) + [TOTAL_LABEL] + [fmt_md(t) for t in totals])
    return rows


def write_csv(session: GridSession, target: Path | TextIO) -> Path | None:
    """Write the grid as CSV with every field quoted.

    ``target`` is a path (returned after writing) or an open text stream.
    """
    rows = grid_rows(session)
    if isinstance(target, (str, Path)):
        path = Path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="") as fh:
            csv.writer(fh, quoting=csv.QUOTE_ALL, lineterminator="\n").writerows(rows)
        return path
    csv.writer(target, quoting=csv.QUOTE_ALL, lineterminator="\n").writerows(rows)
    return None


def to_csv_text(session: GridSession) -> str:
    buf = io.StringIO()
    write_csv(session, buf)
    return buf.getvalue()
