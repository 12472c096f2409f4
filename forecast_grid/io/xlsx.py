"""Render the forecast grid to an XLSX workbook."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from forecast_grid.aggregate import aggregate
from forecast_grid.codec import encode
from forecast_grid.models import CellStatus

from .schemas import IDENTITY_COLS, TOTAL_LABEL, day_label, ordered_identity_cols

if TYPE_CHECKING:
    from forecast_grid.session import GridSession

_DEFAULT_DAY_WIDTH = 14
_DEFAULT_IDENTITY_WIDTH = 16


def _get_openpyxl():
    try:
        from openpyxl import Workbook
        from openpyxl.styles import Font, PatternFill
        from openpyxl.utils import get_column_letter
        return Workbook, Font, PatternFill, get_column_letter
    except ImportError as exc:
        raise ImportError("openpyxl is required for XLSX export: pip install openpyxl") from exc


def _fills(PatternFill):
    def solid(color: str):
        return PatternFill(start_color=color, end_color=color, fill_type="solid")

    return {
        "leave": solid("FECACA"),
        "weekend_off": solid("FCE7F3"),
        "weekend_working": solid("DBEAFE"),
        CellStatus.FULL: solid("DCFCE7"),
        CellStatus.PARTIAL: solid("FEF9C3"),
    }


def render_xlsx(session: GridSession, path: Path) -> Path:
    """Write one "Forecast" sheet: identity columns, one column per day, totals.

    Cells are tinted by status (leave, weekend off, full, partial). Column
    widths stored in the session are applied by header name.

    Returns the path to the written file.
    """
    Workbook, Font, PatternFill, get_column_letter = _get_openpyxl()
    fills = _fills(PatternFill)

    cols = ordered_identity_cols(session.column_order)
    dates = session.dates
    header = cols + [day_label(d) for d in dates]

    wb = Workbook()
    ws = wb.active
    ws.title = "Forecast"
    ws.append(header)

    header_font = Font(bold=True)
    header_fill = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill

    totals = [0.0] * len(dates)
    for member in session.members:
        records = session.allocations.get(member.id, [])
        cells = [aggregate(member.id, records, d, session.working_weekends) for d in dates]
        ws.append([IDENTITY_COLS[c](member) for c in cols] + [encode(c.assignments) for c in cells])
        row_idx = ws.max_row
        for i, daily in enumerate(cells):
            totals[i] += daily.total
            if daily.is_leave:
                fill = fills["leave"]
            elif daily.weekend_off:
                fill = fills["weekend_off"]
            else:
                fill = fills.get(daily.status)
                if fill is None and daily.day in session.working_weekends:
                    fill = fills["weekend_working"]
            if fill is not None:
                ws.cell(row=row_idx, column=len(cols) + i + 1).fill = fill

    ws.append([""] * (len(cols) - 1) + [TOTAL_LABEL] + [round(t, 2) for t in totals])
    for cell in ws[ws.max_row]:
        cell.font = header_font

    for idx, name in enumerate(header, 1):
        default = _DEFAULT_IDENTITY_WIDTH if idx <= len(cols) else _DEFAULT_DAY_WIDTH
        ws.column_dimensions[get_column_letter(idx)].width = session.column_widths.get(name, default)
    ws.freeze_panes = ws.cell(row=2, column=len(cols) + 1)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    return path
