"""Export layer for the forecast grid.

Public API:
    grid_rows(session)          -- header + person rows + TOTAL MD row
    write_csv(session, target)  -- quoted CSV to a path or stream
    render_xlsx(session, path)  -- single-sheet workbook with status fills
"""

from .export import grid_rows, to_csv_text, write_csv
from .schemas import export_filename

__all__ = [
    "export_filename",
    "grid_rows",
    "render_xlsx",
    "to_csv_text",
    "write_csv",
]


# Lazy import for the optional heavy dependency (openpyxl).
def render_xlsx(*args, **kwargs):
    from .xlsx import render_xlsx as _fn
    return _fn(*args, **kwargs)
