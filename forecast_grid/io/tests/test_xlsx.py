"""Tests for XLSX rendering."""

from __future__ import annotations

import openpyxl
import pytest

from forecast_grid.io import render_xlsx
from forecast_grid.models import CellKey

pytestmark = pytest.mark.anyio


class TestRenderXlsx:
    async def test_sheet_layout(self, make_session, tmp_path):
        session = await make_session(date_range=7)
        await session.write_cell(CellKey("p1", 0), "SH010:0.5")
        await session.mark_leave([CellKey("p2", 1)])
        session.set_column_width("Name", 30)

        path = render_xlsx(session, tmp_path / "forecast.xlsx")
        ws = openpyxl.load_workbook(path)["Forecast"]

        assert ws.cell(row=1, column=1).value == "ID"
        assert ws.cell(row=1, column=7).value == "Jan 6"
        assert ws.cell(row=2, column=7).value == "SH010:0.5"
        assert ws.cell(row=5, column=6).value == "TOTAL MD"
        assert ws.cell(row=5, column=7).value == 0.5
        assert ws.column_dimensions["B"].width == 30
        assert ws.freeze_panes == "G2"

    async def test_status_fills(self, make_session, tmp_path):
        session = await make_session(date_range=7)
        await session.write_cell(CellKey("p1", 0), "SH010")
        await session.mark_leave([CellKey("p2", 0)])

        ws = openpyxl.load_workbook(render_xlsx(session, tmp_path / "f.xlsx"))["Forecast"]
        assert ws.cell(row=2, column=7).fill.start_color.rgb.endswith("DCFCE7")
        assert ws.cell(row=3, column=7).fill.start_color.rgb.endswith("FECACA")
        # Saturday, not a working weekend
        assert ws.cell(row=2, column=12).fill.start_color.rgb.endswith("FCE7F3")
