"""Tests for copy and broadcast paste."""

from datetime import date

import pytest

from forecast_grid.errors import UnknownWorkItems
from forecast_grid.models import CellKey

pytestmark = pytest.mark.anyio

MON = date(2025, 1, 6)


class TestCopy:
    async def test_copies_encoded_values_of_selection(self, make_session):
        session = await make_session()
        await session.write_cell(CellKey("p1", 0), "SH010:0.25/SH020:0.75")
        session.selection.click(CellKey("p1", 0))
        session.selection.toggle(CellKey("p1", 1))
        copied = session.clipboard.copy()
        assert copied == {CellKey("p1", 0): "SH010:0.25/SH020:0.75", CellKey("p1", 1): ""}


class TestPaste:
    async def test_single_value_is_broadcast(self, make_session, backend):
        session = await make_session()
        await session.write_cell(CellKey("p1", 0), "SH010/SH020")
        session.clipboard.copy([CellKey("p1", 0)])

        session.selection.press(CellKey("p2", 1))
        session.selection.drag_to(CellKey("p3", 2))
        pasted = await session.clipboard.paste()
        assert len(pasted) == 4
        for key in pasted:
            assert session.encoded(key) == "SH010/SH020"

    async def test_multi_cell_copy_is_not_pasted(self, make_session, backend):
        session = await make_session()
        await session.apply_value([CellKey("p1", 0), CellKey("p1", 1)], "SH010")
        session.clipboard.copy([CellKey("p1", 0), CellKey("p1", 1)])
        assert await session.clipboard.paste([CellKey("p2", 0)]) == []
        assert backend.on_day("p2", MON) == []

    async def test_nothing_copied(self, make_session):
        session = await make_session()
        assert await session.clipboard.paste([CellKey("p2", 0)]) == []

    async def test_paste_revalidates(self, make_session, backend):
        session = await make_session()
        await session.write_cell(CellKey("p1", 0), "SH010")
        session.clipboard.copy([CellKey("p1", 0)])
        backend.work_items.pop("SH010")
        with pytest.raises(UnknownWorkItems):
            await session.clipboard.paste([CellKey("p2", 0)])
        assert backend.on_day("p2", MON) == []
