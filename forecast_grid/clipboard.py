"""Copy/paste of encoded cell values."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from .models import CellKey

if TYPE_CHECKING:
    from .session import GridSession

logger = logging.getLogger(__name__)


class Clipboard:
    def __init__(self, session: GridSession):
        self.session = session
        self.copied: dict[CellKey, str] = {}

    def copy(self, cells: Iterable[CellKey] | None = None) -> dict[CellKey, str]:
        if cells is None:
            cells = self.session.selection.cells()
        self.copied = {cell: self.session.encoded(cell) for cell in cells}
        return dict(self.copied)

    async def paste(self, cells: Iterable[CellKey] | None = None) -> list[CellKey]:
        """Broadcast a single copied value onto every target cell.

        Positional multi-cell paste is not supported: copying more than one
        cell makes paste a no-op.
        """
        if cells is None:
            cells = self.session.selection.cells()
        cells = list(cells)
        if not self.copied or not cells:
            return []
        if len(self.copied) != 1:
            logger.warning("paste ignored: %d cells copied, only single-cell broadcast is supported", len(self.copied))
            return []
        value = next(iter(self.copied.values()))
        return await self.session.apply_value(cells, value)
