"""Drag-fill: copy one cell's value along its row."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .capacity import ValidatedItem
from .models import CellKey

if TYPE_CHECKING:
    from .session import GridSession

logger = logging.getLogger(__name__)


class FillPropagator:
    def __init__(self, session: GridSession):
        self.session = session
        self.source: CellKey | None = None
        self.value = ""
        self.filled: set[int] = set()
        self._items: list[ValidatedItem] | None = None

    @property
    def active(self) -> bool:
        return self.source is not None

    def begin(self, cell: CellKey) -> bool:
        """Grab the fill handle of the single selected cell.

        Returns False (and stays inactive) when the cell is not the sole
        selection or holds no work.
        """
        if self.session.selection.single() != cell:
            return False
        value = self.session.encoded(cell)
        if not value:
            return False
        self.source = cell
        self.value = value
        self.filled = set()
        self._items = None
        return True

    async def hover(self, cell: CellKey) -> list[CellKey]:
        """Fill every day between the source and the hovered column.

        Only the source person's row is written; each column is written at
        most once per gesture.
        """
        if self.source is None:
            return []
        lo, hi = sorted((self.source.day_index, cell.day_index))
        targets = [
            CellKey(self.source.person_id, di)
            for di in range(lo, hi + 1)
            if di != self.source.day_index and di not in self.filled
        ]
        if not targets:
            return []
        if self._items is None:
            self._items = await self.session.prepare_value(self.value) or []
        if not self._items:
            return []
        self.filled.update(k.day_index for k in targets)
        items = self._items
        await self.session.sync.run_concurrently(
            [lambda k=k: self.session.write_prepared(k, items) for k in targets]
        )
        return targets

    async def release(self) -> None:
        was_active = self.active
        self.source = None
        self.value = ""
        self.filled = set()
        self._items = None
        if was_active:
            await self.session.sync.commit()
