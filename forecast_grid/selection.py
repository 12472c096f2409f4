"""Cell selection: point, toggle, shift-range and drag-rectangle gestures."""

from __future__ import annotations

from typing import Callable, Iterable, Sequence

from .models import CellKey

# key name -> (row step, column step)
_NAVIGATION = {
    "Enter": (1, 0),
    "Tab": (0, 1),
    "ArrowUp": (-1, 0),
    "ArrowDown": (1, 0),
    "ArrowLeft": (0, -1),
    "ArrowRight": (0, 1),
}


class SelectionModel:
    """Selected cells of one grid session.

    ``rows`` returns the person ids in display order and ``columns`` the
    number of visible day columns; both are read on every gesture so that
    filtering or paging the grid is picked up immediately.
    """

    def __init__(self, rows: Callable[[], Sequence[str]], columns: Callable[[], int]):
        self._rows = rows
        self._columns = columns
        self.selected: set[CellKey] = set()
        self.anchor: CellKey | None = None
        self.drag_origin: CellKey | None = None
        self.context_cells: list[CellKey] | None = None

    def __contains__(self, cell: object) -> bool:
        return cell in self.selected

    def __len__(self) -> int:
        return len(self.selected)

    @property
    def is_dragging(self) -> bool:
        return self.drag_origin is not None

    def cells(self) -> list[CellKey]:
        """Selected cells in display order (row, then day)."""
        order = {pid: i for i, pid in enumerate(self._rows())}
        return sorted(self.selected, key=lambda c: (order.get(c.person_id, len(order)), c.day_index))

    def single(self) -> CellKey | None:
        if len(self.selected) == 1:
            return next(iter(self.selected))
        return None

    # -- gestures ------------------------------------------------------------

    def click(self, cell: CellKey) -> None:
        if self.selected == {cell}:
            self.selected = set()
        else:
            self.selected = {cell}
        self.anchor = cell

    def toggle(self, cell: CellKey) -> None:
        if cell in self.selected:
            self.selected.discard(cell)
        else:
            self.selected.add(cell)
        self.anchor = cell

    def extend(self, cell: CellKey) -> None:
        if self.anchor is None:
            self.click(cell)
            return
        self.selected |= self.span(self.anchor, cell)

    def press(self, cell: CellKey) -> None:
        self.click(cell)
        self.drag_origin = cell

    def drag_to(self, cell: CellKey) -> None:
        if self.drag_origin is None:
            return
        self.selected = self.span(self.drag_origin, cell)

    def release(self) -> None:
        self.drag_origin = None

    def clear(self) -> None:
        self.selected = set()
        self.drag_origin = None
        self.context_cells = None

    def replace(self, cells: Iterable[CellKey]) -> None:
        self.selected = set(cells)

    def open_context_menu(self) -> list[CellKey] | None:
        if not self.selected:
            return None
        self.context_cells = self.cells()
        return self.context_cells

    def close_context_menu(self) -> None:
        self.context_cells = None

    # -- geometry ------------------------------------------------------------

    def span(self, a: CellKey, b: CellKey) -> set[CellKey]:
        """Inclusive rectangle between two cells.

        Cells of the same person give a run of days; cells in the same day
        column give a run of people. A person that is no longer visible
        collapses the span to the two end cells' own rows.
        """
        rows = list(self._rows())
        try:
            r0 = rows.index(a.person_id)
            r1 = rows.index(b.person_id)
        except ValueError:
            people = [a.person_id] if a.person_id == b.person_id else [a.person_id, b.person_id]
        else:
            people = rows[min(r0, r1) : max(r0, r1) + 1]
        d0, d1 = sorted((a.day_index, b.day_index))
        return {CellKey(pid, di) for pid in people for di in range(d0, d1 + 1)}

    def neighbour(self, cell: CellKey, key: str, *, shift: bool = False) -> CellKey:
        """Cell reached from ``cell`` by an editing navigation key."""
        step = _NAVIGATION.get(key)
        if step is None:
            return cell
        dr, dc = step
        if shift and key in ("Enter", "Tab"):
            dr, dc = -dr, -dc
        rows = list(self._rows())
        if not rows:
            return cell
        try:
            r = rows.index(cell.person_id)
        except ValueError:
            return cell
        r = min(max(r + dr, 0), len(rows) - 1)
        c = min(max(cell.day_index + dc, 0), max(self._columns() - 1, 0))
        return CellKey(rows[r], c)
