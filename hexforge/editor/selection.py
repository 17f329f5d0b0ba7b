"""
Selection model shared by the Select and Magic tools.

Holds the set of selected hex ids, the anchor used for shift-click range
selection, and the drag origin plus pre-drag snapshot used for live
shift-drag rectangles.
"""

from typing import Iterable, Optional

from hexforge.data_models import HexCoord
from hexforge.hex_grid.hex_coords import rect_ids


class SelectionModel:
    """Selected hex ids plus the anchors that drive range selection."""

    def __init__(self):
        self._selected: set[str] = set()
        self.anchor: Optional[HexCoord] = None
        self.drag_origin: Optional[HexCoord] = None
        self._drag_snapshot: frozenset[str] = frozenset()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(self._selected)

    def __contains__(self, hex_id: object) -> bool:
        return hex_id in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    def __iter__(self):
        return iter(sorted(self._selected))

    def is_empty(self) -> bool:
        return not self._selected

    # -------------------------------------------------------------------------
    # Press gestures
    # -------------------------------------------------------------------------

    def click(self, target: HexCoord) -> None:
        """Plain click: select only the target."""
        self._selected = {target.hex_id}
        self.anchor = target

    def shift_click(self, target: HexCoord) -> None:
        """
        Add the inclusive rectangle between the anchor and the target.

        Without an anchor this behaves like a plain click. The anchor itself
        is left where it was so consecutive shift-clicks extend from it.
        """
        if self.anchor is None:
            self.click(target)
            return
        self._selected |= rect_ids(self.anchor, target)

    def toggle(self, target: HexCoord) -> None:
        """Ctrl/meta click: flip membership of the target."""
        self._selected ^= {target.hex_id}
        self.anchor = target

    # -------------------------------------------------------------------------
    # Drag gestures
    # -------------------------------------------------------------------------

    def begin_drag(self, origin: HexCoord) -> None:
        """Capture the selection and origin at pointer-down."""
        self._drag_snapshot = frozenset(self._selected)
        self.drag_origin = origin

    def drag_to(self, target: HexCoord, shift: bool = False) -> None:
        """
        Extend the selection while the pointer is held.

        With shift and a captured origin the selection is rebuilt as the
        pre-drag snapshot plus the rectangle origin..target, so shrinking the
        drag shrinks the rectangle. Otherwise the target is simply added.
        """
        if shift and self.drag_origin is not None:
            self._selected = set(self._drag_snapshot) | rect_ids(self.drag_origin, target)
            return
        self._selected.add(target.hex_id)
        self.anchor = target

    def end_drag(self) -> None:
        self.drag_origin = None
        self._drag_snapshot = frozenset()

    # -------------------------------------------------------------------------
    # Bulk
    # -------------------------------------------------------------------------

    def clear(self) -> None:
        """Empty the selection and forget the anchor."""
        self._selected = set()
        self.anchor = None
        self.end_drag()

    def replace(self, hex_ids: Iterable[str]) -> None:
        self._selected = set(hex_ids)
