# codemaker/editor/markers.py
"""
Placement of the two position markers.

The left marker encodes the page key and sits bottom-left; the right marker
encodes the grid span ("{numX}x{numY}") and sits top-right. Both snap to a
grid of whole marker cells and must keep one empty cell between them.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from codemaker.core import geometry
from codemaker.core.geometry import LEFT, RIGHT, Rect
from codemaker.editor.document import DocumentState
from codemaker.editor.patterns import MarkerGenerator, Matrix
from codemaker.editor.scene import GroupPrimitive, RectPrimitive
from codemaker.editor.sync import Scheduler, SyncClient

logger = logging.getLogger(__name__)


@dataclass
class Marker:
    name: str
    x: float
    y: float
    cell: int
    margin: float
    text: str = ""
    pattern: Matrix = field(default_factory=list)
    # the identifier marker is blank (white) until the page key is known
    visible: bool = True

    @property
    def bbox(self) -> Rect:
        return Rect(self.x, self.y, self.cell, self.cell)

    @property
    def module_size(self) -> float:
        return geometry.module_size(len(self.pattern), self.margin)

    def to_primitive(self) -> GroupPrimitive:
        group = GroupPrimitive(name=f"{self.name}-marker")
        group.add(RectPrimitive(self.x, self.y, self.cell, self.cell, fill="#fff"))
        s = self.module_size
        colour = "#000" if self.visible else "#fff"
        for row, cells in enumerate(self.pattern):
            for col, dark in enumerate(cells):
                if dark:
                    group.add(
                        RectPrimitive(
                            self.x + self.margin + s * col,
                            self.y + self.margin + s * row,
                            s,
                            s,
                            fill=colour,
                        )
                    )
        return group


class MarkerPlacementController:
    def __init__(
        self,
        doc: DocumentState,
        generator: MarkerGenerator,
        sync: SyncClient,
        scheduler: Scheduler,
        margin: float = 2,
    ):
        self.doc = doc
        self.generator = generator
        self.sync = sync
        self.scheduler = scheduler
        self.margin = margin

        self.left: Optional[Marker] = None
        self.right: Optional[Marker] = None
        self.cell = 0

        # drag state
        self.selected: Optional[str] = None
        self._offset: Tuple[float, float] = (0, 0)
        self.safe_area: Optional[Rect] = None
        self.overlays_visible = False
        self.content_area: Optional[Rect] = None

    # ---- setup ----

    def _make_left(self) -> Marker:
        key = self.doc.page_key
        pattern = self.generator.matrix(key or "")
        self.cell = geometry.marker_cell_size(len(pattern), self.margin)
        return Marker(LEFT, 0, 0, self.cell, self.margin, key or "", pattern, visible=key is not None)

    def _make_right(self, num_x: int, num_y: int) -> Marker:
        text = geometry.dimension_code_text(num_x, num_y)
        pattern = self.generator.matrix(text)
        if len(pattern) != len(self.left.pattern):
            raise ValueError(
                f"marker patterns differ in size: {len(self.left.pattern)} vs {len(pattern)}"
            )
        return Marker(RIGHT, 0, 0, self.cell, self.margin, text, pattern)

    def place_initial(self) -> None:
        """Default positions for a new page, then ask the service to create it."""
        self.left = self._make_left()
        (lx, ly), (rx, ry) = geometry.default_marker_positions(self.doc.paper, self.cell)
        num_x, num_y = geometry.grid_counts(self.doc.paper, self.cell)
        self.right = self._make_right(num_x, num_y)
        self.left.x, self.left.y = lx, ly
        self.right.x, self.right.y = rx, ry
        self.update_content_area()

        self.sync.dispatch(
            {"new": True, **self.page_geometry()},
            on_result=lambda result: self.apply_page_key(result["pageKey"]),
        )

    def load_existing(self, left: Tuple[int, int], right: Tuple[int, int]) -> None:
        """
        Restore persisted positions.

        Raises:
            ValidationError: positions not whole cells apart
        """
        self.left = self._make_left()
        num_x, num_y = geometry.grid_counts_from_positions(left, right, self.cell)
        self.right = self._make_right(num_x, num_y)
        self.left.x, self.left.y = left
        self.right.x, self.right.y = right
        self.update_content_area()

    def page_geometry(self) -> dict:
        return {
            "width": self.doc.paper.width,
            "height": self.doc.paper.height,
            "leftCodeX": int(self.left.x),
            "leftCodeY": int(self.left.y),
            "rightCodeX": int(self.right.x),
            "rightCodeY": int(self.right.y),
        }

    @property
    def module_size(self) -> float:
        return self.left.module_size

    # ---- dragging ----

    def hit(self, x: float, y: float) -> Optional[str]:
        if self.left is not None and self.left.bbox.contains(x, y):
            return LEFT
        if self.right is not None and self.right.bbox.contains(x, y):
            return RIGHT
        return None

    def _marker(self, name: str) -> Marker:
        return self.left if name == LEFT else self.right

    def start_drag(self, x: float, y: float) -> Optional[str]:
        selected = self.hit(x, y)
        if selected is None:
            return None
        marker = self._marker(selected)
        other = self.right if selected == LEFT else self.left

        self.selected = selected
        self._offset = (x - marker.x, y - marker.y)
        self.safe_area = geometry.safe_area(selected, other.bbox, self.doc.paper, self.cell)
        self.overlays_visible = True
        return selected

    def drag(self, x: float, y: float) -> None:
        if self.selected is None:
            return
        nx = geometry.snap_to_cell(x - self._offset[0], self.cell)
        ny = geometry.snap_to_cell(y - self._offset[1], self.cell)
        marker = self._marker(self.selected)
        marker.x, marker.y = geometry.clamp_to_safe_area(nx, ny, self.safe_area, self.cell)

    def end_drag(self) -> None:
        if self.selected is None:
            return
        self.selected = None
        self.overlays_visible = False
        self.update_content_area()
        # keep pointer-up fast: the request and the new pattern happen later
        self.scheduler.call_soon(self._commit_positions)

    def _commit_positions(self) -> None:
        self.sync.dispatch({"update": self.doc.page_key, **self.page_geometry()})
        num_x, num_y = geometry.grid_counts_from_positions(
            (self.left.x, self.left.y), (self.right.x, self.right.y), self.cell
        )
        x, y = self.right.x, self.right.y
        self.right = self._make_right(num_x, num_y)
        self.right.x, self.right.y = x, y
        logger.debug(f"Dimension marker now encodes {self.right.text}")

    def update_content_area(self) -> None:
        self.content_area = geometry.content_area(self.left.bbox, self.right.bbox, self.cell)

    # ---- page key ----

    def apply_page_key(self, key: str) -> None:
        self.doc.page_key = key
        self.scheduler.call_soon(self._regenerate_left)

    def _regenerate_left(self) -> None:
        x, y = self.left.x, self.left.y
        self.left = self._make_left()
        self.left.x, self.left.y = x, y

    def to_primitives(self) -> List[GroupPrimitive]:
        return [self.left.to_primitive(), self.right.to_primitive()]
