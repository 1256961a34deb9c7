# codemaker/editor/annotations.py
"""
Annotation layers: tick boxes (checkbox pages) and audio areas (audio pages).

Tick box coordinates are the top-left of the box in page mm; the service
stores and echoes centres, so every request converts with the box size.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from codemaker.core.geometry import Rect, clamp_box, round_half_up
from codemaker.core.validation import parse_quantity
from codemaker.editor.document import DocumentState
from codemaker.editor.identity import BoxAck, ConfirmedId, EntityId, PendingId, reconcile
from codemaker.editor.scene import GroupPrimitive, RectPrimitive
from codemaker.editor.sync import SyncClient

logger = logging.getLogger(__name__)

STROKE_COLOUR = "#000"
SELECTED_STROKE_COLOUR = "#0096ff"


@dataclass(eq=False)
class EditorTickBox:
    identity: EntityId
    x: float
    y: float
    size: float
    description: str = ""
    quantity: int = 1
    highlighted: bool = False
    has_moved: bool = False
    # description/quantity edited before the id arrived
    details_pending: bool = False
    drag_offset: Tuple[float, float] = (0, 0)

    @property
    def bbox(self) -> Rect:
        return Rect(self.x, self.y, self.size, self.size)

    @property
    def center(self) -> Tuple[float, float]:
        return self.bbox.center

    @property
    def rounded_center(self) -> Tuple[int, int]:
        cx, cy = self.center
        return round_half_up(cx), round_half_up(cy)

    @property
    def is_confirmed(self) -> bool:
        return isinstance(self.identity, ConfirmedId)

    @property
    def box_id(self) -> Optional[int]:
        return self.identity.id if isinstance(self.identity, ConfirmedId) else None


class SnapGrid:
    """De-duplicated x and y values of all box corners, in insertion order."""

    def __init__(self):
        self.xs: List[float] = []
        self.ys: List[float] = []

    def rebuild(self, boxes: List[EditorTickBox]) -> None:
        self.xs, self.ys = [], []
        for box in boxes:
            if box.x not in self.xs:
                self.xs.append(box.x)
            if box.y not in self.ys:
                self.ys.append(box.y)

    @staticmethod
    def _snap(value: float, candidates: List[float], threshold: float) -> float:
        for near in candidates:
            if abs(value - near) < threshold:
                return near
        return value

    def snap(self, x: float, y: float, threshold: float) -> Tuple[float, float]:
        return self._snap(x, self.xs, threshold), self._snap(y, self.ys, threshold)


class TickBoxLayer:
    def __init__(
        self,
        doc: DocumentState,
        sync: SyncClient,
        size: float,
        stroke_width: float = 0.5,
        snap_distance: float = 3.0,
    ):
        self.doc = doc
        self.sync = sync
        self.size = size
        self.stroke_width = stroke_width
        self.snap_distance = snap_distance
        self.boxes: List[EditorTickBox] = []
        self.snap_grid = SnapGrid()
        self._next_temp_id = 1

    # ---- geometry helpers ----

    def _clamp(self, x: float, y: float) -> Tuple[float, float]:
        paper = self.doc.paper
        return (
            clamp_box(x, self.size, paper.width, self.stroke_width),
            clamp_box(y, self.size, paper.height, self.stroke_width),
        )

    def _update_params(self, box: EditorTickBox, **extra: Any) -> Dict[str, Any]:
        cx, cy = box.rounded_center
        return {"updatebox": box.box_id, "x": cx, "y": cy, **extra, "page": self.doc.page_key}

    def find(self, x: float, y: float) -> Optional[EditorTickBox]:
        """Topmost box under the point."""
        for box in reversed(self.boxes):
            if box.bbox.contains(x, y):
                return box
        return None

    def find_pending(self, temp_id: int) -> Optional[EditorTickBox]:
        for box in self.boxes:
            if box.identity == PendingId(temp_id):
                return box
        return None

    # ---- structure ----

    def add(
        self,
        cx: float,
        cy: float,
        identity: EntityId,
        description: str = "",
        quantity: int = 1,
    ) -> EditorTickBox:
        """Place a box centred on (cx, cy), kept fully on the paper. Local only."""
        x, y = self._clamp(cx - self.size / 2, cy - self.size / 2)
        box = EditorTickBox(
            identity=identity,
            x=x,
            y=y,
            size=self.size,
            description=description,
            quantity=quantity,
        )
        self.boxes.append(box)
        self.snap_grid.rebuild(self.boxes)
        return box

    def create(self, cx: int, cy: int) -> EditorTickBox:
        """Interactive creation: add locally, then ask the service for an id."""
        temp_id = self._next_temp_id
        self._next_temp_id += 1
        box = self.add(cx, cy, identity=PendingId(temp_id))
        self.sync.dispatch(
            {"newbox": True, "x": cx, "y": cy, "page": self.doc.page_key, "tempId": temp_id},
            on_result=self.reconcile_ack,
        )
        return box

    def remove(self, box: EditorTickBox) -> bool:
        if not box.is_confirmed:
            return False
        self.sync.dispatch({"deletebox": box.box_id, "page": self.doc.page_key})
        self.boxes.remove(box)
        self.snap_grid.rebuild(self.boxes)
        return True

    # ---- dragging ----

    def start_drag(self, box: EditorTickBox, px: float, py: float) -> None:
        box.drag_offset = (px - box.x, py - box.y)
        box.has_moved = False
        self.highlight(box)

    def drag(self, box: EditorTickBox, px: float, py: float) -> None:
        x = px - box.drag_offset[0]
        y = py - box.drag_offset[1]
        box.has_moved = True
        x, y = self.snap_grid.snap(x, y, self.snap_distance)
        box.x, box.y = self._clamp(x, y)

    def end_drag(self, box: EditorTickBox) -> None:
        self.snap_grid.rebuild(self.boxes)
        # unconfirmed boxes are corrected when their id arrives
        if box.is_confirmed and box.has_moved:
            self.sync.dispatch(self._update_params(box))
        box.has_moved = False

    def nudge(self, box: EditorTickBox, dx: int, dy: int) -> bool:
        before = box.center
        box.x, box.y = self._clamp(box.x + dx, box.y + dy)
        if box.center == before:
            return False
        self.snap_grid.rebuild(self.boxes)
        self.sync.dispatch(self._update_params(box))
        return True

    # ---- details ----

    def edit(self, box: EditorTickBox, description: str, quantity: Any) -> bool:
        qty = parse_quantity(quantity, default=1)
        if description == box.description and qty == box.quantity:
            return False
        box.description = description
        box.quantity = qty
        if not box.is_confirmed:
            box.details_pending = True
            return True
        self.sync.dispatch(self._update_params(box, description=description, quantity=qty))
        return True

    # ---- identity ----

    def reconcile_ack(self, payload: Dict[str, Any]) -> None:
        ack = BoxAck.from_payload(payload)
        box = self.find_pending(ack.temp_id)
        if box is None:
            logger.warning(f"No pending tick box for temp id {ack.temp_id}")
            return
        box.identity, correction = reconcile(box.identity, ack, box.rounded_center)
        if box.details_pending:
            box.details_pending = False
            self.sync.dispatch(
                self._update_params(box, description=box.description, quantity=box.quantity)
            )
        elif correction is not None:
            self.sync.dispatch(correction.to_params(self.doc.page_key))

    # ---- styling / export ----

    def highlight(self, box: Optional[EditorTickBox]) -> None:
        for b in self.boxes:
            b.highlighted = b is box

    def to_primitive(self) -> GroupPrimitive:
        group = GroupPrimitive(name="tick-boxes")
        for box in self.boxes:
            group.add(
                RectPrimitive(
                    box.x,
                    box.y,
                    box.size,
                    box.size,
                    fill="#fff",
                    stroke=SELECTED_STROKE_COLOUR if box.highlighted else STROKE_COLOUR,
                    stroke_width=self.stroke_width,
                )
            )
        return group


@dataclass
class EditorAudioArea:
    id: int
    left: float
    top: float
    right: float
    bottom: float
    sound_cloud_id: Optional[str] = None

    @property
    def bbox(self) -> Rect:
        return Rect(self.left, self.top, self.right - self.left, self.bottom - self.top)


@dataclass
class AudioAreaLayer:
    """Read-only in the editor: areas are recorded by the phone app."""

    areas: List[EditorAudioArea] = field(default_factory=list)

    def add(
        self,
        left: float,
        top: float,
        right: float,
        bottom: float,
        area_id: int,
        sound_cloud_id: Optional[str] = None,
    ) -> EditorAudioArea:
        area = EditorAudioArea(area_id, left, top, right, bottom, sound_cloud_id)
        self.areas.append(area)
        return area
