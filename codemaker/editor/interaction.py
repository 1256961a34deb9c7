# codemaker/editor/interaction.py
"""
Pointer and keyboard handling for the page editor.

At most one thing is being dragged at a time: a marker or a tick box.
Keyboard commands act on the tick box that was released last.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from codemaker.core.geometry import round_half_up
from codemaker.editor.annotations import EditorTickBox, TickBoxLayer
from codemaker.editor.dialogs import DialogPresenter
from codemaker.editor.document import DocumentState
from codemaker.editor.markers import MarkerPlacementController
from codemaker.models import PageType

logger = logging.getLogger(__name__)


class InteractionState(Enum):
    IDLE = "idle"
    DRAGGING_MARKER = "dragging_marker"
    DRAGGING_CHECKBOX = "dragging_checkbox"


ARROW_STEPS = {
    "ArrowLeft": (-1, 0),
    "ArrowRight": (1, 0),
    "ArrowUp": (0, -1),
    "ArrowDown": (0, 1),
}
DELETE_KEYS = ("Delete", "Backspace")


class InteractionStateMachine:
    def __init__(
        self,
        doc: DocumentState,
        markers: MarkerPlacementController,
        tick_boxes: TickBoxLayer,
        dialogs: DialogPresenter,
    ):
        self.doc = doc
        self.markers = markers
        self.tick_boxes = tick_boxes
        self.dialogs = dialogs

        self.state = InteractionState.IDLE
        self.selected_box: Optional[EditorTickBox] = None
        # target of keyboard commands
        self.previous_box: Optional[EditorTickBox] = None

    def selection_is_exclusive(self) -> bool:
        """Never a marker and a tick box selected together."""
        return not (self.markers.selected is not None and self.selected_box is not None)

    # ---- pointer ----

    def pointer_down(self, x: float, y: float) -> InteractionState:
        if self.state != InteractionState.IDLE:
            return self.state

        if self.markers.start_drag(x, y) is not None:
            self.state = InteractionState.DRAGGING_MARKER
            return self.state

        if self.doc.page_type != PageType.CHECKBOX:
            return self.state
        if not self.doc.paper.as_rect().contains(x, y):
            return self.state

        box = self.tick_boxes.find(x, y)
        if box is None:
            box = self.tick_boxes.create(round_half_up(x), round_half_up(y))
        self.tick_boxes.start_drag(box, x, y)
        self.selected_box = box
        self.state = InteractionState.DRAGGING_CHECKBOX
        return self.state

    def pointer_move(self, x: float, y: float) -> None:
        if self.state == InteractionState.DRAGGING_MARKER:
            self.markers.drag(x, y)
        elif self.state == InteractionState.DRAGGING_CHECKBOX:
            self.tick_boxes.drag(self.selected_box, x, y)

    def pointer_up(self) -> None:
        if self.state == InteractionState.DRAGGING_CHECKBOX:
            self.previous_box = self.selected_box
            self.tick_boxes.end_drag(self.selected_box)
            self.selected_box = None
        elif self.state == InteractionState.DRAGGING_MARKER:
            self.markers.end_drag()
        self.state = InteractionState.IDLE

    def pointer_leave(self) -> None:
        """Leaving the window ends any drag as if the button was released."""
        self.pointer_up()

    # ---- keyboard ----

    def _keyboard_target(self, text_input_focused: bool) -> Optional[EditorTickBox]:
        box = self.previous_box
        if box is None or box not in self.tick_boxes.boxes:
            return None
        if self.dialogs.is_showing() or text_input_focused or not box.is_confirmed:
            return None
        return box

    def key_down(self, key: str, text_input_focused: bool = False) -> bool:
        """
        Handle one key press.

        Returns:
            True when the key was consumed.
        """
        if key in DELETE_KEYS:
            box = self._keyboard_target(text_input_focused)
            if box is None:
                return False
            self.tick_boxes.remove(box)
            self.previous_box = None
            return True

        if key in ARROW_STEPS:
            box = self._keyboard_target(text_input_focused)
            if box is None:
                return False
            dx, dy = ARROW_STEPS[key]
            self.tick_boxes.nudge(box, dx, dy)
            return True

        if key == "Escape":
            if self.dialogs.close():
                return True
            if self.state == InteractionState.DRAGGING_CHECKBOX:
                # drop the box where it is
                self.pointer_up()
            self.selected_box = None
            self.tick_boxes.highlight(None)
            return True

        if key == "Enter":
            return self.dialogs.close()

        return False
