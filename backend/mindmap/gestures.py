"""Pointer gesture state machine driving an :class:`InteractiveTreeView`.

One pointer pans once it has travelled past a small threshold, otherwise its
release counts as a tap that toggles the node it went down on. Two pointers pinch:
the scale follows the ratio of the current finger distance to the distance when
the second finger landed. The exported HTML carries a JavaScript copy of these
same rules.
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional

from .view import InteractiveTreeView, clamp_scale

DRAG_THRESHOLD = 3.0


@dataclass
class Pointer:
    x: float
    y: float
    start_x: float
    start_y: float
    node_id: Optional[str] = None


def _distance(a: Pointer, b: Pointer) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


class GestureTracker:
    """Maps raw pointer and wheel events onto view operations."""

    def __init__(self, view: InteractiveTreeView, threshold: float = DRAG_THRESHOLD):
        self.view = view
        self.threshold = threshold
        self.pointers: Dict[int, Pointer] = {}
        self.panning = False
        self.pinching = False
        self.pinch_start_distance = 0.0
        self.pinch_start_scale = 1.0
        # Set once a gesture has dragged or pinched; a later release is not a tap.
        self.moved = False

    @property
    def mode(self) -> str:
        if self.pinching:
            return "pinch"
        if self.panning:
            return "pan"
        return "idle" if not self.pointers else "press"

    def _begin_pinch(self):
        first, second = list(self.pointers.values())[:2]
        self.pinching = True
        self.moved = True
        self.pinch_start_distance = _distance(first, second)
        self.pinch_start_scale = self.view.camera.scale

    def pointer_down(self, pointer_id: int, x: float, y: float, node_id: Optional[str] = None):
        if not self.pointers:
            self.moved = False
            self.panning = False
        self.pointers[pointer_id] = Pointer(x=x, y=y, start_x=x, start_y=y, node_id=node_id)
        if len(self.pointers) >= 2 and not self.pinching:
            self._begin_pinch()

    def pointer_move(self, pointer_id: int, x: float, y: float):
        pointer = self.pointers.get(pointer_id)
        if pointer is None:
            return
        dx = x - pointer.x
        dy = y - pointer.y
        pointer.x = x
        pointer.y = y

        if self.pinching:
            if len(self.pointers) >= 2 and self.pinch_start_distance > 0:
                first, second = list(self.pointers.values())[:2]
                ratio = _distance(first, second) / self.pinch_start_distance
                self.view.set_scale(clamp_scale(self.pinch_start_scale * ratio))
            return

        if not self.panning:
            travelled = math.hypot(x - pointer.start_x, y - pointer.start_y)
            if travelled <= self.threshold:
                return
            self.panning = True
            self.moved = True
        self.view.pan(dx, dy)

    def pointer_up(self, pointer_id: int) -> Optional[bool]:
        """Release a pointer. Returns the node's new open state when it was a tap."""
        pointer = self.pointers.pop(pointer_id, None)
        if pointer is None:
            return None

        result = None
        if not self.pointers and not self.moved and pointer.node_id is not None:
            result = self.view.toggle(pointer.node_id)
        self._settle()
        return result

    def pointer_cancel(self, pointer_id: int):
        self.pointers.pop(pointer_id, None)
        self.moved = True
        self._settle()

    def _settle(self):
        if self.pinching and len(self.pointers) >= 2:
            # The pinch pair changed: measure again from the current pair and scale.
            self._begin_pinch()
        elif self.pinching:
            self.pinching = False
            self.pinch_start_distance = 0.0
            for remaining in self.pointers.values():
                # Continue as a pan from where the finger is now.
                remaining.start_x, remaining.start_y = remaining.x, remaining.y
                self.panning = True
        if not self.pointers:
            self.panning = False

    def wheel(self, delta_y: float) -> float:
        return self.view.wheel(delta_y)
