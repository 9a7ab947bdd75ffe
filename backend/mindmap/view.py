"""Interactive view state over an immutable hierarchy document.

A view owns exactly one camera and one open set. The document itself is never
mutated, so several views can render the same document independently.
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Set, Tuple

from .model import HierarchyDocument, HierarchyNode

MIN_SCALE = 0.43
MAX_SCALE = 2.0
WHEEL_ZOOM_OUT = 0.9
WHEEL_ZOOM_IN = 1.1

ORIENTATIONS = ("horizontal", "vertical")


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_scale(scale: float) -> float:
    return clamp(scale, MIN_SCALE, MAX_SCALE)


@dataclass
class CameraState:
    """2D pan/zoom transform. ``scale`` always stays within [0.43, 2.0]."""

    translate_x: float = 0.0
    translate_y: float = 0.0
    scale: float = 1.0

    def __post_init__(self):
        self.scale = clamp_scale(float(self.scale))

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.translate_x, self.translate_y, self.scale)

    def to_dict(self) -> dict:
        return {"translateX": self.translate_x, "translateY": self.translate_y, "scale": self.scale}

    @classmethod
    def from_dict(cls, data: dict) -> "CameraState":
        return cls(
            translate_x=float(data.get("translateX", 0.0)),
            translate_y=float(data.get("translateY", 0.0)),
            scale=float(data.get("scale", 1.0)),
        )


def visible_children(node: HierarchyNode) -> Tuple[HierarchyNode, ...]:
    """Children that render. Validated documents never hold empty labels, but the
    filter is recomputed here rather than trusting raw presence."""
    return tuple(child for child in node.children if child.label.strip())


def has_visible_children(node: HierarchyNode) -> bool:
    return bool(visible_children(node))


class InteractiveTreeView:
    """Expand/collapse plus camera state for one rendering of a document."""

    def __init__(
        self,
        document: HierarchyDocument,
        camera: Optional[CameraState] = None,
        open_ids: Optional[Iterable[str]] = None,
        orientation: str = "horizontal",
    ):
        if orientation not in ORIENTATIONS:
            raise ValueError(f"orientation must be one of {ORIENTATIONS}")
        self.document = document
        self.orientation = orientation
        self.camera = camera if camera is not None else CameraState()
        self._index = document.node_index()
        self.open_set: Set[str] = set()
        for node_id in open_ids or ():
            if self.is_collapsible(node_id):
                self.open_set.add(node_id)

    # -- open/closed state -------------------------------------------------

    def is_collapsible(self, node_id: str) -> bool:
        """Non-root nodes with at least one visible child."""
        node = self._index.get(node_id)
        if node is None or node.id == self.document.root.id:
            return False
        return has_visible_children(node)

    def is_open(self, node_id: str) -> bool:
        if node_id == self.document.root.id:
            return True
        return node_id in self.open_set

    def toggle(self, node_id: str) -> bool:
        """Flip membership of ``node_id``. Returns the resulting open state."""
        if not self.is_collapsible(node_id):
            return self.is_open(node_id)
        if node_id in self.open_set:
            self.open_set.discard(node_id)
            return False
        self.open_set.add(node_id)
        return True

    def expand_all(self):
        self.open_set = {
            node.id
            for node, level in self.document.iter_nodes()
            if level > 0 and has_visible_children(node)
        }

    def collapse_all(self):
        self.open_set = set()

    # -- camera ----------------------------------------------------------

    def zoom(self, factor: float) -> float:
        self.camera.scale = clamp_scale(self.camera.scale * factor)
        return self.camera.scale

    def set_scale(self, scale: float) -> float:
        self.camera.scale = clamp_scale(scale)
        return self.camera.scale

    def pan(self, dx: float, dy: float):
        self.camera.translate_x += dx
        self.camera.translate_y += dy

    def center(self):
        self.camera.translate_x = 0.0
        self.camera.translate_y = 0.0
        self.camera.scale = 1.0

    def wheel(self, delta_y: float) -> float:
        """One discrete wheel event: scrolling down zooms out, up zooms in."""
        if delta_y > 0:
            return self.zoom(WHEEL_ZOOM_OUT)
        if delta_y < 0:
            return self.zoom(WHEEL_ZOOM_IN)
        return self.camera.scale

    # -- rendering -------------------------------------------------------

    def visible_nodes(self) -> Iterator[Tuple[HierarchyNode, int]]:
        """Pre-order ``(node, level)`` pairs currently on screen."""
        stack: List[Tuple[HierarchyNode, int]] = [(self.document.root, 0)]
        while stack:
            node, level = stack.pop()
            yield node, level
            if self.is_open(node.id):
                for child in reversed(visible_children(node)):
                    stack.append((child, level + 1))

    def snapshot(self) -> dict:
        """Serializable view state for API responses."""
        return {
            "title": self.document.display_title,
            "orientation": self.orientation,
            "camera": self.camera.to_dict(),
            "open": sorted(self.open_set),
            "visible": [
                {
                    "id": node.id,
                    "label": node.label,
                    "note": node.note,
                    "level": level,
                    "collapsible": level > 0 and has_visible_children(node),
                    "open": self.is_open(node.id),
                }
                for node, level in self.visible_nodes()
            ],
        }
