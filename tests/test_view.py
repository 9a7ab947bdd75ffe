"""
Tests for the interactive view: open set and camera.
"""

import pytest

from mindmap.model import validate_hierarchy
from mindmap.view import MAX_SCALE, MIN_SCALE, CameraState, InteractiveTreeView


class TestCameraState:

    def test_defaults(self):
        assert CameraState().as_tuple() == (0.0, 0.0, 1.0)

    def test_scale_clamped_on_construction(self):
        assert CameraState(scale=5).scale == MAX_SCALE
        assert CameraState(scale=0.01).scale == MIN_SCALE

    def test_dict_round_trip(self):
        camera = CameraState(10, -5, 1.2)
        assert camera.to_dict() == {"translateX": 10, "translateY": -5, "scale": 1.2}
        assert CameraState.from_dict(camera.to_dict()).as_tuple() == (10.0, -5.0, 1.2)


class TestOpenSet:
    """Expand/collapse semantics."""

    def test_starts_collapsed_with_root_open(self, sample_document):
        view = InteractiveTreeView(sample_document)
        assert view.open_set == set()
        assert view.is_open("root")
        assert [n.id for n, _ in view.visible_nodes()] == ["root", "light", "calvin", "factors"]

    def test_toggle_twice_restores_membership(self, sample_document):
        view = InteractiveTreeView(sample_document)
        assert view.toggle("light") is True
        assert "light" in view.open_set
        assert view.toggle("light") is False
        assert view.open_set == set()

    def test_toggle_reveals_children(self, sample_document):
        view = InteractiveTreeView(sample_document)
        view.toggle("calvin")
        assert [n.id for n, _ in view.visible_nodes()] == ["root", "light", "calvin", "rubisco", "factors"]

    def test_root_and_leaves_are_not_collapsible(self, sample_document):
        view = InteractiveTreeView(sample_document)
        assert view.toggle("root") is True
        assert view.toggle("factors") is False
        assert view.toggle("missing") is False
        assert view.open_set == set()

    def test_expand_all_and_collapse_all(self, sample_document):
        view = InteractiveTreeView(sample_document)
        view.expand_all()
        assert view.open_set == {"light", "calvin"}
        assert len(list(view.visible_nodes())) == 7
        view.collapse_all()
        assert view.open_set == set()

    def test_initial_open_ids_are_filtered(self, sample_document):
        view = InteractiveTreeView(sample_document, open_ids=["light", "psii", "root", "nope"])
        assert view.open_set == {"light"}

    def test_views_are_independent(self, sample_document):
        first = InteractiveTreeView(sample_document)
        second = InteractiveTreeView(sample_document)
        first.toggle("light")
        first.zoom(2)
        assert second.open_set == set()
        assert second.camera.scale == 1.0

    def test_bad_orientation(self, sample_document):
        with pytest.raises(ValueError):
            InteractiveTreeView(sample_document, orientation="diagonal")


class TestCamera:
    """Pan / zoom / center."""

    def test_zoom_clamps_at_bounds(self, sample_document):
        view = InteractiveTreeView(sample_document)
        for _ in range(10):
            view.zoom(10)
        assert view.camera.scale == MAX_SCALE
        for _ in range(10):
            view.zoom(0.01)
        assert view.camera.scale == MIN_SCALE

    def test_center_resets_exactly(self, sample_document):
        view = InteractiveTreeView(sample_document, camera=CameraState(120, -40, 1.7))
        view.pan(3, 4)
        view.center()
        assert view.camera.as_tuple() == (0.0, 0.0, 1.0)

    def test_pan_accumulates(self, sample_document):
        view = InteractiveTreeView(sample_document)
        view.pan(10, 5)
        view.pan(-4, 1)
        assert view.camera.as_tuple() == (6, 6, 1.0)

    def test_wheel_direction(self, sample_document):
        view = InteractiveTreeView(sample_document)
        assert view.wheel(120) == pytest.approx(0.9)
        view.center()
        assert view.wheel(-120) == pytest.approx(1.1)
        assert view.wheel(0) == pytest.approx(1.1)

    def test_snapshot(self, sample_document):
        view = InteractiveTreeView(sample_document, orientation="vertical")
        view.toggle("light")
        snapshot = view.snapshot()
        assert snapshot["title"] == "Photosynthesis"
        assert snapshot["orientation"] == "vertical"
        assert snapshot["open"] == ["light"]
        light = next(item for item in snapshot["visible"] if item["id"] == "light")
        assert light["collapsible"] and light["open"] and light["level"] == 1


def test_single_node_document():
    view = InteractiveTreeView(validate_hierarchy({"root": {"label": "Alone"}}))
    view.expand_all()
    assert view.open_set == set()
    assert [n.label for n, _ in view.visible_nodes()] == ["Alone"]
