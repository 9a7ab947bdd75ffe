"""
Tests for the offline HTML export and the text outline.
"""

import json

import pytest

from mindmap.exporter import (
    STATE_SCRIPT_RE,
    escape_text,
    export_filename,
    export_html,
    load_export,
    to_outline_text,
)
from mindmap.model import validate_hierarchy
from mindmap.view import CameraState


def _state(data: bytes) -> dict:
    return json.loads(STATE_SCRIPT_RE.search(data.decode("utf-8")).group(1))


class TestExportHtml:
    """The exported file carries the view state of the moment."""

    def test_open_set_and_camera_fidelity(self, sample_document):
        data = export_html(sample_document, CameraState(10, -5, 1.2), {"light", "calvin"})
        state = _state(data)
        assert state["open"] == ["calvin", "light"]
        assert state["camera"] == {"translateX": 10, "translateY": -5, "scale": 1.2}

        html = data.decode("utf-8")
        assert 'class="node lvl-1 collapsible open" data-id="light"' in html
        assert 'class="node lvl-1 collapsible open" data-id="calvin"' in html
        assert "translate(10px,-5px) scale(1.2)" in html

    def test_closed_nodes_are_not_marked_open(self, sample_document):
        html = export_html(sample_document, CameraState(), {"light"}).decode("utf-8")
        assert 'class="node lvl-1 collapsible" data-id="calvin"' in html
        assert 'class="node lvl-1" data-id="factors"' in html

    def test_load_export_restores_state(self, sample_document):
        data = export_html(sample_document, CameraState(10, -5, 1.2), {"light"}, orientation="vertical")
        document, camera, open_ids = load_export(data)
        assert document == sample_document
        assert camera.as_tuple() == (10.0, -5.0, 1.2)
        assert open_ids == {"light"}

    def test_self_contained(self, sample_document):
        html = export_html(sample_document, CameraState(), set()).decode("utf-8")
        assert "http://" not in html and "https://" not in html
        assert "<script src" not in html
        for action in ("zoom-in", "zoom-out", "center", "expand-all", "collapse-all", "print"):
            assert f'data-action="{action}"' in html

    def test_labels_are_escaped(self):
        document = validate_hierarchy({"root": {
            "label": "Tags <b> & \"quotes\"",
            "children": [{"label": "</script><script>alert(1)</script>"}],
        }})
        data = export_html(document, CameraState(), set())
        html = data.decode("utf-8")
        assert "<b>" not in html
        assert "&lt;b&gt; &amp; &quot;quotes&quot;" in html
        assert "alert(1)</script>" not in html
        # The embedded state still decodes to the original labels.
        restored, _, _ = load_export(data)
        assert restored.root.children[0].label == "</script><script>alert(1)</script>"

    def test_stale_open_ids_dropped(self, sample_document):
        state = _state(export_html(sample_document, CameraState(), {"light", "gone", "root"}))
        assert state["open"] == ["light"]

    def test_load_export_rejects_other_html(self):
        with pytest.raises(ValueError):
            load_export(b"<html><body>nothing here</body></html>")

    @pytest.mark.parametrize("state", [
        "[]",
        "\"text\"",
        "null",
        '{"document": {"root": {"label": "R"}}, "camera": [1, 2]}',
        '{"document": {"root": {"label": "R"}}, "open": "light"}',
        '{"document": {"root": {"label": "R"}}, "camera": {"scale": null}}',
    ])
    def test_load_export_rejects_bad_state(self, state):
        data = f'<script id="mindmap-state" type="application/json">{state}</script>'.encode("utf-8")
        with pytest.raises(ValueError):
            load_export(data)


class TestExportFilename:

    def test_sanitizes_title(self):
        assert export_filename("Photosynthesis: light & dark!") == "Photosynthesis_light_dark.html"

    def test_extension(self):
        assert export_filename("Notes", "txt") == "Notes.txt"

    def test_empty_title_falls_back(self):
        assert export_filename("???") == "mindmap.html"
        assert export_filename("") == "mindmap.html"

    def test_length_capped(self):
        name = export_filename("a" * 300)
        assert name == "a" * 80 + ".html"


class TestOutlineText:

    def test_outline(self, sample_document):
        text = to_outline_text(sample_document)
        lines = text.splitlines()
        assert lines[0] == "# Photosynthesis"
        assert lines[1] == "How plants make food"
        assert "- Light reactions" in lines
        assert "  - Photosystem II" in lines
        assert "  - RuBisCO" in lines


def test_escape_text():
    assert escape_text("<a href='x'>") == "&lt;a href=&#x27;x&#x27;&gt;"
