"""
Tests for the hierarchy model and its validation gate.
"""

import json

import pytest

from llm.errors import MalformedGenerationError, ValidationError
from mindmap.model import HierarchyDocument, HierarchyNode, extract_hierarchy, validate_hierarchy


def _labels(node):
    return [child.label for child in node.children]


class TestExtractHierarchy:
    """Raw model text to validated document."""

    def test_cats_example(self):
        raw = (
            'Here you go:\n```json\n'
            '{"root":{"id":"root","label":"Cats","children":'
            '[{"id":"n1","label":"Diet"},{"id":"n2","label":""}]}}\n```'
        )
        document = extract_hierarchy(raw)
        assert document.root.label == "Cats"
        assert _labels(document.root) == ["Diet"]

    def test_round_trip_preserves_labels_and_order(self, sample_raw, sample_tree):
        document = extract_hierarchy(sample_raw)
        assert document.title == "Photosynthesis"
        assert _labels(document.root) == ["Light reactions", "Calvin cycle", "Limiting factors"]
        assert _labels(document.root.children[0]) == ["Photosystem II", "Photosystem I"]
        assert document.to_payload() == validate_hierarchy(sample_tree).to_payload()

    def test_fenced_equals_unwrapped(self, sample_raw):
        fenced = f"```json\n{sample_raw}\n```"
        assert extract_hierarchy(fenced) == extract_hierarchy(sample_raw)

    def test_garbage_never_yields_document(self):
        with pytest.raises(MalformedGenerationError):
            extract_hierarchy("Sorry, I can't help with that.")

    def test_too_deeply_nested_json(self):
        depth = 1500
        raw = '{"root": ' + '{"label": "x", "children": [' * depth + '{"label": "y"}' + ']}' * depth + '}'
        with pytest.raises(MalformedGenerationError):
            extract_hierarchy(raw)

    def test_missing_root_label(self):
        with pytest.raises(ValidationError):
            extract_hierarchy('{"root": {"label": "   ", "children": []}}')

    def test_no_root(self):
        with pytest.raises(ValidationError):
            extract_hierarchy('{"nodes": []}')

    def test_raw_excerpt_kept_on_validation_error(self):
        raw = '{"root": {"label": ""}}'
        with pytest.raises(ValidationError) as exc_info:
            extract_hierarchy(raw)
        assert exc_info.value.raw_excerpt == raw


class TestValidateHierarchy:
    """Shape coercion, dropping and limits."""

    def test_bare_root_node(self):
        document = validate_hierarchy({"label": "Topic", "children": ["One", "Two"]})
        assert document.title is None
        assert document.root.label == "Topic"
        assert _labels(document.root) == ["One", "Two"]

    def test_title_and_description_fallbacks(self):
        document = validate_hierarchy({"root": {"title": "Topic", "description": "About it"}})
        assert document.root.label == "Topic"
        assert document.root.note == "About it"

    def test_labels_are_trimmed_and_coerced(self):
        document = validate_hierarchy({"root": {"label": "  Numbers ", "children": [{"label": 42}]}})
        assert document.root.label == "Numbers"
        assert _labels(document.root) == ["42"]

    def test_empty_leaf_dropped_recursively(self):
        tree = {"root": {"label": "R", "children": [
            {"label": "A", "children": [{"label": " "}, {"label": "A1"}]},
            {"label": ""},
        ]}}
        document = validate_hierarchy(tree)
        assert _labels(document.root) == ["A"]
        assert _labels(document.root.children[0]) == ["A1"]

    def test_empty_label_children_are_promoted(self):
        tree = {"root": {"label": "R", "children": [
            {"label": "First"},
            {"label": "", "children": [{"label": "Kept 1"}, {"label": "Kept 2"}]},
            {"label": "Last"},
        ]}}
        document = validate_hierarchy(tree)
        assert _labels(document.root) == ["First", "Kept 1", "Kept 2", "Last"]

    def test_non_node_children_skipped(self):
        document = validate_hierarchy({"root": {"label": "R", "children": [None, 3, {"label": "ok"}]}})
        assert _labels(document.root) == ["ok"]

    def test_deterministic_ids(self):
        tree = {"root": {"label": "R", "children": [
            {"label": "A", "children": [{"label": "A1"}]},
            {"id": "dup", "label": "B"},
            {"id": "dup", "label": "C"},
        ]}}
        first = validate_hierarchy(tree)
        second = validate_hierarchy(json.loads(json.dumps(tree)))
        ids = [node.id for node, _ in first.iter_nodes()]
        assert ids == [node.id for node, _ in second.iter_nodes()]
        assert ids == ["root", "n0", "n0-0", "dup", "n2"]
        assert len(set(ids)) == len(ids)

    def test_generic_root_id_replaced(self):
        document = validate_hierarchy({"root": {"id": "auto", "label": "R"}})
        assert document.root.id == "root"

    def test_depth_limit(self):
        node = {"label": "leaf"}
        for level in range(5):
            node = {"label": f"L{level}", "children": [node]}
        with pytest.raises(ValidationError):
            validate_hierarchy({"root": node}, max_depth=3)
        assert validate_hierarchy({"root": node}, max_depth=5).root.label == "L4"

    def test_node_limit(self):
        tree = {"root": {"label": "R", "children": [{"label": str(i)} for i in range(10)]}}
        with pytest.raises(ValidationError):
            validate_hierarchy(tree, max_nodes=5)

    def test_cycle_detected(self):
        looping = {"label": "Loop"}
        looping["children"] = [looping]
        with pytest.raises(ValidationError):
            validate_hierarchy({"root": looping}, max_depth=10_000, max_nodes=10_000)

    def test_deep_chain_of_empty_labels(self):
        node = {"label": "leaf"}
        for _ in range(5000):
            node = {"label": "", "children": [node]}
        with pytest.raises(ValidationError):
            validate_hierarchy({"root": {"label": "R", "children": [node]}})

    def test_not_an_object(self):
        with pytest.raises(ValidationError):
            validate_hierarchy(["a", "b"])


class TestHierarchyDocument:
    """Read-only document helpers."""

    def test_documents_are_immutable(self, sample_document):
        with pytest.raises(Exception):
            sample_document.root.label = "changed"

    def test_iter_nodes_is_pre_order(self, sample_document):
        order = [(node.id, level) for node, level in sample_document.iter_nodes()]
        assert order == [
            ("root", 0), ("light", 1), ("psii", 2), ("psi", 2),
            ("calvin", 1), ("rubisco", 2), ("factors", 1),
        ]

    def test_get_and_leaf(self, sample_document):
        assert sample_document.get("rubisco").is_leaf
        assert not sample_document.get("calvin").is_leaf
        assert sample_document.get("missing") is None

    def test_display_title_falls_back_to_root(self):
        document = HierarchyDocument(root=HierarchyNode(id="root", label="Only root"))
        assert document.display_title == "Only root"
