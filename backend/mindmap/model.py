"""Hierarchy document model and validation of loosely-shaped generator output."""

import os
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from llm.errors import ValidationError
from llm.json_extract import extract_object

load_dotenv()

MAX_TREE_DEPTH = int(os.getenv("MAX_TREE_DEPTH", "12"))
MAX_TREE_NODES = int(os.getenv("MAX_TREE_NODES", "2000"))

ROOT_ID = "root"
GENERIC_IDS = {"", "auto"}


class HierarchyNode(BaseModel):
    """One concept in the tree. Children are kept in display order."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Identifier unique within the document")
    label: str = Field(description="Short display text, never empty")
    note: Optional[str] = Field(default=None, description="Optional secondary text")
    children: Tuple["HierarchyNode", ...] = Field(default=())

    @property
    def is_leaf(self) -> bool:
        return not self.children


HierarchyNode.model_rebuild()


class HierarchyDocument(BaseModel):
    """A validated, immutable tree plus its display title."""

    model_config = ConfigDict(frozen=True)

    root: HierarchyNode
    title: Optional[str] = None

    @property
    def display_title(self) -> str:
        return (self.title or "").strip() or self.root.label

    def iter_nodes(self) -> Iterator[Tuple[HierarchyNode, int]]:
        """Pre-order walk yielding ``(node, level)`` with the root at level 0."""
        stack = [(self.root, 0)]
        while stack:
            node, level = stack.pop()
            yield node, level
            for child in reversed(node.children):
                stack.append((child, level + 1))

    def node_index(self) -> Dict[str, HierarchyNode]:
        return {node.id: node for node, _ in self.iter_nodes()}

    def get(self, node_id: str) -> Optional[HierarchyNode]:
        return self.node_index().get(node_id)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict in the generator's ``{"root": ...}`` shape."""
        payload = {"root": self.root.model_dump(exclude_none=True)}
        if self.title:
            payload["title"] = self.title
        return payload


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


def _node_label(raw: Dict[str, Any]) -> str:
    label = _coerce_text(raw.get("label"))
    if not label:
        label = _coerce_text(raw.get("title"))
    return label


def _node_note(raw: Dict[str, Any]) -> Optional[str]:
    note = _coerce_text(raw.get("note"))
    if not note:
        note = _coerce_text(raw.get("description"))
    return note or None


def _as_node_dict(raw: Any) -> Optional[Dict[str, Any]]:
    """Plain strings are accepted as leaf labels; anything else non-dict is skipped."""
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str):
        return {"label": raw}
    return None


class _TreeBuilder:
    """Builds validated nodes with deterministic ids.

    Source ids are kept when present and not yet taken. Missing or duplicate ids are
    replaced with path ids such as ``n0-2-1`` (child positions in the source), so the
    same input always yields the same ids.
    """

    def __init__(self, max_depth: int, max_nodes: int, raw_text: str = ""):
        self.max_depth = max_depth
        self.max_nodes = max_nodes
        self.raw_text = raw_text
        self.taken: Set[str] = set()
        self.count = 0
        self._ancestors: Set[int] = set()

    def _assign_id(self, raw: Dict[str, Any], path: Tuple[int, ...]) -> str:
        candidate = _coerce_text(raw.get("id"))
        if candidate.lower() in GENERIC_IDS or candidate in self.taken:
            base = ROOT_ID if not path else "n" + "-".join(str(i) for i in path)
            candidate = base
            suffix = 1
            while candidate in self.taken:
                suffix += 1
                candidate = f"{base}.{suffix}"
        self.taken.add(candidate)
        return candidate

    def _count(self):
        self.count += 1
        if self.count > self.max_nodes:
            raise ValidationError(
                f"Hierarchy has more than {self.max_nodes} nodes.", raw=self.raw_text
            )

    def build_root(self, raw: Dict[str, Any]) -> HierarchyNode:
        label = _node_label(raw)
        if not label:
            raise ValidationError("Hierarchy root has no label.", raw=self.raw_text)
        self._count()
        node_id = self._assign_id(raw, ())
        children = self.build_children(raw, (), depth=1)
        return HierarchyNode(id=node_id, label=label, note=_node_note(raw), children=tuple(children))

    def build_children(self, raw: Dict[str, Any], path: Tuple[int, ...], depth: int) -> List[HierarchyNode]:
        marker = id(raw)
        if marker in self._ancestors:
            raise ValidationError("Hierarchy contains a cycle.", raw=self.raw_text)
        self._ancestors.add(marker)
        try:
            raw_children = raw.get("children")
            if not isinstance(raw_children, list):
                return []
            built: List[HierarchyNode] = []
            for index, raw_child in enumerate(raw_children):
                child = _as_node_dict(raw_child)
                if child is None:
                    continue
                built.extend(self.build_node(child, path + (index,), depth))
            return built
        finally:
            self._ancestors.discard(marker)

    def build_node(self, raw: Dict[str, Any], path: Tuple[int, ...], depth: int) -> List[HierarchyNode]:
        label = _node_label(raw)
        if not label:
            # Dropped node: its surviving children take its place at the same depth.
            return self.build_children(raw, path, depth)

        if depth > self.max_depth:
            raise ValidationError(
                f"Hierarchy is deeper than {self.max_depth} levels.", raw=self.raw_text
            )
        self._count()
        node_id = self._assign_id(raw, path)
        children = self.build_children(raw, path, depth + 1)
        return [HierarchyNode(id=node_id, label=label, note=_node_note(raw), children=tuple(children))]


def _find_root(parsed: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    for key in ("root", "mindmap", "root_node"):
        candidate = parsed.get(key)
        if isinstance(candidate, dict):
            if key == "mindmap" and isinstance(candidate.get("root"), dict):
                return candidate["root"]
            return candidate
    if _node_label(parsed):
        return parsed
    return None


def validate_hierarchy(
    parsed: Any,
    max_depth: int = MAX_TREE_DEPTH,
    max_nodes: int = MAX_TREE_NODES,
    raw_text: str = "",
) -> HierarchyDocument:
    """Turn parsed JSON into a :class:`HierarchyDocument`.

    Accepts ``{"root": {...}}`` (optionally with a top-level ``title``) or a bare
    root node. Labels are coerced to trimmed strings; nodes whose label is empty are
    removed and their surviving children promoted into their place.

    Raises:
        ValidationError: no usable root/label, a cycle, or the depth/node limits
            are exceeded.
    """
    if not isinstance(parsed, dict):
        raise ValidationError("Hierarchy payload is not a JSON object.", raw=raw_text)

    raw_root = _find_root(parsed)
    if raw_root is None:
        raise ValidationError("Hierarchy payload has no root node.", raw=raw_text)

    builder = _TreeBuilder(max_depth=max_depth, max_nodes=max_nodes, raw_text=raw_text)
    try:
        root = builder.build_root(raw_root)
    except RecursionError:
        # Chains of empty-label nodes nest without counting towards the depth limit.
        raise ValidationError("Hierarchy is nested too deeply.", raw=raw_text) from None

    title = None if raw_root is parsed else _coerce_text(parsed.get("title")) or None
    return HierarchyDocument(root=root, title=title)


def extract_hierarchy(raw: str) -> HierarchyDocument:
    """Single gate from raw generator text to a validated document (all or nothing)."""
    parsed = extract_object(raw)
    return validate_hierarchy(parsed, raw_text=raw)
