"""Hierarchy document model, interactive view state and exports."""

from .model import (
    HierarchyDocument,
    HierarchyNode,
    extract_hierarchy,
    validate_hierarchy,
)
from .view import CameraState, InteractiveTreeView, MAX_SCALE, MIN_SCALE
from .gestures import GestureTracker
from .exporter import export_filename, export_html, load_export, to_outline_text

__all__ = [
    'HierarchyDocument',
    'HierarchyNode',
    'extract_hierarchy',
    'validate_hierarchy',
    'CameraState',
    'InteractiveTreeView',
    'MAX_SCALE',
    'MIN_SCALE',
    'GestureTracker',
    'export_filename',
    'export_html',
    'load_export',
    'to_outline_text',
]
