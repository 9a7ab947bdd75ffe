"""Standalone exports of a hierarchy document.

The HTML export is a single offline file: the tree is rendered server-side with the
open/closed state and camera of the moment, the same state is embedded as JSON, and
a small inline script re-implements pan / pinch / wheel zoom / tap-to-toggle /
center so the file stays interactive without the app or the network.
"""

import html
import json
import os
import re
from typing import Iterable, List, Set, Tuple

from dotenv import load_dotenv

from .model import HierarchyDocument, HierarchyNode, validate_hierarchy
from .view import CameraState, InteractiveTreeView, has_visible_children, visible_children

load_dotenv()

EXPORT_FILENAME_MAX = int(os.getenv("EXPORT_FILENAME_MAX", "80"))
EXPORT_FORMAT_VERSION = 1
DEFAULT_FILENAME = "mindmap"

STATE_SCRIPT_RE = re.compile(
    r'<script id="mindmap-state" type="application/json">(.*?)</script>', re.DOTALL
)


def escape_text(value: str) -> str:
    """Escape &, <, >, and both quote characters for embedding in HTML."""
    return html.escape(value or "", quote=True)


def _json_for_script(data) -> str:
    # "<", ">" and "&" only ever appear inside JSON strings, where \u escapes are valid.
    text = json.dumps(data, ensure_ascii=False)
    return text.replace("&", "\\u0026").replace("<", "\\u003c").replace(">", "\\u003e")


def export_filename(title: str, extension: str = "html") -> str:
    """Filesystem-safe name derived from a document title."""
    name = re.sub(r"[^\w\s.-]", "", title or "")
    name = re.sub(r"\s+", "_", name.strip())
    name = name.strip("._")[:EXPORT_FILENAME_MAX].rstrip("._")
    return f"{name or DEFAULT_FILENAME}.{extension}"


EXPORT_CSS = """
  *{box-sizing:border-box}
  body{margin:0;background:#0f172a;color:#fff;font-family:system-ui,Segoe UI,Roboto,Ubuntu,"Noto Sans",sans-serif}
  .toolbar{display:flex;flex-wrap:wrap;gap:8px;padding:8px;background:#1f2937;position:sticky;top:0;z-index:2}
  .toolbar h1{font-size:1rem;margin:0 12px 0 4px;align-self:center;font-weight:700}
  button{background:#374151;color:#fff;border:0;border-radius:10px;padding:8px 12px;cursor:pointer}
  #vp{position:relative;height:calc(100vh - 52px);overflow:hidden;touch-action:none;cursor:grab}
  #world{position:absolute;left:24px;top:24px;transform-origin:0 0}
  .node{display:flex;flex-direction:row;align-items:flex-start;gap:16px;margin:4px 0}
  .children{display:flex;flex-direction:column;gap:6px;border-left:1px solid rgba(148,163,184,.4);padding-left:12px}
  #world.vertical .node{flex-direction:column;align-items:center}
  #world.vertical .children{flex-direction:row;border-left:0;border-top:1px solid rgba(148,163,184,.4);padding:12px 0 0}
  .node.collapsible:not(.open)>.children{display:none}
  .box{background:#111827;border:1px solid rgba(255,255,255,.15);border-radius:12px;padding:10px 14px;max-width:24ch;font-weight:600;line-height:1.15;word-break:break-word;user-select:none}
  .lvl-0>.box{background:#0b1220;border-color:#6b7280;font-weight:800;max-width:28ch}
  .collapsible>.box{cursor:pointer}
  .caret{display:inline-block;width:0;height:0;margin-left:6px;border-top:5px solid transparent;border-bottom:5px solid transparent;border-left:7px solid currentColor;transition:transform .15s}
  .open>.box .caret{transform:rotate(90deg)}
  .note{display:block;font-size:12px;font-weight:400;opacity:.8;margin-top:4px}
  @media print{.toolbar{display:none}#vp{height:auto;overflow:visible}}
"""

# Same rules as mindmap/gestures.py: 3px drag threshold, pinch ratio against the
# distance when the second pointer landed, wheel 0.9 / 1.1, scale in [0.43, 2.0].
EXPORT_SCRIPT = """
(function(){
  var state = JSON.parse(document.getElementById('mindmap-state').textContent);
  var MIN_SCALE = 0.43, MAX_SCALE = 2.0, THRESHOLD = 3;
  var tx = state.camera.translateX, ty = state.camera.translateY, s = state.camera.scale;
  var vp = document.getElementById('vp'), world = document.getElementById('world');
  var pointers = new Map(), panning = false, pinching = false, moved = false;
  var startDist = 0, startScale = 1;

  function clamp(v){ return Math.max(MIN_SCALE, Math.min(MAX_SCALE, v)); }
  function apply(){ world.style.transform = 'translate(' + tx + 'px,' + ty + 'px) scale(' + s + ')'; }
  function zoom(f){ s = clamp(s * f); apply(); }
  function center(){ tx = 0; ty = 0; s = 1; apply(); }
  function toggle(el){ if (el && el.classList.contains('collapsible')) el.classList.toggle('open'); }
  function expandAll(){ world.querySelectorAll('.node.collapsible').forEach(function(n){ n.classList.add('open'); }); }
  function collapseAll(){ world.querySelectorAll('.node.collapsible').forEach(function(n){ n.classList.remove('open'); }); }
  function distance(){
    var p = Array.from(pointers.values());
    return Math.hypot(p[0].x - p[1].x, p[0].y - p[1].y);
  }
  function settle(){
    if (pinching && pointers.size >= 2){ startDist = distance(); startScale = s; }
    else if (pinching){
      pinching = false; startDist = 0;
      pointers.forEach(function(r){ r.sx = r.x; r.sy = r.y; panning = true; });
    }
    if (pointers.size === 0) panning = false;
  }

  vp.addEventListener('pointerdown', function(e){
    if (pointers.size === 0){ moved = false; panning = false; }
    var box = e.target.closest ? e.target.closest('.box') : null;
    pointers.set(e.pointerId, {x: e.clientX, y: e.clientY, sx: e.clientX, sy: e.clientY,
                               node: box ? box.parentElement : null});
    if (vp.setPointerCapture) vp.setPointerCapture(e.pointerId);
    if (pointers.size >= 2 && !pinching){ pinching = true; moved = true; startDist = distance(); startScale = s; }
  });
  vp.addEventListener('pointermove', function(e){
    var p = pointers.get(e.pointerId);
    if (!p) return;
    var dx = e.clientX - p.x, dy = e.clientY - p.y;
    p.x = e.clientX; p.y = e.clientY;
    if (pinching){
      if (pointers.size >= 2 && startDist > 0){ s = clamp(startScale * distance() / startDist); apply(); }
      return;
    }
    if (!panning){
      if (Math.hypot(p.x - p.sx, p.y - p.sy) <= THRESHOLD) return;
      panning = true; moved = true;
    }
    tx += dx; ty += dy; apply();
  });
  function release(e, cancelled){
    var p = pointers.get(e.pointerId);
    if (!p) return;
    pointers.delete(e.pointerId);
    if (cancelled) moved = true;
    else if (pointers.size === 0 && !moved && p.node) toggle(p.node);
    settle();
  }
  vp.addEventListener('pointerup', function(e){ release(e, false); });
  vp.addEventListener('pointercancel', function(e){ release(e, true); });
  vp.addEventListener('wheel', function(e){
    e.preventDefault();
    if (e.deltaY > 0) zoom(0.9); else if (e.deltaY < 0) zoom(1.1);
  }, {passive: false});

  var actions = {'zoom-in': function(){ zoom(1.1); }, 'zoom-out': function(){ zoom(0.9); },
                 'center': center, 'expand-all': expandAll, 'collapse-all': collapseAll,
                 'print': function(){ window.print(); }};
  document.querySelectorAll('[data-action]').forEach(function(b){
    b.addEventListener('click', actions[b.getAttribute('data-action')]);
  });
  apply();
})();
"""


def _render_node(view: InteractiveTreeView, node: HierarchyNode, level: int) -> str:
    classes = ["node", f"lvl-{level}"]
    kids = visible_children(node)
    collapsible = level > 0 and has_visible_children(node)
    if collapsible:
        classes.append("collapsible")
    if view.is_open(node.id):
        classes.append("open")

    parts = [f'<div class="{" ".join(classes)}" data-id="{escape_text(node.id)}">']
    parts.append('<div class="box">')
    parts.append(f'<span class="label">{escape_text(node.label)}</span>')
    if collapsible:
        parts.append('<span class="caret" aria-hidden="true"></span>')
    if node.note:
        parts.append(f'<span class="note">{escape_text(node.note)}</span>')
    parts.append("</div>")
    if kids:
        parts.append('<div class="children">')
        parts.extend(_render_node(view, child, level + 1) for child in kids)
        parts.append("</div>")
    parts.append("</div>")
    return "".join(parts)


def render_html(
    document: HierarchyDocument,
    camera: CameraState,
    open_ids: Iterable[str],
    orientation: str = "horizontal",
) -> str:
    # A throwaway view keeps the caller's state untouched and drops stale ids.
    view = InteractiveTreeView(
        document,
        camera=CameraState(camera.translate_x, camera.translate_y, camera.scale),
        open_ids=open_ids,
        orientation=orientation,
    )
    state = {
        "version": EXPORT_FORMAT_VERSION,
        "title": document.display_title,
        "orientation": orientation,
        "camera": view.camera.to_dict(),
        "open": sorted(view.open_set),
        "document": document.to_payload(),
    }
    cam = view.camera
    transform = f"translate({cam.translate_x}px,{cam.translate_y}px) scale({cam.scale})"
    title = escape_text(document.display_title)
    world_class = ' class="vertical"' if orientation == "vertical" else ""

    return f"""<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
<title>{title}</title>
<style>{EXPORT_CSS}</style>
</head>
<body>
<div class="toolbar">
  <h1>{title}</h1>
  <button data-action="zoom-in">+</button>
  <button data-action="zoom-out">&minus;</button>
  <button data-action="center">Center</button>
  <button data-action="expand-all">Expand all</button>
  <button data-action="collapse-all">Collapse all</button>
  <button data-action="print">Print</button>
</div>
<div id="vp"><div id="world"{world_class} style="transform:{transform}">{_render_node(view, document.root, 0)}</div></div>
<script id="mindmap-state" type="application/json">{_json_for_script(state)}</script>
<script>{EXPORT_SCRIPT}</script>
</body>
</html>
"""


def export_html(
    document: HierarchyDocument,
    camera: CameraState,
    open_ids: Iterable[str],
    orientation: str = "horizontal",
) -> bytes:
    """Serialize the document and the current view state into one offline HTML file."""
    return render_html(document, camera, open_ids, orientation=orientation).encode("utf-8")


def load_export(data: bytes) -> Tuple[HierarchyDocument, CameraState, Set[str]]:
    """Read the embedded state back out of an exported HTML file."""
    text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
    match = STATE_SCRIPT_RE.search(text)
    if match is None:
        raise ValueError("File does not contain an exported mind map state.")
    state = json.loads(match.group(1))
    if not isinstance(state, dict):
        raise ValueError("Exported mind map state must be a JSON object.")
    camera = state.get("camera") or {}
    open_ids = state.get("open") or []
    if not isinstance(camera, dict) or not isinstance(open_ids, list):
        raise ValueError("Exported mind map state has an invalid camera or open list.")
    document = validate_hierarchy(state.get("document"))
    try:
        camera_state = CameraState.from_dict(camera)
    except TypeError as e:
        raise ValueError(f"Exported camera is invalid: {e}") from e
    return document, camera_state, {str(node_id) for node_id in open_ids}


def to_outline_text(document: HierarchyDocument) -> str:
    """Indented plain-text outline, convenient for pasting into notebooks."""
    lines: List[str] = []
    indent = "  "

    def walk(node: HierarchyNode, level: int):
        prefix = indent * level
        lines.append(f"{prefix}- {node.label}")
        if node.note:
            lines.append(f"{prefix}{indent}  {node.note}")
        for child in visible_children(node):
            walk(child, level + 1)

    root = document.root
    lines.append(f"# {root.label}")
    if root.note:
        lines.append(root.note)
    lines.append("")
    for child in visible_children(root):
        walk(child, 0)
    return "\n".join(lines)
