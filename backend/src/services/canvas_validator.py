"""Normalisation of raw canvas graphs (layout output or model-generated JSON)."""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, List, Mapping, Set

from ..models.canvas import CanvasData, CanvasEdge, CanvasNode, NodeType, Side
from .gemini import GenerationError
from .layout import generate_id

logger = logging.getLogger(__name__)

NODE_TYPES = {member.value for member in NodeType}
SIDES = {member.value for member in Side}
NODE_OPTIONAL_FIELDS = ("text", "file", "url", "label", "color")
EDGE_OPTIONAL_FIELDS = ("label", "color")
DEFAULT_WIDTH = 200
DEFAULT_HEIGHT = 100


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_canvas_json(text: str) -> Dict[str, Any]:
    """Parse model output into a raw canvas dict, raising GenerationError when it is not one."""
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise GenerationError(
            f"Model output is not valid JSON: {e.msg}",
            {"line": e.lineno, "column": e.colno, "excerpt": cleaned[:200]},
        ) from e
    if not isinstance(data, dict):
        raise GenerationError(
            "Model output is not a JSON object", {"type": type(data).__name__}
        )
    return data


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _scalar_id(value: Any) -> str | None:
    """Ids may arrive as numbers from model output; compare them as strings."""
    if isinstance(value, str):
        return value or None
    if _is_number(value):
        return str(value)
    return None


def _positive_or(value: Any, default: int) -> Any:
    return value if _is_number(value) and value > 0 else default


def _fresh_id(candidate: Any, seen: Set[str]) -> str:
    candidate = _scalar_id(candidate)
    if candidate is not None and candidate not in seen:
        return candidate
    new_id = generate_id()
    while new_id in seen:
        new_id = generate_id()
    return new_id


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _validate_node(raw: Mapping[str, Any], seen: Set[str]) -> CanvasNode:
    node_id = _fresh_id(raw.get("id"), seen)
    seen.add(node_id)
    node_type = raw.get("type")
    fields: Dict[str, Any] = {
        "id": node_id,
        "type": node_type if isinstance(node_type, str) and node_type in NODE_TYPES else NodeType.TEXT.value,
        "x": raw["x"] if _is_number(raw.get("x")) else 0,
        "y": raw["y"] if _is_number(raw.get("y")) else 0,
        "width": _positive_or(raw.get("width"), DEFAULT_WIDTH),
        "height": _positive_or(raw.get("height"), DEFAULT_HEIGHT),
    }
    for name in NODE_OPTIONAL_FIELDS:
        if raw.get(name):
            fields[name] = str(raw[name])
    return CanvasNode(**fields)


def validate_canvas_data(raw: Mapping[str, Any] | CanvasData) -> CanvasData:
    """
    Return a graph that satisfies the canvas invariants.

    Missing or duplicate ids are regenerated and numeric ids become strings.
    Unusable or non-finite geometry falls back to defaults, and edges whose
    endpoints do not resolve are dropped. Node count is never changed by edge
    repair. Content that is not a JSON object yields an empty graph.
    """
    if isinstance(raw, CanvasData):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        logger.warning("Canvas content is not a JSON object", extra={"type": type(raw).__name__})
        raw = {}

    nodes: List[CanvasNode] = []
    seen_nodes: Set[str] = set()
    for item in _as_list(raw.get("nodes")):
        if not isinstance(item, Mapping):
            logger.warning("Skipping malformed canvas node", extra={"node": repr(item)[:100]})
            continue
        nodes.append(_validate_node(item, seen_nodes))

    edges: List[CanvasEdge] = []
    seen_edges: Set[str] = set()
    dropped = 0
    for item in _as_list(raw.get("edges")):
        if not isinstance(item, Mapping):
            dropped += 1
            continue
        from_node = _scalar_id(item.get("fromNode"))
        to_node = _scalar_id(item.get("toNode"))
        if from_node not in seen_nodes or to_node not in seen_nodes:
            dropped += 1
            continue

        edge_id = _fresh_id(item.get("id"), seen_edges)
        seen_edges.add(edge_id)
        fields: Dict[str, Any] = {"id": edge_id, "fromNode": from_node, "toNode": to_node}
        for side in ("fromSide", "toSide"):
            if isinstance(item.get(side), str) and item[side] in SIDES:
                fields[side] = item[side]
        for name in EDGE_OPTIONAL_FIELDS:
            if item.get(name):
                fields[name] = str(item[name])
        edges.append(CanvasEdge(**fields))

    if dropped:
        logger.warning(
            "Dropped edges with unresolved endpoints",
            extra={"dropped": dropped, "kept": len(edges), "nodes": len(nodes)},
        )

    return CanvasData(nodes=nodes, edges=edges)


__all__ = ["parse_canvas_json", "strip_code_fences", "validate_canvas_data"]
