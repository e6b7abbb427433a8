import json

import pytest

from backend.src.services.canvas_validator import (
    parse_canvas_json,
    strip_code_fences,
    validate_canvas_data,
)
from backend.src.services.gemini import GenerationError


def _node(node_id: str, **extra):
    return {"id": node_id, "type": "text", "x": 0, "y": 0, "width": 100, "height": 50, "text": node_id, **extra}


def test_dangling_edge_is_dropped_and_nodes_kept() -> None:
    raw = {
        "nodes": [_node("a"), _node("b")],
        "edges": [{"id": "e1", "fromNode": "a", "toNode": "missing"}],
    }

    data = validate_canvas_data(raw)

    assert data.edges == []
    assert [node.id for node in data.nodes] == ["a", "b"]


def test_valid_edges_survive_with_sides() -> None:
    raw = {
        "nodes": [_node("a"), _node("b")],
        "edges": [
            {"id": "e1", "fromNode": "a", "toNode": "b", "fromSide": "right", "toSide": "sideways", "label": "x"}
        ],
    }

    edge = validate_canvas_data(raw).edges[0]

    assert (edge.from_node, edge.to_node) == ("a", "b")
    assert edge.from_side == "right"
    assert edge.to_side is None
    assert edge.label == "x"


def test_self_loops_are_kept() -> None:
    raw = {"nodes": [_node("a")], "edges": [{"id": "e", "fromNode": "a", "toNode": "a"}]}

    assert len(validate_canvas_data(raw).edges) == 1


def test_missing_and_duplicate_ids_are_regenerated() -> None:
    raw = {
        "nodes": [_node("a"), _node("a"), {"type": "text", "text": "no id"}],
        "edges": [
            {"id": "e", "fromNode": "a", "toNode": "a"},
            {"id": "e", "fromNode": "a", "toNode": "a"},
        ],
    }

    data = validate_canvas_data(raw)

    node_ids = [node.id for node in data.nodes]
    edge_ids = [edge.id for edge in data.edges]
    assert node_ids[0] == "a"
    assert len(set(node_ids)) == 3
    assert len(set(edge_ids)) == 2


def test_bad_geometry_falls_back_to_defaults() -> None:
    raw = {"nodes": [{"id": "n", "type": "shape", "x": "10", "y": True, "width": -5, "height": 0}]}

    node = validate_canvas_data(raw).nodes[0]

    assert node.type == "text"
    assert (node.x, node.y, node.width, node.height) == (0, 0, 200, 100)


def test_malformed_entries_are_skipped() -> None:
    raw = {"nodes": [_node("a"), "junk", 3], "edges": ["junk", {"fromNode": ["a"], "toNode": "a"}]}

    data = validate_canvas_data(raw)

    assert [node.id for node in data.nodes] == ["a"]
    assert data.edges == []


def test_missing_lists_yield_empty_graph() -> None:
    data = validate_canvas_data({"nodes": "nope"})

    assert data.nodes == [] and data.edges == []


def test_to_dict_uses_canvas_keys() -> None:
    raw = {"nodes": [_node("a"), _node("b")], "edges": [{"id": "e", "fromNode": "a", "toNode": "b"}]}

    serialized = validate_canvas_data(raw).to_dict()

    assert list(serialized) == ["nodes", "edges"]
    assert serialized["edges"][0] == {"id": "e", "fromNode": "a", "toNode": "b"}
    assert "color" not in serialized["nodes"][0]


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ('```json\n{"nodes": []}\n```', '{"nodes": []}'),
        ('```\n{"a": 1}```', '{"a": 1}'),
        ('  {"a": 1}  ', '{"a": 1}'),
    ],
)
def test_strip_code_fences(text: str, expected: str) -> None:
    assert strip_code_fences(text) == expected


def test_parse_canvas_json_rejects_non_objects() -> None:
    with pytest.raises(GenerationError):
        parse_canvas_json("not json at all")
    with pytest.raises(GenerationError):
        parse_canvas_json("[1, 2]")

    assert parse_canvas_json('```json\n{"nodes": [], "edges": []}\n```') == {"nodes": [], "edges": []}


def test_numeric_ids_are_kept_and_edges_resolve() -> None:
    raw = parse_canvas_json(
        '{"nodes": [{"id": 1, "type": "text", "x": 0, "y": 0, "width": 10, "height": 10},'
        ' {"id": 2, "type": "text", "x": 50, "y": 0, "width": 10, "height": 10}],'
        ' "edges": [{"id": 7, "fromNode": 1, "toNode": 2}]}'
    )

    data = validate_canvas_data(raw)

    assert [node.id for node in data.nodes] == ["1", "2"]
    assert [(edge.id, edge.from_node, edge.to_node) for edge in data.edges] == [("7", "1", "2")]


def test_numeric_id_colliding_with_string_id_is_regenerated() -> None:
    data = validate_canvas_data({"nodes": [_node("1"), {**_node("x"), "id": 1}]})

    assert data.nodes[0].id == "1"
    assert data.nodes[1].id != "1"


def test_non_finite_geometry_falls_back_to_defaults() -> None:
    raw = parse_canvas_json(
        '{"nodes": [{"id": "a", "type": "text", "x": NaN, "y": Infinity, "width": Infinity, "height": -Infinity}]}'
    )

    serialized = validate_canvas_data(raw).to_dict()

    node = serialized["nodes"][0]
    assert (node["x"], node["y"], node["width"], node["height"]) == (0, 0, 200, 100)
    json.dumps(serialized, allow_nan=False)


@pytest.mark.parametrize("content", [[], [1, 2], "text", None])
def test_non_object_content_yields_empty_graph(content) -> None:
    data = validate_canvas_data(content)

    assert data.nodes == [] and data.edges == []
