import json
from unittest.mock import AsyncMock, Mock

import pytest

from backend.src.models.canvas import (
    Archetype,
    Level,
    RiskRecord,
    StructuredTask,
    TopicBranch,
    TopicTree,
)
from backend.src.models.chat import GenerationResult
from backend.src.services.canvas_service import CanvasService, sanitize_filename
from backend.src.services.gemini import GeminiService, GenerationError


@pytest.fixture
def gemini() -> Mock:
    mock = Mock(spec=GeminiService)
    mock.is_configured.return_value = True
    mock.generate_canvas_layout = AsyncMock()
    return mock


@pytest.fixture
def canvases(vault_config, vault, gemini) -> CanvasService:
    return CanvasService(vault_config, vault, gemini)


@pytest.mark.parametrize(
    "name",
    ['a\\b/c:d*e?f"g<h>i|j', "  spaced   out\tname ", "x" * 250, "already-clean", ""],
)
def test_sanitize_filename_properties(name: str) -> None:
    cleaned = sanitize_filename(name)

    assert not any(char in cleaned for char in '\\/:*?"<>|')
    assert not any(char.isspace() for char in cleaned)
    assert len(cleaned) <= 100
    assert sanitize_filename(cleaned) == cleaned


def test_sanitize_filename_collapses_whitespace() -> None:
    assert sanitize_filename("Sprint  1 / Board") == "Sprint-1---Board"


def test_create_canvas_writes_json_file(canvases: CanvasService, vault_config) -> None:
    result = canvases.create_canvas("Sprint Board", Archetype.TASKBOARD, "- Fix login bug (high)")

    assert result.path == "Canvas/Sprint-Board.canvas"
    assert result.created is True
    assert result.node_count == 5

    on_disk = vault_config.vault_path / "Canvas" / "Sprint-Board.canvas"
    payload = json.loads(on_disk.read_text(encoding="utf-8"))
    assert list(payload) == ["nodes", "edges"]
    assert len(payload["nodes"]) == 5
    assert on_disk.read_text(encoding="utf-8").startswith('{\n  "nodes"')


def test_same_name_updates_in_place(canvases: CanvasService, vault_config) -> None:
    canvases.create_canvas("map", Archetype.MINDMAP, "Theme\nA\nB")
    second = canvases.create_canvas("map", Archetype.MINDMAP, "Theme\nA")

    assert second.created is False
    assert second.node_count == 2
    files = list((vault_config.vault_path / "Canvas").glob("*.canvas"))
    assert [path.name for path in files] == ["map.canvas"]


def test_custom_folder(canvases: CanvasService) -> None:
    result = canvases.create_canvas("org", Archetype.PERSONNEL, "Alice", folder="Boards/Team/")

    assert result.path == "Boards/Team/org.canvas"


def test_structured_canvases(canvases: CanvasService) -> None:
    board = canvases.create_taskboard(
        "board", [StructuredTask(title="a", status="done"), StructuredTask(title="b")]
    )
    matrix = canvases.create_risk_matrix(
        "risks", [RiskRecord(title="outage", likelihood=Level.HIGH, impact=Level.HIGH)]
    )
    mind = canvases.create_mind_map(
        "mind", TopicTree(central_theme="T", branches=[TopicBranch(topic="A", subtopics=["a1"])])
    )

    assert (board.node_count, board.edge_count) == (6, 0)
    assert (matrix.node_count, matrix.edge_count) == (10, 0)
    assert (mind.node_count, mind.edge_count) == (3, 2)


def test_read_canvas_round_trips(canvases: CanvasService) -> None:
    canvases.create_canvas("map", Archetype.MINDMAP, "Theme\nA\n  a1")

    data = canvases.read_canvas("Canvas/map")

    assert len(data.nodes) == 3
    assert len(data.edges) == 2


def test_read_missing_canvas(canvases: CanvasService) -> None:
    with pytest.raises(FileNotFoundError):
        canvases.read_canvas("Canvas/nope.canvas")


def test_read_canvas_with_non_object_content(canvases: CanvasService, vault) -> None:
    vault.write_file("Canvas/broken.canvas", "[]")

    data = canvases.read_canvas("Canvas/broken.canvas")

    assert data.nodes == [] and data.edges == []


async def test_generated_non_finite_geometry_is_written_as_strict_json(
    canvases: CanvasService, gemini: Mock, vault_config
) -> None:
    gemini.generate_canvas_layout.return_value = GenerationResult(
        success=True,
        text='{"nodes": [{"id": 1, "x": NaN, "y": 5, "width": Infinity, "height": 40, "text": "A"}, {"id": 2, "text": "B"}],'
        ' "edges": [{"id": "e", "fromNode": 1, "toNode": 2}]}',
    )

    result = await canvases.generate_canvas("plan", Archetype.MINDMAP, "strict")

    def reject(token: str):
        raise ValueError(token)

    text = (vault_config.vault_path / "Canvas" / "strict.canvas").read_text()
    data = json.loads(text, parse_constant=reject)
    assert (result.node_count, result.edge_count) == (2, 1)
    assert (data["nodes"][0]["x"], data["nodes"][0]["width"]) == (0, 200)
    assert data["edges"][0]["fromNode"] == "1"


async def test_generate_canvas_validates_model_output(canvases: CanvasService, gemini: Mock) -> None:
    gemini.generate_canvas_layout.return_value = GenerationResult(
        success=True,
        text=json.dumps(
            {
                "nodes": [{"id": "a", "type": "text", "x": 0, "y": 0, "width": 100, "height": 50, "text": "A"}],
                "edges": [{"id": "e", "fromNode": "a", "toNode": "ghost"}],
            }
        ),
    )

    result = await canvases.generate_canvas("a plan", Archetype.MINDMAP, name="plan")

    assert result.path == "Canvas/plan.canvas"
    assert (result.node_count, result.edge_count) == (1, 0)
    gemini.generate_canvas_layout.assert_awaited_once_with("a plan", Archetype.MINDMAP)


async def test_generate_canvas_default_name(canvases: CanvasService, gemini: Mock) -> None:
    gemini.generate_canvas_layout.return_value = GenerationResult(success=True, text='{"nodes": []}')

    result = await canvases.generate_canvas("x", "riskmatrix")

    assert result.path.startswith("Canvas/riskmatrix-")


async def test_generate_canvas_failures_raise(canvases: CanvasService, gemini: Mock) -> None:
    gemini.generate_canvas_layout.return_value = GenerationResult(success=False, error="API error: 500")
    with pytest.raises(GenerationError, match="API error: 500"):
        await canvases.generate_canvas("x", Archetype.MINDMAP)

    gemini.generate_canvas_layout.return_value = GenerationResult(success=True, text="sorry, no JSON")
    with pytest.raises(GenerationError):
        await canvases.generate_canvas("x", Archetype.MINDMAP)

    gemini.is_configured.return_value = False
    with pytest.raises(GenerationError, match="configure"):
        await canvases.generate_canvas("x", Archetype.MINDMAP)


async def test_generate_canvas_from_note(canvases: CanvasService, vault, gemini: Mock) -> None:
    vault.create_note("Projects/Launch.md", "Launch plan\nMarketing\nEngineering")
    gemini.generate_canvas_layout.return_value = GenerationResult(success=True, text='{"nodes": [], "edges": []}')

    result = await canvases.generate_canvas_from_note("Projects/Launch.md", Archetype.TASKBOARD)

    assert result.path == "Canvas/Launch-taskboard.canvas"
    gemini.generate_canvas_layout.assert_awaited_once_with(
        "Launch plan\nMarketing\nEngineering", Archetype.TASKBOARD
    )
