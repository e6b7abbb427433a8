import pytest

from backend.src.models.canvas import (
    Archetype,
    CanvasData,
    Level,
    NodeType,
    RiskRecord,
    Side,
    StructuredTask,
    TaskRecord,
    TopicBranch,
    TopicTree,
)
from backend.src.services.layout import (
    COLUMNS,
    DESCRIPTION_STYLE,
    STRUCTURED_STYLE,
    closest_side,
    layout_from_description,
    layout_mind_map,
    layout_risk_matrix,
    layout_taskboard,
    risk_color,
    status_to_column,
    structured_tasks_to_records,
)


def _groups(data: CanvasData):
    return [node for node in data.nodes if node.type == NodeType.GROUP.value]


def _texts(data: CanvasData):
    return [node for node in data.nodes if node.type == NodeType.TEXT.value]


def _geometry(data: CanvasData):
    return [
        (node.type, node.x, node.y, node.width, node.height, node.color, node.text, node.label)
        for node in data.nodes
    ]


def _card(data: CanvasData, title: str):
    return next(node for node in _texts(data) if node.text.startswith(f"**{title}"))


class TestTaskboard:
    TEXT = "- Fix login bug (high)\n- Write docs\n- done: deploy to prod"

    def test_scenario_columns_and_colors(self) -> None:
        data = layout_from_description(Archetype.TASKBOARD, self.TEXT)

        assert len(_groups(data)) == 4
        assert len(_texts(data)) == 3
        assert [group.label for group in _groups(data)] == COLUMNS

        fix = _card(data, "Fix login bug")
        docs = _card(data, "Write docs")
        deploy = _card(data, "done: deploy to prod")

        assert fix.x == docs.x == 20
        assert fix.color == "1"
        assert docs.color == "3"
        assert "Priority: medium" in docs.text
        assert deploy.x == 3 * 270 + 20
        assert data.edges == []

    def test_cards_stack_within_a_column(self) -> None:
        data = layout_from_description(Archetype.TASKBOARD, self.TEXT)

        assert _card(data, "Fix login bug").y == 60
        assert _card(data, "Write docs").y == 60 + 80 + 10

    def test_empty_description_gets_placeholder(self) -> None:
        data = layout_from_description(Archetype.TASKBOARD, "- a\n- b")

        assert len(data.nodes) >= 5
        placeholder = _texts(data)
        assert len(placeholder) == 1
        assert placeholder[0].text == "Add tasks from:\n\n- a\n- b..."
        assert (placeholder[0].x, placeholder[0].y) == (20, 60)

    def test_placeholder_excerpt_is_truncated(self) -> None:
        data = layout_from_description(Archetype.TASKBOARD, "a\n" * 200)

        text = _texts(data)[0].text
        assert text == "Add tasks from:\n\n" + ("a\n" * 200)[:100] + "..."

    def test_fixed_column_height_in_description_style(self) -> None:
        data = layout_taskboard([TaskRecord(title="one")], DESCRIPTION_STYLE)

        assert {group.height for group in _groups(data)} == {600}

    def test_structured_style_grows_columns_and_colors_by_column(self) -> None:
        records = structured_tasks_to_records(
            [
                StructuredTask(title="a", status="in-progress", priority="high"),
                StructuredTask(title="b", status="in-progress"),
                StructuredTask(title="c", status="done"),
            ]
        )
        data = layout_taskboard(records, STRUCTURED_STYLE)

        heights = [group.height for group in _groups(data)]
        assert heights == [50 + 1 * 100, 50 + 3 * 100, 50 + 1 * 100, 50 + 2 * 100]
        assert _card(data, "a").color == "3"
        assert _card(data, "c").color == "4"
        assert _card(data, "a").y == 70
        assert _card(data, "b").y == 70 + 80 + 20

    def test_structured_board_without_tasks_has_no_placeholder(self) -> None:
        data = layout_taskboard([], STRUCTURED_STYLE)

        assert len(data.nodes) == 4


@pytest.mark.parametrize(
    ("status", "column"),
    [("pending", 0), ("TODO", 0), ("in-progress", 1), ("review", 2), ("completed", 3), ("done", 3), ("???", 0)],
)
def test_status_to_column(status: str, column: int) -> None:
    assert status_to_column(status) == column


class TestRiskMatrix:
    def test_scenario_cells_and_placement(self) -> None:
        data = layout_from_description(
            Archetype.RISKMATRIX, "Server outage - high impact, likely\nMinor UI glitch - low impact"
        )

        assert len(_groups(data)) == 9
        risks = _texts(data)
        assert len(risks) == 2

        outage, glitch = risks
        assert outage.text.startswith("Server outage")
        assert (outage.x, outage.y) == (2 * 270 + 20, 20)
        assert outage.color == "1"

        assert glitch.text.startswith("Minor UI glitch")
        assert (glitch.x, glitch.y) == (270 + 20, 2 * 220 + 20)
        assert glitch.color == "4"

    def test_cell_labels_and_colors(self) -> None:
        data = layout_risk_matrix([])

        labels = {group.label: group.color for group in _groups(data)}
        assert labels["High Impact / High Likelihood"] == "1"
        assert labels["Medium Impact / Medium Likelihood"] == "2"
        assert labels["Low Impact / Low Likelihood"] == "4"
        top_left = next(group for group in _groups(data) if (group.x, group.y) == (0, 0))
        assert top_left.label == "High Impact / Low Likelihood"

    def test_risks_in_one_cell_wrap_in_pairs(self) -> None:
        records = [RiskRecord(title=f"risk {i}", likelihood=Level.LOW, impact=Level.LOW) for i in range(3)]

        nodes = _texts(layout_risk_matrix(records))

        assert [(node.x, node.y) for node in nodes] == [(20, 460), (120, 460), (20, 510)]

    def test_text_limit_depends_on_style(self) -> None:
        record = RiskRecord(title="r" * 80)

        assert len(_texts(layout_risk_matrix([record], DESCRIPTION_STYLE))[0].text) == 50
        structured = _texts(layout_risk_matrix([record], STRUCTURED_STYLE))[0]
        assert len(structured.text) == 80
        assert structured.height == 50

    @pytest.mark.parametrize(
        ("impact", "likelihood", "color"),
        [
            (Level.HIGH, Level.HIGH, "1"),
            (Level.HIGH, Level.MEDIUM, "1"),
            (Level.MEDIUM, Level.MEDIUM, "2"),
            (Level.HIGH, Level.LOW, "2"),
            (Level.LOW, Level.MEDIUM, "4"),
            (Level.LOW, Level.LOW, "4"),
        ],
    )
    def test_risk_color(self, impact: Level, likelihood: Level, color: str) -> None:
        assert risk_color(impact, likelihood) == color


class TestMindMap:
    def test_scenario_tree(self) -> None:
        data = layout_from_description(Archetype.MINDMAP, "Project X\nBackend\n  Database\n  API\nFrontend\n  UI")

        by_text = {node.text: node for node in data.nodes}
        center = by_text["# Project X"]
        backend = by_text["## Backend"]
        frontend = by_text["## Frontend"]
        links = {(edge.from_node, edge.to_node) for edge in data.edges}

        assert len(data.nodes) == 6
        assert (center.id, backend.id) in links
        assert (center.id, frontend.id) in links
        assert (backend.id, by_text["Database"].id) in links
        assert (backend.id, by_text["API"].id) in links
        assert (frontend.id, by_text["UI"].id) in links
        assert len(data.edges) == 5

    def test_geometry(self) -> None:
        tree = TopicTree(
            central_theme="Plan",
            branches=[TopicBranch(topic="North", subtopics=["only"]), TopicBranch(topic="South")],
        )
        data = layout_mind_map(tree)
        by_text = {node.text: node for node in data.nodes}

        assert (by_text["# Plan"].x, by_text["# Plan"].y) == (425, 360)
        assert by_text["# Plan"].color == "5"
        # First branch sits straight above the centre.
        assert (by_text["## North"].x, by_text["## North"].y) == (440, 70)
        assert (by_text["## South"].x, by_text["## South"].y) == (440, 670)
        assert by_text["## South"].color == "2"
        # A single subtopic continues along the branch angle.
        assert (by_text["only"].x, by_text["only"].y) == (450, -70)

        north_edge = next(edge for edge in data.edges if edge.to_node == by_text["## North"].id)
        assert north_edge.from_side == Side.TOP.value
        assert north_edge.to_side == Side.BOTTOM.value

    def test_subtopics_capped_at_five(self) -> None:
        tree = TopicTree(branches=[TopicBranch(topic="B", subtopics=[f"s{i}" for i in range(8)])])

        data = layout_mind_map(tree)

        assert len(data.nodes) == 1 + 1 + 5
        assert "s5" not in {node.text for node in data.nodes}

    def test_subtopic_text_limit(self) -> None:
        tree = TopicTree(branches=[TopicBranch(topic="B", subtopics=["x" * 40])])

        short = layout_mind_map(tree, DESCRIPTION_STYLE)
        full = layout_mind_map(tree, STRUCTURED_STYLE)

        assert "x" * 30 in {node.text for node in short.nodes}
        assert "x" * 40 in {node.text for node in full.nodes}

    def test_empty_tree_is_only_the_centre(self) -> None:
        data = layout_mind_map(TopicTree())

        assert len(data.nodes) == 1
        assert data.nodes[0].text == "# Central Topic"
        assert data.edges == []


@pytest.mark.parametrize("archetype", [Archetype.PERSONNEL, Archetype.CUSTOM])
def test_passthrough_archetypes(archetype: Archetype) -> None:
    data = layout_from_description(archetype, "Alice leads Bob")

    assert len(data.nodes) == 1
    assert data.nodes[0].text == "Alice leads Bob"
    assert (data.nodes[0].width, data.nodes[0].height) == (400, 300)


def test_archetype_accepts_plain_strings() -> None:
    assert len(_groups(layout_from_description("taskboard", "- something"))) == 4


@pytest.mark.parametrize(
    ("start", "end", "side"),
    [
        ((0, 0), (10, 1), Side.RIGHT),
        ((0, 0), (-10, 1), Side.LEFT),
        ((0, 0), (1, 10), Side.BOTTOM),
        ((0, 0), (1, -10), Side.TOP),
        ((0, 0), (5, 5), Side.BOTTOM),
    ],
)
def test_closest_side(start, end, side) -> None:
    assert closest_side(*start, *end) is side


@pytest.mark.parametrize(
    ("archetype", "text"),
    [
        (Archetype.TASKBOARD, "- a task\n- in progress: another task\n- done: third task"),
        (Archetype.RISKMATRIX, "outage likely\nglitch minor\nleak critical, unlikely"),
        (Archetype.MINDMAP, "Theme\nA\n  a1\n  a2\nB\nC\n  c1"),
    ],
)
def test_layout_is_deterministic_and_ids_unique(archetype: Archetype, text: str) -> None:
    first = layout_from_description(archetype, text)
    second = layout_from_description(archetype, text)

    assert _geometry(first) == _geometry(second)
    node_ids = [node.id for node in first.nodes]
    edge_ids = [edge.id for edge in first.edges]
    assert len(set(node_ids)) == len(node_ids)
    assert len(set(edge_ids)) == len(edge_ids)
    assert all(edge.from_node in set(node_ids) and edge.to_node in set(node_ids) for edge in first.edges)
