"""Deterministic layout engine for taskboards, risk matrices and mind maps.

All geometry is a pure function of the input records and a ``LayoutStyle``.
Only node and edge ids are random.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import math
from typing import Callable, Dict, List, Optional, Sequence
import uuid

from ..models.canvas import (
    LEVELS,
    Archetype,
    CanvasData,
    CanvasEdge,
    CanvasNode,
    Level,
    NodeType,
    RiskRecord,
    Side,
    StructuredTask,
    TaskRecord,
    TopicTree,
)
from .text_extractor import extract_risks, extract_tasks, extract_topics

COLUMNS = ["To Do", "In Progress", "Review", "Done"]
COLUMN_COLORS = {"To Do": "2", "In Progress": "3", "Review": "5", "Done": "4"}
PRIORITY_COLORS = {Level.HIGH: "1", Level.MEDIUM: "3", Level.LOW: "4"}
STATUS_COLUMNS = {
    "pending": 0,
    "todo": 0,
    "in-progress": 1,
    "inprogress": 1,
    "review": 2,
    "completed": 3,
    "done": 3,
}

COLUMN_WIDTH = 250
COLUMN_PADDING = 20
COLUMN_HEADER = 50
CARD_HEIGHT = 80

CELL_WIDTH = 250
CELL_HEIGHT = 200
CELL_PADDING = 20
RISK_SUBCOLUMN_STEP = 100

CENTER_X = 500
CENTER_Y = 400
BRANCH_RADIUS = 300
SUBTOPIC_RADIUS = 150
SUBTOPIC_ARC = math.pi / 3
MAX_SUBTOPICS = 5

PLACEHOLDER_EXCERPT = 100


class ColorBy(str, Enum):
    PRIORITY = "priority"
    COLUMN = "column"


@dataclass(frozen=True)
class LayoutStyle:
    """Knobs that differ between free-text and structured canvases."""

    color_by: ColorBy = ColorBy.PRIORITY
    # None means "grow with the number of cards in the column".
    column_height: Optional[int] = 600
    task_top: int = 60
    row_gap: int = 10
    risk_node_width: int = 100
    risk_node_height: int = 40
    risk_row_step: int = 50
    risk_text_limit: Optional[int] = 50
    subtopic_text_limit: Optional[int] = 30


DESCRIPTION_STYLE = LayoutStyle()
STRUCTURED_STYLE = LayoutStyle(
    color_by=ColorBy.COLUMN,
    column_height=None,
    task_top=COLUMN_HEADER + COLUMN_PADDING,
    row_gap=20,
    risk_node_height=50,
    risk_row_step=60,
    risk_text_limit=None,
    subtopic_text_limit=None,
)


def generate_id() -> str:
    return uuid.uuid4().hex[:16]


def closest_side(from_x: float, from_y: float, to_x: float, to_y: float) -> Side:
    """Snap the direction from one point to another onto a compass side."""
    dx = to_x - from_x
    dy = to_y - from_y
    if abs(dx) > abs(dy):
        return Side.RIGHT if dx > 0 else Side.LEFT
    return Side.BOTTOM if dy > 0 else Side.TOP


def _clip(text: str, limit: Optional[int]) -> str:
    return text if limit is None else text[:limit]


def _text_node(x: float, y: float, width: int, height: int, text: str, color: Optional[str] = None) -> CanvasNode:
    return CanvasNode(
        id=generate_id(),
        type=NodeType.TEXT,
        x=round(x),
        y=round(y),
        width=width,
        height=height,
        text=text,
        color=color,
    )


def _group_node(x: float, y: float, width: int, height: int, label: str, color: str) -> CanvasNode:
    return CanvasNode(
        id=generate_id(),
        type=NodeType.GROUP,
        x=round(x),
        y=round(y),
        width=width,
        height=height,
        label=label,
        color=color,
    )


def _edge(from_node: CanvasNode, to_node: CanvasNode, from_xy: tuple, to_xy: tuple) -> CanvasEdge:
    return CanvasEdge(
        id=generate_id(),
        from_node=from_node.id,
        to_node=to_node.id,
        from_side=closest_side(*from_xy, *to_xy),
        to_side=closest_side(*to_xy, *from_xy),
    )


def risk_color(impact: Level, likelihood: Level) -> str:
    score = (impact.rank + 1) * (likelihood.rank + 1)
    if score >= 6:
        return "1"
    if score >= 3:
        return "2"
    return "4"


def status_to_column(status: str) -> int:
    return STATUS_COLUMNS.get((status or "").strip().lower(), 0)


def structured_tasks_to_records(tasks: Sequence[StructuredTask]) -> List[TaskRecord]:
    return [
        TaskRecord(title=task.title, column=status_to_column(task.status), priority=Level.parse(task.priority))
        for task in tasks
    ]


# -- taskboard ------------------------------------------------------------


def _column_height(style: LayoutStyle, card_count: int) -> int:
    if style.column_height is not None:
        return style.column_height
    return COLUMN_HEADER + (card_count + 1) * (CARD_HEIGHT + COLUMN_PADDING)


def layout_taskboard(
    records: Sequence[TaskRecord],
    style: LayoutStyle = DESCRIPTION_STYLE,
    placeholder: Optional[str] = None,
) -> CanvasData:
    """
    Four column groups with one card per task.

    When ``placeholder`` is given and there are no records, a single card with
    that text is placed at the top of the first column.
    """
    counts = [0] * len(COLUMNS)
    for record in records:
        counts[record.column] += 1

    nodes: List[CanvasNode] = []
    for index, column in enumerate(COLUMNS):
        nodes.append(
            _group_node(
                index * (COLUMN_WIDTH + COLUMN_PADDING),
                0,
                COLUMN_WIDTH,
                _column_height(style, counts[index]),
                column,
                COLUMN_COLORS[column],
            )
        )

    card_width = COLUMN_WIDTH - 2 * COLUMN_PADDING
    rows = [0] * len(COLUMNS)
    for record in records:
        row = rows[record.column]
        rows[record.column] += 1
        if style.color_by is ColorBy.COLUMN:
            color = COLUMN_COLORS[COLUMNS[record.column]]
        else:
            color = PRIORITY_COLORS[record.priority]
        nodes.append(
            _text_node(
                record.column * (COLUMN_WIDTH + COLUMN_PADDING) + COLUMN_PADDING,
                style.task_top + row * (CARD_HEIGHT + style.row_gap),
                card_width,
                CARD_HEIGHT,
                f"**{record.title}**\n\nPriority: {record.priority.value}",
                color,
            )
        )

    if not records and placeholder is not None:
        nodes.append(_text_node(COLUMN_PADDING, style.task_top, card_width, CARD_HEIGHT, placeholder))

    return CanvasData(nodes=nodes, edges=[])


# -- risk matrix ----------------------------------------------------------


def layout_risk_matrix(records: Sequence[RiskRecord], style: LayoutStyle = DESCRIPTION_STYLE) -> CanvasData:
    """3×3 likelihood (x) × impact (y) grid, high impact on top."""
    nodes: List[CanvasNode] = []
    for impact in LEVELS:
        for likelihood in LEVELS:
            nodes.append(
                _group_node(
                    likelihood.rank * (CELL_WIDTH + CELL_PADDING),
                    (2 - impact.rank) * (CELL_HEIGHT + CELL_PADDING),
                    CELL_WIDTH,
                    CELL_HEIGHT,
                    f"{impact.value.title()} Impact / {likelihood.value.title()} Likelihood",
                    risk_color(impact, likelihood),
                )
            )

    occupancy: Dict[tuple, int] = {}
    for record in records:
        key = (record.impact, record.likelihood)
        count = occupancy.get(key, 0)
        occupancy[key] = count + 1
        nodes.append(
            _text_node(
                record.likelihood.rank * (CELL_WIDTH + CELL_PADDING)
                + CELL_PADDING
                + (count % 2) * RISK_SUBCOLUMN_STEP,
                (2 - record.impact.rank) * (CELL_HEIGHT + CELL_PADDING)
                + CELL_PADDING
                + (count // 2) * style.risk_row_step,
                style.risk_node_width,
                style.risk_node_height,
                _clip(record.title, style.risk_text_limit),
                risk_color(record.impact, record.likelihood),
            )
        )
    return CanvasData(nodes=nodes, edges=[])


# -- mind map -------------------------------------------------------------


def layout_mind_map(tree: TopicTree, style: LayoutStyle = DESCRIPTION_STYLE) -> CanvasData:
    """Radial layout: theme in the middle, branches on a circle, subtopics fanned around each branch."""
    center = _text_node(CENTER_X - 75, CENTER_Y - 40, 150, 80, f"# {tree.central_theme}", "5")
    nodes: List[CanvasNode] = [center]
    edges: List[CanvasEdge] = []

    branch_count = len(tree.branches)
    angle_step = 2 * math.pi / branch_count if branch_count else 0.0

    for index, branch in enumerate(tree.branches):
        angle = angle_step * index - math.pi / 2
        bx = CENTER_X + math.cos(angle) * BRANCH_RADIUS
        by = CENTER_Y + math.sin(angle) * BRANCH_RADIUS
        branch_node = _text_node(bx - 60, by - 30, 120, 60, f"## {branch.topic}", str((index % 6) + 1))
        nodes.append(branch_node)
        edges.append(_edge(center, branch_node, (CENTER_X, CENTER_Y), (bx, by)))

        subtopics = branch.subtopics[:MAX_SUBTOPICS]
        if len(subtopics) == 1:
            sub_angles = [angle]
        else:
            sub_step = SUBTOPIC_ARC / max(len(subtopics) - 1, 1)
            sub_angles = [angle - SUBTOPIC_ARC / 2 + sub_step * j for j in range(len(subtopics))]

        for subtopic, sub_angle in zip(subtopics, sub_angles):
            sx = bx + math.cos(sub_angle) * SUBTOPIC_RADIUS
            sy = by + math.sin(sub_angle) * SUBTOPIC_RADIUS
            sub_node = _text_node(sx - 50, sy - 20, 100, 40, _clip(subtopic, style.subtopic_text_limit))
            nodes.append(sub_node)
            edges.append(_edge(branch_node, sub_node, (bx, by), (sx, sy)))

    return CanvasData(nodes=nodes, edges=edges)


def layout_passthrough(text: str, style: LayoutStyle = DESCRIPTION_STYLE) -> CanvasData:
    """Single text node for archetypes without a dedicated layout."""
    return CanvasData(nodes=[_text_node(0, 0, 400, 300, text or "")], edges=[])


# -- free-text dispatch ---------------------------------------------------


def _taskboard_from_text(text: str, style: LayoutStyle) -> CanvasData:
    placeholder = f"Add tasks from:\n\n{(text or '')[:PLACEHOLDER_EXCERPT]}..."
    return layout_taskboard(extract_tasks(text), style, placeholder=placeholder)


def _risk_matrix_from_text(text: str, style: LayoutStyle) -> CanvasData:
    return layout_risk_matrix(extract_risks(text), style)


def _mind_map_from_text(text: str, style: LayoutStyle) -> CanvasData:
    return layout_mind_map(extract_topics(text), style)


ARCHETYPE_HANDLERS: Dict[Archetype, Callable[[str, LayoutStyle], CanvasData]] = {
    Archetype.TASKBOARD: _taskboard_from_text,
    Archetype.RISKMATRIX: _risk_matrix_from_text,
    Archetype.MINDMAP: _mind_map_from_text,
    Archetype.PERSONNEL: layout_passthrough,
    Archetype.CUSTOM: layout_passthrough,
}

_missing = set(Archetype) - set(ARCHETYPE_HANDLERS)
if _missing:
    raise RuntimeError(f"No layout handler for archetypes: {sorted(a.value for a in _missing)}")


def layout_from_description(
    archetype: Archetype | str, text: str, style: LayoutStyle = DESCRIPTION_STYLE
) -> CanvasData:
    """Extract records from free text and lay them out for the given archetype."""
    return ARCHETYPE_HANDLERS[Archetype(archetype)](text, style)


__all__ = [
    "ARCHETYPE_HANDLERS",
    "COLUMNS",
    "ColorBy",
    "DESCRIPTION_STYLE",
    "LayoutStyle",
    "STRUCTURED_STYLE",
    "closest_side",
    "generate_id",
    "layout_from_description",
    "layout_mind_map",
    "layout_passthrough",
    "layout_risk_matrix",
    "layout_taskboard",
    "risk_color",
    "status_to_column",
    "structured_tasks_to_records",
]
