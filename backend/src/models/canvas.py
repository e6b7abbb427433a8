"""JSON Canvas graph models and the structured records fed to the layout engine."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Number = Union[int, float]


class NodeType(str, Enum):
    """Node kinds defined by the JSON Canvas format."""

    TEXT = "text"
    FILE = "file"
    LINK = "link"
    GROUP = "group"


class Side(str, Enum):
    """Attachment side of an edge endpoint."""

    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"


class Level(str, Enum):
    """Three-step scale shared by priority, likelihood and impact."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return LEVELS.index(self)

    @classmethod
    def parse(cls, value: Any, default: "Level | None" = None) -> "Level":
        """Lenient lookup: unknown or empty values fall back to ``default`` (medium)."""
        if isinstance(value, Level):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return default or cls.MEDIUM


LEVELS: List[Level] = [Level.LOW, Level.MEDIUM, Level.HIGH]


class Archetype(str, Enum):
    """Diagram shapes the assistant knows how to lay out."""

    TASKBOARD = "taskboard"
    RISKMATRIX = "riskmatrix"
    MINDMAP = "mindmap"
    PERSONNEL = "personnel"
    CUSTOM = "custom"

    @classmethod
    def detect(cls, text: str) -> "Archetype":
        """Pick an archetype from keywords in a free-text request (mind map by default)."""
        lowered = (text or "").lower()
        if any(word in lowered for word in ("task", "kanban", "board")):
            return cls.TASKBOARD
        if any(word in lowered for word in ("risk", "matrix")):
            return cls.RISKMATRIX
        if any(word in lowered for word in ("org", "personnel", "team")):
            return cls.PERSONNEL
        return cls.MINDMAP


class CanvasNode(BaseModel):
    """Positioned node in a canvas document."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: str = Field(..., min_length=1)
    type: NodeType = NodeType.TEXT
    x: Number = 0
    y: Number = 0
    width: Number = 200
    height: Number = 100
    text: Optional[str] = None
    file: Optional[str] = None
    url: Optional[str] = None
    label: Optional[str] = None
    color: Optional[str] = None

    @field_validator("width", "height")
    @classmethod
    def _positive_size(cls, value: Number) -> Number:
        if value <= 0:
            raise ValueError("Node dimensions must be positive")
        return value


class CanvasEdge(BaseModel):
    """Directed connector between two canvas nodes."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: str = Field(..., min_length=1)
    from_node: str = Field(..., alias="fromNode")
    to_node: str = Field(..., alias="toNode")
    from_side: Optional[Side] = Field(default=None, alias="fromSide")
    to_side: Optional[Side] = Field(default=None, alias="toSide")
    label: Optional[str] = None
    color: Optional[str] = None


class CanvasData(BaseModel):
    """A whole canvas: the unit that is validated and written to disk."""

    nodes: List[CanvasNode] = Field(default_factory=list)
    edges: List[CanvasEdge] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """On-disk representation (camelCase keys, unset optionals omitted)."""
        return {
            "nodes": [node.model_dump(by_alias=True, exclude_none=True) for node in self.nodes],
            "edges": [edge.model_dump(by_alias=True, exclude_none=True) for edge in self.edges],
        }

    def node_ids(self) -> set[str]:
        return {node.id for node in self.nodes}


class TaskRecord(BaseModel):
    """Task line recovered from free text, already assigned to a board column."""

    title: str
    column: int = Field(default=0, ge=0, le=3)
    priority: Level = Level.MEDIUM


class StructuredTask(BaseModel):
    """Caller-supplied task for a board (status is mapped onto a column)."""

    title: str = Field(..., min_length=1)
    status: str = "pending"
    priority: Optional[str] = None


class RiskRecord(BaseModel):
    """Risk placed on the likelihood × impact grid."""

    title: str = Field(..., min_length=1)
    likelihood: Level = Level.MEDIUM
    impact: Level = Level.MEDIUM


class TopicBranch(BaseModel):
    topic: str
    subtopics: List[str] = Field(default_factory=list)


class TopicTree(BaseModel):
    """Central theme with its branches, as used by the mind map layout."""

    central_theme: str = "Central Topic"
    branches: List[TopicBranch] = Field(default_factory=list)


class CanvasWriteResult(BaseModel):
    """Outcome of persisting a canvas."""

    path: str
    created: bool
    node_count: int
    edge_count: int


class CanvasFromDescription(BaseModel):
    """Deterministic layout of free text (no model call)."""

    name: str = Field(..., min_length=1, max_length=200)
    layout_type: Archetype = Archetype.MINDMAP
    description: str = Field(..., max_length=100_000)
    folder: Optional[str] = None


class CanvasGenerate(BaseModel):
    """Model-generated layout; archetype is detected from the text when omitted."""

    description: str = Field(..., min_length=1, max_length=20_000)
    layout_type: Optional[Archetype] = None
    name: Optional[str] = Field(default=None, max_length=200)


class CanvasFromNote(BaseModel):
    note_path: str = Field(..., min_length=1)
    layout_type: Archetype = Archetype.MINDMAP
    name: Optional[str] = Field(default=None, max_length=200)


class TaskboardCanvasCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    tasks: List[StructuredTask] = Field(default_factory=list)
    folder: Optional[str] = None


class RiskMatrixCanvasCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    risks: List[RiskRecord] = Field(default_factory=list)
    folder: Optional[str] = None


class MindMapCanvasCreate(TopicTree):
    name: str = Field(..., min_length=1, max_length=200)
    folder: Optional[str] = None


__all__ = [
    "Archetype",
    "CanvasFromDescription",
    "CanvasFromNote",
    "CanvasGenerate",
    "MindMapCanvasCreate",
    "RiskMatrixCanvasCreate",
    "TaskboardCanvasCreate",
    "CanvasData",
    "CanvasEdge",
    "CanvasNode",
    "CanvasWriteResult",
    "LEVELS",
    "Level",
    "NodeType",
    "RiskRecord",
    "Side",
    "StructuredTask",
    "TaskRecord",
    "TopicBranch",
    "TopicTree",
]
