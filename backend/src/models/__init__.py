"""Pydantic models for data validation and serialization."""

from .canvas import (
    Archetype,
    CanvasData,
    CanvasEdge,
    CanvasFromDescription,
    CanvasFromNote,
    CanvasGenerate,
    CanvasNode,
    CanvasWriteResult,
    Level,
    MindMapCanvasCreate,
    NodeType,
    RiskMatrixCanvasCreate,
    RiskRecord,
    Side,
    StructuredTask,
    TaskboardCanvasCreate,
    TaskRecord,
    TopicBranch,
    TopicTree,
)
from .chat import ChatMessage, ChatReply, ChatRequest, GenerationResult
from .note import NoteContent, NoteCreate, NoteSummary, NoteUpdate, SearchResult, VaultInfo
from .task import TaskCreate, TaskData, TaskFilter, TaskInfo, TaskStatus

__all__ = [
    "Archetype",
    "CanvasData",
    "CanvasEdge",
    "CanvasFromDescription",
    "CanvasFromNote",
    "CanvasGenerate",
    "CanvasNode",
    "CanvasWriteResult",
    "Level",
    "MindMapCanvasCreate",
    "NodeType",
    "RiskMatrixCanvasCreate",
    "RiskRecord",
    "Side",
    "StructuredTask",
    "TaskboardCanvasCreate",
    "TaskRecord",
    "TopicBranch",
    "TopicTree",
    "ChatMessage",
    "ChatReply",
    "ChatRequest",
    "GenerationResult",
    "NoteContent",
    "NoteCreate",
    "NoteSummary",
    "NoteUpdate",
    "SearchResult",
    "VaultInfo",
    "TaskCreate",
    "TaskData",
    "TaskFilter",
    "TaskInfo",
    "TaskStatus",
]
