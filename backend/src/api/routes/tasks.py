"""HTTP API routes for task notes."""

from __future__ import annotations

from typing import List, Optional
from urllib.parse import unquote

from fastapi import APIRouter, Depends, Query

from ...models.canvas import Level
from ...models.task import (
    QuickTaskCreate,
    SubtaskCreate,
    TaskCreate,
    TaskData,
    TaskDescription,
    TaskFilter,
    TaskInfo,
    TaskPriorityUpdate,
    TaskStatus,
    TaskStatusUpdate,
)
from ...services.tasks import TaskManager
from ..dependencies import get_task_manager

router = APIRouter()


def _created(path: str) -> dict:
    return {"path": path}


@router.post("/api/tasks", status_code=201)
async def create_task(create: TaskCreate, tasks: TaskManager = Depends(get_task_manager)):
    task = TaskData(**create.model_dump(exclude={"folder", "timestamped"}))
    return _created(tasks.create_task(task, folder=create.folder, timestamped=create.timestamped))


@router.post("/api/tasks/quick", status_code=201)
async def create_quick_task(create: QuickTaskCreate, tasks: TaskManager = Depends(get_task_manager)):
    return _created(tasks.create_quick_task(create.title, create.priority))


@router.post("/api/tasks/from-description", status_code=201)
async def create_task_from_description(
    request: TaskDescription, tasks: TaskManager = Depends(get_task_manager)
):
    """Structure a free-text description with Gemini; 502 when generation fails."""
    return _created(await tasks.create_task_from_description(request.description))


@router.get("/api/tasks", response_model=List[TaskInfo])
async def list_tasks(
    status: Optional[TaskStatus] = Query(None),
    priority: Optional[Level] = Query(None),
    tag: Optional[str] = Query(None),
    folder: Optional[str] = Query(None),
    tasks: TaskManager = Depends(get_task_manager),
):
    return tasks.list_tasks(TaskFilter(status=status, priority=priority, tag=tag, folder=folder))


@router.patch("/api/tasks/{path:path}/status")
async def update_status(
    path: str, update: TaskStatusUpdate, tasks: TaskManager = Depends(get_task_manager)
):
    return {"path": tasks.update_task_status(unquote(path), update.status), "status": update.status.value}


@router.patch("/api/tasks/{path:path}/priority")
async def update_priority(
    path: str, update: TaskPriorityUpdate, tasks: TaskManager = Depends(get_task_manager)
):
    return {
        "path": tasks.update_task_priority(unquote(path), update.priority),
        "priority": update.priority.value,
    }


@router.post("/api/tasks/{path:path}/subtasks")
async def add_subtask(path: str, create: SubtaskCreate, tasks: TaskManager = Depends(get_task_manager)):
    return {"path": tasks.add_subtask(unquote(path), create.subtask)}


__all__ = ["router"]
