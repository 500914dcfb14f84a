"""
Background task endpoints.

A single POST endpoint dispatches on ``action``; GET returns one task
snapshot or the task list.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...core.errors import InvalidRequestError
from ...core.logging import logger, task_tag
from ...models.requests import BackgroundTaskRequest
from ...models.responses import (
    CleanupResponse,
    ConfigCheckResponse,
    ResultsSummary,
    TaskCancelledResponse,
    TaskCreatedResponse,
    TaskListResponse,
    TaskResultsResponse,
    TaskSnapshot,
)
from ...models.task import Task
from ...tasks.processor import BatchProcessor
from ...tasks.registry import CANCELLED_MESSAGE, TaskRegistry
from ..dependencies import get_processor, get_registry


router = APIRouter()

REALTIME_WINDOW = 5


def _require_task_id(request: BackgroundTaskRequest) -> str:
    if not request.task_id:
        raise InvalidRequestError("taskId is required", action=request.action)
    return request.task_id


def _results_response(task: Task, window: Optional[int] = None) -> TaskResultsResponse:
    results = task.results if window is None else task.results[-window:]
    errors = task.errors if window is None else task.errors[-window:]
    summary = ResultsSummary(
        total=task.progress.total,
        completed=task.results_produced,
        failed=task.errors_produced,
        processing=len(task.currently_processing),
    )
    if window is not None:
        summary.remaining = max(0, task.progress.total - task.progress.completed)

    return TaskResultsResponse(
        task_id=task.id,
        status=task.status,
        progress=task.progress,
        results=results,
        errors=errors,
        currently_processing=list(task.currently_processing),
        summary=summary,
    )


def _list_response(registry: TaskRegistry) -> TaskListResponse:
    return TaskListResponse(
        tasks=[TaskSnapshot.from_task(task) for task in registry.list()],
        summary=registry.summary(),
    )


def create_task(
    request: BackgroundTaskRequest,
    registry: TaskRegistry,
    processor: BatchProcessor
) -> TaskCreatedResponse:
    urls = [url.strip() for url in request.urls or [] if url and url.strip()]
    if not urls:
        raise InvalidRequestError("urls must be a non-empty list", action=request.action)

    task, merged = registry.create(urls, kind=request.kind, config=request.config)
    processor.start(task.id)

    if merged:
        message = f"Added {len(urls)} URLs to running task"
    else:
        message = f"Created task for {len(urls)} URLs"
    logger.info(f"{task_tag(task.id)} {message}")

    return TaskCreatedResponse(
        task_id=task.id,
        status="added_to_existing" if merged else "created",
        message=message,
        total_urls=len(task.urls),
    )


@router.post(
    "/background-task",
    summary="Manage background tasks",
    description="Create, inspect, cancel, list and clean up batch crawl/classify tasks"
)
async def background_task(
    request: BackgroundTaskRequest,
    registry: TaskRegistry = Depends(get_registry),
    processor: BatchProcessor = Depends(get_processor)
):
    """
    Dispatch a background task action.

    - **create**: register ``urls`` (merged into an active task by default)
    - **status**: counts-only snapshot
    - **results**: all retained results and errors
    - **realtime-status**: the last few results and errors
    - **cancel**: stop a pending or running task
    - **config-check**: which analysis settings the task holds
    - **list**: every task, newest first
    - **cleanup**: remove completed tasks older than an hour
    """
    action = request.action

    if action == "create":
        return create_task(request, registry, processor)

    if action == "list":
        return _list_response(registry)

    if action == "cleanup":
        removed = registry.purge_completed()
        return CleanupResponse(
            message=f"Removed {removed} completed tasks",
            removed=removed,
            remaining=len(registry),
        )

    task_id = _require_task_id(request)

    if action == "cancel":
        task = registry.get(task_id)
        if task.status.is_terminal:
            return TaskCancelledResponse(
                task_id=task_id,
                status=task.status.value,
                message=f"Task already finished ({task.status.value}), nothing to cancel",
            )
        processor.cancel(task_id)
        return TaskCancelledResponse(task_id=task_id, message=CANCELLED_MESSAGE)

    task = registry.get(task_id)
    if action == "status":
        return TaskSnapshot.from_task(task)
    if action == "results":
        return _results_response(task)
    if action == "realtime-status":
        return _results_response(task, window=REALTIME_WINDOW)
    return ConfigCheckResponse(task_id=task.id, config_status=task.config_status())


@router.get(
    "/background-task",
    summary="Get task status",
    description="One task snapshot when taskId is given, otherwise all tasks"
)
async def get_background_task(
    task_id: Optional[str] = Query(default=None, alias="taskId"),
    registry: TaskRegistry = Depends(get_registry)
):
    if task_id:
        return TaskSnapshot.from_task(registry.get(task_id))
    return _list_response(registry)
