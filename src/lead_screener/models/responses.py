"""API response schemas."""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from pydantic import Field

from .analysis import CamelModel
from .task import ErrorRecord, ResultRecord, Task, TaskKind, TaskProgress, TaskStatus


class TaskCreatedResponse(CamelModel):
    task_id: str
    status: Literal["created", "added_to_existing"]
    message: str
    total_urls: int


class TaskSnapshot(CamelModel):
    """Counts-only view of a task."""
    task_id: str
    kind: TaskKind
    status: TaskStatus
    progress: TaskProgress
    results_count: int
    errors_count: int
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_task(cls, task: Task) -> "TaskSnapshot":
        return cls(
            task_id=task.id,
            kind=task.kind,
            status=task.status,
            progress=task.progress.model_copy(),
            results_count=task.results_produced,
            errors_count=task.errors_produced,
            created_at=task.created_at,
            started_at=task.started_at,
            completed_at=task.completed_at,
        )


class ResultsSummary(CamelModel):
    total: int
    completed: int
    failed: int
    processing: int
    remaining: Optional[int] = None


class TaskResultsResponse(CamelModel):
    """Task records plus a summary. Used for results and realtime-status."""
    task_id: str
    status: TaskStatus
    progress: TaskProgress
    results: List[ResultRecord] = Field(default_factory=list)
    errors: List[ErrorRecord] = Field(default_factory=list)
    currently_processing: List[str] = Field(default_factory=list)
    summary: ResultsSummary


class TaskCancelledResponse(CamelModel):
    """``cancelled``, or the terminal status of a task that had already finished."""
    task_id: str
    status: Literal["cancelled", "completed", "failed"] = "cancelled"
    message: str


class ConfigCheckResponse(CamelModel):
    task_id: str
    config_status: Dict[str, Any]


class TaskListResponse(CamelModel):
    tasks: List[TaskSnapshot]
    summary: Dict[str, int]


class CleanupResponse(CamelModel):
    message: str
    removed: int
    remaining: int


class StorageSaveResponse(CamelModel):
    success: bool = True
    key: str
    backend: str


class StorageLoadResponse(CamelModel):
    success: bool = True
    data: Any = None


class ProxyStatus(CamelModel):
    """Result of one proxy check; credentials are never echoed."""
    type: str
    host: str
    port: int
    username: Optional[str] = None
    status: Literal["working", "failed"]
    last_checked: datetime
    error: Optional[str] = None


class ProxyCheckResponse(CamelModel):
    success: bool = True
    result: ProxyStatus


class ProxyBatchCheckResponse(CamelModel):
    success: bool = True
    results: List[ProxyStatus]
