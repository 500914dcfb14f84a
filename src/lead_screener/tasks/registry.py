"""
In-memory registry of background tasks.

One TaskRegistry is created per process and shared through the FastAPI app
state. All mutation happens on the event loop thread, so no locking is done;
a multi-worker deployment needs a shared transactional store instead. Task
state does not survive a restart.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Tuple
import uuid

from ..core.config import Settings, settings as default_settings
from ..core.errors import TaskNotFoundError
from ..core.logging import logger, task_tag
from ..models.analysis import AnalysisConfig
from ..models.task import (
    ErrorKind,
    ErrorRecord,
    ErrorStage,
    Task,
    TaskKind,
    TaskProgress,
    TaskStatus,
    utc_now,
)


CANCELLED_MESSAGE = "Task cancelled by user"


class ActiveTaskPolicy(str, Enum):
    """What create() does while another task is pending or running."""
    MERGE = "merge"
    ALWAYS_NEW = "always_new"


@dataclass
class SweepReport:
    """Counts of what one eviction pass removed."""
    tasks: int = 0
    results: int = 0
    errors: int = 0

    def __bool__(self) -> bool:
        return bool(self.tasks or self.results or self.errors)


class TaskRegistry:
    """Task id to Task map with retention-based eviction."""

    def __init__(self, config: Optional[Settings] = None, policy: Optional[ActiveTaskPolicy] = None):
        self.config = config or default_settings
        self.policy = policy or ActiveTaskPolicy(self.config.ACTIVE_TASK_POLICY)
        self._tasks: Dict[str, Task] = {}

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: str) -> bool:
        return task_id in self._tasks

    def active_task(self) -> Optional[Task]:
        """The first pending or running task, if any."""
        for task in self._tasks.values():
            if task.status.is_active:
                return task
        return None

    def create(
        self,
        urls: List[str],
        kind: TaskKind = TaskKind.ANALYZE,
        config: Optional[AnalysisConfig] = None
    ) -> Tuple[Task, bool]:
        """
        Register URLs for processing.

        Under the MERGE policy the URLs are appended to an existing pending or
        running task instead of creating a new one.

        Returns:
            (task, merged) where merged is True if an existing task was extended
        """
        if self.policy == ActiveTaskPolicy.MERGE:
            existing = self.active_task()
            if existing is not None:
                existing.urls.extend(urls)
                existing.progress.total = len(existing.urls)
                logger.info(
                    f"{task_tag(existing.id)} Added {len(urls)} URLs, "
                    f"total now {len(existing.urls)}"
                )
                return existing, True

        task = Task(
            id=str(uuid.uuid4()),
            kind=kind,
            urls=list(urls),
            config=config,
            progress=TaskProgress(completed=0, total=len(urls)),
        )
        self._tasks[task.id] = task
        logger.info(f"{task_tag(task.id)} Created {kind.value} task for {len(urls)} URLs")
        return task, False

    def get(self, task_id: str) -> Task:
        """
        Look up a task.

        Raises:
            TaskNotFoundError: If the id is unknown
        """
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def list(self) -> List[Task]:
        """All tasks, newest first."""
        return sorted(self._tasks.values(), key=lambda t: t.created_at, reverse=True)

    def summary(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in TaskStatus}
        for task in self._tasks.values():
            counts[task.status.value] += 1
        counts["total"] = len(self._tasks)
        return counts

    def cancel(self, task_id: str) -> Task:
        """
        Mark a pending or running task as failed with a cancellation record.

        Terminal tasks are returned unchanged.
        """
        task = self.get(task_id)
        if task.status.is_terminal:
            return task

        task.finish(TaskStatus.FAILED)
        task.add_error(ErrorRecord(
            stage=ErrorStage.TASK_EXECUTION,
            error_kind=ErrorKind.UNKNOWN_ERROR,
            message=CANCELLED_MESSAGE,
        ))
        logger.info(f"{task_tag(task_id)} Cancelled by user")
        return task

    def remove(self, task_id: str) -> bool:
        return self._tasks.pop(task_id, None) is not None

    def trim_records(self, task: Task) -> Tuple[int, int]:
        """
        Truncate a task's results and errors to their caps, keeping the newest.

        Returns:
            (results removed, errors removed)
        """
        max_results = self.config.MAX_RESULTS_PER_TASK
        max_errors = self.config.MAX_ERRORS_PER_TASK
        dropped_results = max(0, len(task.results) - max_results)
        dropped_errors = max(0, len(task.errors) - max_errors)

        if dropped_results:
            task.results = task.results[-max_results:]
        if dropped_errors:
            task.errors = task.errors[-max_errors:]
        return dropped_results, dropped_errors

    def sweep(self, now: Optional[datetime] = None) -> SweepReport:
        """
        Evict expired tasks and oversized record lists.

        - Terminal tasks completed before the retention window are removed.
        - Every remaining task's results/errors are trimmed to their caps.
        - If more than MAX_TASKS remain, the oldest terminal tasks are removed
          until the cap is met. Pending and running tasks are never removed.
        """
        now = now or utc_now()
        cutoff = now - timedelta(seconds=self.config.TASK_RETENTION_SECONDS)
        report = SweepReport()

        for task_id, task in list(self._tasks.items()):
            if task.status.is_terminal and task.completed_at and task.completed_at < cutoff:
                del self._tasks[task_id]
                report.tasks += 1
                continue

            dropped_results, dropped_errors = self.trim_records(task)
            report.results += dropped_results
            report.errors += dropped_errors

        excess = len(self._tasks) - self.config.MAX_TASKS
        if excess > 0:
            terminal = sorted(
                (t for t in self._tasks.values() if t.status.is_terminal),
                key=lambda t: t.completed_at or t.created_at,
            )
            for task in terminal[:excess]:
                del self._tasks[task.id]
                report.tasks += 1

        if report:
            logger.info(
                f"Sweep removed tasks={report.tasks} results={report.results} "
                f"errors={report.errors}, {len(self._tasks)} tasks remain"
            )
        return report

    def purge_completed(self, older_than_seconds: Optional[float] = None, now: Optional[datetime] = None) -> int:
        """
        Remove completed tasks that finished more than ``older_than_seconds`` ago.

        Returns:
            Number of tasks removed
        """
        now = now or utc_now()
        age = self.config.MANUAL_CLEANUP_AGE_SECONDS if older_than_seconds is None else older_than_seconds
        cutoff = now - timedelta(seconds=age)

        stale = [
            task_id for task_id, task in self._tasks.items()
            if task.status == TaskStatus.COMPLETED and task.completed_at and task.completed_at < cutoff
        ]
        for task_id in stale:
            del self._tasks[task_id]

        logger.info(f"Purged {len(stale)} completed tasks")
        return len(stale)
