"""Background task models."""
from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pydantic import Field

from .analysis import AnalysisConfig, CamelModel, ClassificationResult, CompanyInfo, EmailInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TaskKind(str, Enum):
    """What a task does with each URL."""
    ANALYZE = "analyze"
    CRAWL = "crawl"


class TaskStatus(str, Enum):
    """Task status enumeration."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)

    @property
    def is_active(self) -> bool:
        return self in (TaskStatus.PENDING, TaskStatus.RUNNING)


class ErrorKind(str, Enum):
    """Failure categories shown to users."""
    CRAWL_ERROR = "crawl_error"
    AI_ERROR = "ai_error"
    NETWORK_ERROR = "network_error"
    TIMEOUT_ERROR = "timeout_error"
    CONFIG_ERROR = "config_error"
    UNKNOWN_ERROR = "unknown_error"


class ErrorStage(str, Enum):
    """Pipeline stage where a failure happened."""
    CRAWLING = "crawling"
    AI_ANALYSIS = "ai_analysis"
    INFO_EXTRACTION = "info_extraction"
    INITIALIZATION = "initialization"
    TASK_EXECUTION = "task_execution"


class TaskProgress(CamelModel):
    """Settled URL count against the task's URL count."""
    completed: int = 0
    total: int = 0


class SiteSummary(CamelModel):
    """Trimmed crawl output kept on a result record."""
    title: str = ""
    description: str = ""
    content: str = ""
    url: str = ""


class ResultRecord(CamelModel):
    """One successfully processed URL."""
    url: str
    summary: SiteSummary
    classification: Optional[ClassificationResult] = None
    company_info: Optional[CompanyInfo] = None
    emails: List[EmailInfo] = Field(default_factory=list)
    completed_at: datetime = Field(default_factory=utc_now)


class ErrorRecord(CamelModel):
    """One failed URL, or a task-level failure when url is None."""
    url: Optional[str] = None
    stage: ErrorStage
    error_kind: ErrorKind
    message: str
    retryable: bool = False
    timestamp: datetime = Field(default_factory=utc_now)


class Task(CamelModel):
    """A batch crawl/classify job."""
    id: str
    kind: TaskKind = TaskKind.ANALYZE
    urls: List[str] = Field(default_factory=list)
    config: Optional[AnalysisConfig] = None
    status: TaskStatus = TaskStatus.PENDING
    progress: TaskProgress = Field(default_factory=TaskProgress)
    results: List[ResultRecord] = Field(default_factory=list)
    errors: List[ErrorRecord] = Field(default_factory=list)
    results_produced: int = 0
    errors_produced: int = 0
    currently_processing: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def add_result(self, record: ResultRecord) -> None:
        self.results.append(record)
        self.results_produced += 1

    def add_error(self, record: ErrorRecord) -> None:
        self.errors.append(record)
        self.errors_produced += 1

    def mark_processing(self, url: str) -> None:
        self.currently_processing.append(url)

    def unmark_processing(self, url: str) -> None:
        # Duplicate URLs may be in flight together; drop one occurrence.
        try:
            self.currently_processing.remove(url)
        except ValueError:
            pass

    def finish(self, status: TaskStatus) -> None:
        self.status = status
        self.completed_at = utc_now()
        self.currently_processing = []

    def config_status(self) -> Dict[str, Any]:
        """Describe the cached analysis config without exposing the key."""
        config = self.config
        api_key = config.api_key if config else None
        return {
            "hasApiKey": bool(api_key),
            "apiKeyLength": len(api_key) if api_key else 0,
            "apiUrl": config.api_url if config else None,
            "modelName": config.model_name if config else None,
            "hasProxySettings": bool(config and config.proxies),
            "extractsContacts": bool(config and config.extract_contacts),
        }
