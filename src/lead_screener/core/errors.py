"""Exception hierarchy shared by the crawler, the classifier and the API."""
from enum import Enum
from typing import Any, Dict, Optional

from ..models.task import ErrorKind, ErrorStage


class LeadScreenerError(Exception):
    """Base exception carrying an HTTP status and structured details."""

    def __init__(self, message: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class TaskNotFoundError(LeadScreenerError):
    """Raised when a task id is unknown."""

    def __init__(self, task_id: str):
        super().__init__(
            f"Task not found: {task_id}",
            status_code=404,
            details={"taskId": task_id}
        )


class InvalidRequestError(LeadScreenerError):
    """Raised for malformed API requests."""

    def __init__(self, message: str, **details: Any):
        super().__init__(message, status_code=400, details=details)


class StorageError(LeadScreenerError):
    """Raised when a storage backend rejects a read or write."""

    def __init__(self, message: str, backend: str):
        super().__init__(message, status_code=500, details={"backend": backend})


class PipelineError(LeadScreenerError):
    """
    Failure of one URL unit.

    The error kind, stage and retry hint are fixed where the failure is
    raised; error records are built from these attributes.
    """

    error_kind: ErrorKind = ErrorKind.UNKNOWN_ERROR
    stage: ErrorStage = ErrorStage.CRAWLING
    retryable: bool = False

    def __init__(
        self,
        message: str,
        error_kind: Optional[ErrorKind] = None,
        stage: Optional[ErrorStage] = None,
        retryable: Optional[bool] = None,
        status_code: int = 502,
        details: Dict[str, Any] = None
    ):
        super().__init__(message, status_code=status_code, details=details)
        if error_kind is not None:
            self.error_kind = error_kind
        if stage is not None:
            self.stage = stage
        if retryable is not None:
            self.retryable = retryable


class FetchFailure(str, Enum):
    """Why an HTTP fetch failed."""
    TIMEOUT = "timeout"
    CONNECTION_REFUSED = "connection_refused"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    SERVER_ERROR = "server_error"
    UNKNOWN = "unknown"


_FETCH_MESSAGES = {
    FetchFailure.TIMEOUT: "Crawl timed out, the site responded too slowly",
    FetchFailure.CONNECTION_REFUSED: "Could not connect to the site, check the URL",
    FetchFailure.FORBIDDEN: "The site refused access, it may have anti-bot protection",
    FetchFailure.NOT_FOUND: "Page not found",
    FetchFailure.SERVER_ERROR: "The target server returned an error",
    FetchFailure.UNKNOWN: "Failed to fetch page",
}

_FETCH_KINDS = {
    FetchFailure.TIMEOUT: ErrorKind.TIMEOUT_ERROR,
    FetchFailure.CONNECTION_REFUSED: ErrorKind.NETWORK_ERROR,
}

_RETRYABLE_FETCH = {
    FetchFailure.TIMEOUT,
    FetchFailure.CONNECTION_REFUSED,
    FetchFailure.SERVER_ERROR,
}


class FetchError(PipelineError):
    """Raised when a page cannot be downloaded."""

    def __init__(self, url: str, failure: FetchFailure, detail: str = "", status: Optional[int] = None):
        message = _FETCH_MESSAGES[failure]
        if detail:
            message = f"{message}: {detail}"
        super().__init__(
            message,
            error_kind=_FETCH_KINDS.get(failure, ErrorKind.CRAWL_ERROR),
            stage=ErrorStage.CRAWLING,
            retryable=failure in _RETRYABLE_FETCH,
            details={"url": url, "failure": failure.value, "httpStatus": status}
        )
        self.url = url
        self.failure = failure
        self.http_status = status


class InvalidURLError(PipelineError):
    """Raised for URLs that cannot be parsed."""

    def __init__(self, url: str):
        super().__init__(
            f"Invalid URL: {url}",
            error_kind=ErrorKind.CRAWL_ERROR,
            stage=ErrorStage.CRAWLING,
            retryable=False,
            status_code=400,
            details={"url": url}
        )


class AnalysisFailure(str, Enum):
    """Why a chat-completion call failed."""
    INVALID_API_KEY = "invalid_api_key"
    RATE_LIMITED = "rate_limited"
    BAD_REQUEST = "bad_request"
    TIMEOUT = "timeout"
    EMPTY_RESPONSE = "empty_response"
    NO_CONTENT = "no_content"
    UNKNOWN = "unknown"


_ANALYSIS_MESSAGES = {
    AnalysisFailure.INVALID_API_KEY: "Invalid API key, check the configuration",
    AnalysisFailure.RATE_LIMITED: "API rate limit exceeded, retry later",
    AnalysisFailure.BAD_REQUEST: "Bad request, check the model name and API URL",
    AnalysisFailure.TIMEOUT: "AI analysis timed out, retry later",
    AnalysisFailure.EMPTY_RESPONSE: "AI returned an empty response",
    AnalysisFailure.NO_CONTENT: "No content to analyze",
    AnalysisFailure.UNKNOWN: "AI analysis failed",
}


class AnalysisError(PipelineError):
    """Raised when the chat-completion endpoint cannot produce a verdict."""

    def __init__(self, failure: AnalysisFailure, detail: str = "", status: Optional[int] = None):
        message = _ANALYSIS_MESSAGES[failure]
        if detail:
            message = f"{message}: {detail}"
        super().__init__(
            message,
            error_kind=ErrorKind.TIMEOUT_ERROR if failure == AnalysisFailure.TIMEOUT else ErrorKind.AI_ERROR,
            stage=ErrorStage.AI_ANALYSIS,
            retryable=failure in (AnalysisFailure.RATE_LIMITED, AnalysisFailure.TIMEOUT),
            details={"failure": failure.value, "httpStatus": status}
        )
        self.failure = failure
        self.http_status = status


class AnalysisConfigError(PipelineError):
    """Raised when the analysis config lacks a required field."""

    def __init__(self, field: str):
        super().__init__(
            f"Analysis config is missing {field}",
            error_kind=ErrorKind.CONFIG_ERROR,
            stage=ErrorStage.INITIALIZATION,
            retryable=False,
            status_code=400,
            details={"field": field}
        )
