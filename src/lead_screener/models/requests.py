"""API request schemas."""
from typing import Any, List, Literal, Optional
from urllib.parse import quote
from pydantic import Field

from .analysis import AnalysisConfig, CamelModel, CrawledContent
from .task import TaskKind


TaskAction = Literal[
    "create",
    "status",
    "results",
    "realtime-status",
    "cancel",
    "config-check",
    "list",
    "cleanup",
]


class BackgroundTaskRequest(CamelModel):
    """Request schema for the background task endpoint."""
    action: TaskAction
    task_id: Optional[str] = None
    urls: Optional[List[str]] = None
    config: Optional[AnalysisConfig] = None
    kind: TaskKind = Field(default=TaskKind.ANALYZE, alias="type")


class AnalyzeRequest(CamelModel):
    """Request schema for a one-off classification of already crawled content."""
    config: AnalysisConfig
    crawled_content: CrawledContent


class CrawlRequest(CamelModel):
    """Request schema for a single site crawl."""
    url: str = Field(..., min_length=1, description="Site URL, scheme optional")


class StorageRequest(CamelModel):
    """Request schema for saving an opaque client blob."""
    action: Literal["save"] = "save"
    key: str = Field(..., min_length=1)
    data: Any = None


class ApiTestRequest(CamelModel):
    """Request schema for checking an LLM configuration."""
    config: AnalysisConfig


class ProxyConfig(CamelModel):
    """One proxy as entered in the dashboard."""
    type: Literal["http", "https", "socks5"] = "http"
    host: str = Field(..., min_length=1)
    port: int = Field(..., ge=1, le=65535)
    username: Optional[str] = None
    password: Optional[str] = None

    @property
    def url(self) -> str:
        credentials = ""
        if self.username and self.password:
            credentials = f"{quote(self.username, safe='')}:{quote(self.password, safe='')}@"
        return f"{self.type}://{credentials}{self.host}:{self.port}"

    @property
    def label(self) -> str:
        return f"{self.host}:{self.port}"


class ProxyTestRequest(CamelModel):
    """Request schema for checking one proxy or a list of proxies."""
    proxy: Optional[ProxyConfig] = None
    proxies: Optional[List[ProxyConfig]] = None
    test_url: Optional[str] = None
