"""Pytest fixtures for Lead Screener tests."""

import tempfile
import shutil
from pathlib import Path
from typing import Callable, Dict, Generator, Optional, Union
from unittest.mock import AsyncMock

import pytest

from lead_screener.core.config import Settings
from lead_screener.models.analysis import AnalysisConfig, ClassificationResult, CrawledContent
from lead_screener.tasks.memory import MemoryMonitor


class FixedMemoryMonitor(MemoryMonitor):
    """Memory monitor reporting a fixed RSS value."""

    def __init__(self, config: Settings, rss_mb: float = 100.0):
        super().__init__(config)
        self.value = rss_mb

    def rss_mb(self) -> float:
        return self.value


class FakeCrawler:
    """
    Stand-in for CrawlerService.

    ``outcomes`` maps a URL to an exception to raise or a callable run before
    returning content; unlisted URLs succeed.
    """

    def __init__(self, outcomes: Optional[Dict[str, Union[Exception, Callable[[], None]]]] = None):
        self.outcomes = outcomes or {}
        self.crawled = []
        self.closed = False

    async def crawl_website(self, url: str) -> CrawledContent:
        self.crawled.append(url)
        outcome = self.outcomes.get(url)
        if isinstance(outcome, Exception):
            raise outcome
        if callable(outcome):
            outcome()
        return make_content(url)

    async def close(self):
        self.closed = True


def make_content(url: str = "https://acme.test", content: str = "Acme builds industrial pumps") -> CrawledContent:
    return CrawledContent(
        url=url,
        title="Acme",
        description="Industrial pumps",
        keywords="pumps",
        content=content,
        pages=["home"],
    )


@pytest.fixture(scope="function")
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp(prefix="lead_screener_test_"))
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_settings(temp_dir) -> Settings:
    """Settings with pauses disabled and local-only storage."""
    return Settings(
        APP_ENV="test",
        STORAGE_BACKEND="memory",
        STORAGE_DIR=str(temp_dir / "data"),
        KEY_PAGE_DELAY=0,
        BATCH_DELAY=0,
        HIGH_MEMORY_PAUSE=0,
        CRITICAL_PAUSE=0,
        CLEANUP_INTERVAL=3600,
    )


@pytest.fixture
def analysis_config() -> AnalysisConfig:
    return AnalysisConfig(
        api_url="https://llm.test/v1/chat/completions",
        api_key="sk-123",
        model_name="test-model",
    )


@pytest.fixture
def memory_monitor(test_settings) -> FixedMemoryMonitor:
    return FixedMemoryMonitor(test_settings)


@pytest.fixture
def classifier() -> AsyncMock:
    """Classifier double that labels every site as a target customer."""
    mock = AsyncMock()
    mock.classify.return_value = ClassificationResult(result="Y", reason="Sells pumps")
    mock.extract_company_info.return_value = None
    mock.extract_emails.return_value = []
    return mock


@pytest.fixture
def sample_html() -> str:
    """Home page of a small company site."""
    return """
    <!DOCTYPE html>
    <html>
    <head>
        <title>Acme Pumps</title>
        <meta name="description" content="Industrial pumps and valves">
        <meta name="keywords" content="pumps, valves">
    </head>
    <body>
        <header><a href="/">Home</a></header>
        <nav>
            <a href="/about-us">About Us</a>
            <a href="/products">Products</a>
            <a href="https://partner.test/contact">Partner contact</a>
            <a href="mailto:info@acme.test">Mail us</a>
            <a href="#top">Top</a>
        </nav>
        <script>var tracking = true;</script>
        <main>
            <h1>Welcome to Acme</h1>
            <p>Acme builds industrial pumps for water treatment plants.</p>
        </main>
        <div class="about">Acme Ltd was founded in 1990 in Leeds.</div>
        <footer>Copyright 2024 Acme Ltd. Contact sales@acme.test</footer>
    </body>
    </html>
    """
