"""Process memory sampling for batch throttling."""
from dataclasses import dataclass
from typing import Optional

import psutil

from ..core.config import Settings, settings as default_settings


@dataclass(frozen=True)
class MemoryStatus:
    """One memory sample with threshold flags."""
    rss_mb: float
    should_cleanup: bool
    is_high: bool
    is_critical: bool


class MemoryMonitor:
    """Samples this process's resident set size against configured thresholds."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self._process = psutil.Process()

    def rss_mb(self) -> float:
        return self._process.memory_info().rss / 1024 / 1024

    def sample(self) -> MemoryStatus:
        rss = self.rss_mb()
        return MemoryStatus(
            rss_mb=rss,
            should_cleanup=rss > self.config.MEMORY_CLEANUP_MB,
            is_high=rss > self.config.MEMORY_HIGH_MB,
            is_critical=rss > self.config.MEMORY_CRITICAL_MB,
        )
