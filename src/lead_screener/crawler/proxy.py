"""Proxy rotation for outbound crawl requests."""
import random
from typing import List, Optional

from ..core.logging import logger


class ProxyManager:
    """
    Hands out proxy URLs for successive requests.

    Strategies:
    - round_robin: cycle through proxies in order
    - random: pick any proxy for each request
    """

    STRATEGIES = ("round_robin", "random")

    def __init__(self, proxies: List[str], strategy: str = "round_robin"):
        if strategy not in self.STRATEGIES:
            raise ValueError(f"Unsupported proxy strategy: {strategy}")
        self.proxies = [p for p in proxies if p]
        self.strategy = strategy
        self._index = 0
        if self.proxies:
            logger.info(f"ProxyManager using {len(self.proxies)} proxies ({strategy})")

    def __bool__(self) -> bool:
        return bool(self.proxies)

    def next_proxy(self) -> Optional[str]:
        """Return the proxy for the next request, or None for a direct connection."""
        if not self.proxies:
            return None

        if self.strategy == "random":
            return random.choice(self.proxies)

        proxy = self.proxies[self._index]
        self._index = (self._index + 1) % len(self.proxies)
        return proxy
