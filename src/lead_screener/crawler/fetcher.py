"""
Async HTTP fetcher for crawl targets.

Every failure is raised as a FetchError whose failure kind is decided here,
from the exception type or status code.
"""
from typing import Dict, Optional
from urllib.parse import urlparse

import httpx

from ..core.config import Settings, settings as default_settings
from ..core.errors import FetchError, FetchFailure, InvalidURLError
from ..core.logging import logger
from .proxy import ProxyManager


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def normalize_target_url(url: str) -> str:
    """
    Add a scheme to bare hosts and validate the result.

    Raises:
        InvalidURLError: If the URL has no host after normalization
    """
    candidate = (url or "").strip()
    if not candidate:
        raise InvalidURLError(url)
    if not candidate.startswith(("http://", "https://")):
        candidate = f"https://{candidate}"

    parsed = urlparse(candidate)
    if not parsed.netloc or " " in parsed.netloc:
        raise InvalidURLError(url)
    return candidate


def classify_status(status_code: int) -> FetchFailure:
    """Map an HTTP error status to a fetch failure kind."""
    if status_code == 403:
        return FetchFailure.FORBIDDEN
    if status_code == 404:
        return FetchFailure.NOT_FOUND
    if status_code >= 500:
        return FetchFailure.SERVER_ERROR
    return FetchFailure.UNKNOWN


class Fetcher:
    """Issues GET requests with fixed headers and per-call timeouts."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        proxy_manager: Optional[ProxyManager] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config = config or default_settings
        self.proxy_manager = proxy_manager or ProxyManager(
            self.config.CRAWLER_PROXIES, self.config.CRAWLER_PROXY_STRATEGY
        )
        self._transport = transport
        self._clients: Dict[Optional[str], httpx.AsyncClient] = {}

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.config.CRAWLER_USER_AGENT or DEFAULT_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9,zh-CN;q=0.8",
            "Accept-Encoding": "gzip, deflate",
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        }

    def _client(self, proxy: Optional[str]) -> httpx.AsyncClient:
        client = self._clients.get(proxy)
        if client is None:
            # an injected transport replaces the network layer, proxy included
            client = httpx.AsyncClient(
                headers=self._headers(),
                follow_redirects=True,
                max_redirects=self.config.CRAWLER_MAX_REDIRECTS,
                proxy=proxy if self._transport is None else None,
                transport=self._transport,
            )
            self._clients[proxy] = client
        return client

    async def fetch(self, url: str, timeout: Optional[float] = None) -> str:
        """
        Download one page.

        Args:
            url: Target URL (a missing scheme defaults to https)
            timeout: Override for the configured crawl timeout (seconds)

        Returns:
            Response body as text

        Raises:
            InvalidURLError: If the URL cannot be parsed
            FetchError: On any transport or HTTP failure
        """
        target = normalize_target_url(url)
        proxy = self.proxy_manager.next_proxy()
        client = self._client(proxy)

        try:
            response = await client.get(
                target, timeout=timeout or self.config.CRAWLER_TIMEOUT
            )
            response.raise_for_status()
            return response.text

        except httpx.TimeoutException as e:
            raise FetchError(target, FetchFailure.TIMEOUT, str(e)) from e
        except httpx.ConnectError as e:
            raise FetchError(target, FetchFailure.CONNECTION_REFUSED, str(e)) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise FetchError(target, classify_status(status), f"HTTP {status}", status=status) from e
        except httpx.HTTPError as e:
            logger.debug(f"Unclassified fetch failure for {target}: {e!r}")
            raise FetchError(target, FetchFailure.UNKNOWN, str(e) or type(e).__name__) from e

    async def close(self):
        """Close all pooled clients."""
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()


async def check_proxy(
    proxy_url: str,
    test_url: Optional[str] = None,
    config: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Optional[str]:
    """
    Fetch a test page through one proxy.

    Returns:
        None when the page loaded, otherwise the failure message
    """
    config = config or default_settings
    target = test_url or config.PROXY_TEST_URL
    parsed = urlparse(proxy_url)
    label = f"{parsed.hostname}:{parsed.port}"

    async with Fetcher(config, ProxyManager([proxy_url]), transport=transport) as fetcher:
        try:
            await fetcher.fetch(target, timeout=config.PROXY_TEST_TIMEOUT)
        except (FetchError, InvalidURLError) as e:
            logger.warning(f"Proxy {label} failed against {target}: {e.message}")
            return e.message

    logger.info(f"Proxy {label} is working")
    return None
