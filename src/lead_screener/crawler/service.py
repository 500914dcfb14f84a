"""
Site crawler: fetches a home page, extracts its text and follows a few key pages.
"""
from typing import List, Optional
import asyncio

from ..core.config import Settings, settings as default_settings
from ..core.errors import PipelineError
from ..core.logging import logger
from ..models.analysis import CrawledContent
from .extractor import (
    extract_company_blurb,
    extract_footer,
    extract_metadata,
    extract_page_content,
    find_key_pages,
    normalize_content,
)
from .fetcher import Fetcher, normalize_target_url
from .proxy import ProxyManager


class CrawlerService:
    """
    Crawls one website into a bounded text blob.

    Features:
    - Home page plus up to MAX_KEY_PAGES keyword-matched pages
    - Paced sequential key-page requests
    - Optional proxy rotation
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        fetcher: Optional[Fetcher] = None,
        proxies: Optional[List[str]] = None
    ):
        self.config = config or default_settings
        if fetcher is None:
            proxy_manager = None
            if proxies:
                proxy_manager = ProxyManager(proxies, self.config.CRAWLER_PROXY_STRATEGY)
            fetcher = Fetcher(self.config, proxy_manager=proxy_manager)
        self.fetcher = fetcher

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def close(self):
        await self.fetcher.close()

    async def crawl_website(self, url: str) -> CrawledContent:
        """
        Crawl a website's home page and key pages.

        Args:
            url: Site URL (bare hosts get https://)

        Returns:
            CrawledContent with normalized text and metadata

        Raises:
            PipelineError: If the home page cannot be fetched
        """
        target = normalize_target_url(url)
        logger.info(f"Crawling home page: {target}")

        html = await self.fetcher.fetch(target, timeout=self.config.CRAWLER_TIMEOUT)
        metadata = extract_metadata(html)

        sections = [f"=== Home ===\n{extract_page_content(html, self.config.PAGE_CONTENT_LIMIT)}"]
        pages = ["home"]
        aggregate_length = len(sections[0])

        for page in find_key_pages(html, target, self.config.MAX_KEY_PAGES):
            if aggregate_length >= self.config.KEY_PAGE_CONTENT_STOP:
                break

            await asyncio.sleep(self.config.KEY_PAGE_DELAY)
            try:
                page_html = await self.fetcher.fetch(
                    page.url, timeout=self.config.CRAWLER_SUBPAGE_TIMEOUT
                )
            except PipelineError as e:
                logger.info(f"Skipping {page.name} page {page.url}: {e.message}")
                continue

            page_content = extract_page_content(page_html, self.config.PAGE_CONTENT_LIMIT)
            if len(page_content) > self.config.KEY_PAGE_MIN_CONTENT:
                section = f"=== {page.name} ===\n{page_content}"
                sections.append(section)
                pages.append(page.name)
                aggregate_length += len(section)

        content = normalize_content("\n\n".join(sections), self.config.SITE_CONTENT_LIMIT)
        logger.info(f"Crawled {target}: {len(content)} chars from pages {', '.join(pages)}")

        return CrawledContent(
            url=target,
            title=metadata["title"],
            description=metadata["description"],
            keywords=metadata["keywords"],
            content=content,
            company_info=extract_company_blurb(html, self.config.COMPANY_BLURB_LIMIT),
            footer_content=extract_footer(html, self.config.FOOTER_CONTENT_LIMIT),
            pages=pages,
        )
