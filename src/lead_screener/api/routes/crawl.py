"""
FastAPI route for crawling a single site.
"""
from fastapi import APIRouter, Depends

from ...crawler.service import CrawlerService
from ...models.analysis import CrawledContent
from ...models.requests import CrawlRequest
from ..dependencies import get_crawler


router = APIRouter()


@router.post(
    "/crawl",
    response_model=CrawledContent,
    summary="Crawl a single site",
    description="Fetch the home page and key pages of a site and return the extracted text"
)
async def crawl_site(
    request: CrawlRequest,
    crawler: CrawlerService = Depends(get_crawler)
) -> CrawledContent:
    """
    Crawl one site synchronously.

    Returns title, description, keywords, normalized page text, footer and
    company blurb, and the names of the pages visited. Fetch failures are
    reported with the failure kind in ``details``.
    """
    return await crawler.crawl_website(request.url)
