"""HTML content extraction utilities."""
from typing import Dict, List, NamedTuple
from urllib.parse import urljoin, urlparse
import re

from bs4 import BeautifulSoup

from ..core.logging import logger


BOILERPLATE_SELECTORS = (
    "script, style, nav, header, footer, aside, iframe, noscript, "
    ".nav, .navigation, .menu, .sidebar, .breadcrumb, .pagination, "
    ".social, .share, .ad, .advertisement"
)

MAIN_CONTENT_SELECTORS = [
    "main", "article", ".content", ".main-content", ".page-content",
    ".post-content", "#content", "#main",
]

FOOTER_SELECTORS = "footer, .footer, .copyright, .contact-info"
COMPANY_SELECTORS = ".company, .about, .intro, .description, .overview"
NAV_LINK_SELECTORS = "nav a[href], .nav a[href], .navigation a[href], .menu a[href], header a[href]"

# Keyword groups used to discover follow-up pages, in priority order.
KEY_PAGE_PATTERNS = [
    ("about", ["about", "about-us", "company", "关于", "公司"]),
    ("products", ["product", "products", "catalog", "产品", "目录"]),
    ("services", ["service", "services", "solution", "服务", "解决方案"]),
    ("contact", ["contact", "contact-us", "联系", "联系我们"]),
    ("news", ["news", "blog", "press", "新闻", "资讯"]),
]

SKIPPED_HREF_PREFIXES = ("#", "javascript:", "mailto:", "tel:")

_DISALLOWED_CHARS = re.compile(r"[^\w\s一-鿿.,;:!?\-()\[\]=@]")
_WHITESPACE = re.compile(r"\s+")


class KeyPage(NamedTuple):
    name: str
    url: str


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def _text(node) -> str:
    return _WHITESPACE.sub(" ", node.get_text(" ")).strip()


def extract_page_content(html: str, limit: int = 1500) -> str:
    """
    Extract the main readable text of a page.

    Boilerplate elements are removed first. The first matching main-content
    container wins; otherwise the whole body text is used.

    Args:
        html: Raw HTML
        limit: Maximum number of characters returned

    Returns:
        Page text truncated to ``limit``
    """
    soup = _soup(html)
    for element in soup.select(BOILERPLATE_SELECTORS):
        element.decompose()

    content = ""
    for selector in MAIN_CONTENT_SELECTORS:
        found = soup.select(selector)
        if found:
            content = " ".join(_text(node) for node in found).strip()
            break

    if not content:
        body = soup.body or soup
        content = _text(body)

    return content[:limit]


def extract_metadata(html: str) -> Dict[str, str]:
    """
    Extract title, description and keywords from a page head.

    Args:
        html: Raw HTML

    Returns:
        Dictionary with ``title``, ``description`` and ``keywords``
    """
    soup = _soup(html)

    title = ""
    if soup.title and soup.title.string:
        title = soup.title.string.strip()
    if not title:
        h1 = soup.find("h1")
        title = _text(h1) if h1 else ""

    def meta(**attrs) -> str:
        tag = soup.find("meta", attrs=attrs)
        return (tag.get("content") or "").strip() if tag else ""

    keywords = meta(name="keywords")
    description = meta(name="description") or meta(property="og:description") or keywords

    return {
        "title": title or "Untitled",
        "description": description,
        "keywords": keywords,
    }


def extract_footer(html: str, limit: int = 300) -> str:
    """Text of footer and contact blocks."""
    soup = _soup(html)
    return " ".join(_text(node) for node in soup.select(FOOTER_SELECTORS)).strip()[:limit]


def extract_company_blurb(html: str, limit: int = 500) -> str:
    """Text of blocks whose class suggests a company description."""
    soup = _soup(html)
    return " ".join(_text(node) for node in soup.select(COMPANY_SELECTORS)).strip()[:limit]


def find_key_pages(html: str, base_url: str, max_pages: int = 4) -> List[KeyPage]:
    """
    Find same-site links to about/products/services/contact/news pages.

    Navigation links are checked before other links. At most one link is
    taken per keyword group.

    Args:
        html: Raw HTML of the home page
        base_url: URL the HTML was fetched from
        max_pages: Maximum number of pages returned

    Returns:
        List of KeyPage tuples
    """
    soup = _soup(html)
    base = urlparse(base_url)
    origin = f"{base.scheme}://{base.netloc}"

    links = soup.select(NAV_LINK_SELECTORS) + soup.find_all("a", href=True)
    pages: List[KeyPage] = []
    seen = {origin, origin + "/", base_url}

    for name, patterns in KEY_PAGE_PATTERNS:
        if len(pages) >= max_pages:
            break

        for link in links:
            href = (link.get("href") or "").strip()
            if not href or href.lower().startswith(SKIPPED_HREF_PREFIXES):
                continue

            text = link.get_text().strip().lower()
            lowered_href = href.lower()
            if not any(p in text or p in lowered_href for p in patterns):
                continue

            full_url = urljoin(base_url, href)
            if urlparse(full_url).netloc != base.netloc or full_url in seen:
                continue

            seen.add(full_url)
            pages.append(KeyPage(name=name, url=full_url))
            break

    logger.debug(f"Found {len(pages)} key pages on {base_url}")
    return pages


def normalize_content(text: str, limit: int = 6000) -> str:
    """
    Collapse whitespace and drop symbols, keeping words, CJK and punctuation.

    Args:
        text: Aggregated site text
        limit: Maximum number of characters returned

    Returns:
        Normalized text
    """
    cleaned = _DISALLOWED_CHARS.sub(" ", text or "")
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned[:limit]
