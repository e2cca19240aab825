from typing import Iterable, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from loguru import logger

from models.page_document import PageLink

from .exceptions import InvalidUrlError

ARTICLE_TYPE = "article"
GENERAL_TYPE = "general"
ARTICLE_RELEVANCE = 0.8
GENERAL_RELEVANCE = 0.5

_ALLOWED_SCHEMES = {"http", "https"}


class LinkExtractor:
    """
    Extracts and classifies links from HTML content.
    Handles link classification, URL resolution and same‑host filtering.
    """

    def __init__(self, article_keywords: Iterable[str]):
        """
        Initialize the LinkExtractor.

        Args:
            article_keywords: lowercase phrases that mark a link as pointing
                to how‑to / news content
        """
        self.article_keywords = [k.lower() for k in article_keywords]

    def classify(self, text: str) -> Tuple[str, float]:
        """
        Classify a link by its visible text.

        Returns:
            Tuple[str, float]: ``("article", 0.8)`` when the text contains an
            article keyword, ``("general", 0.5)`` otherwise
        """
        lowered = text.lower()
        if any(keyword in lowered for keyword in self.article_keywords):
            return ARTICLE_TYPE, ARTICLE_RELEVANCE
        return GENERAL_TYPE, GENERAL_RELEVANCE

    def extract_links(self, soup: BeautifulSoup) -> List[PageLink]:
        """
        Extract every ``<a href>`` with non‑empty text, in document order.

        The ``href`` is kept exactly as written in the page; resolution against
        the page URL happens when links are indexed.
        """
        links: List[PageLink] = []
        for anchor in soup.find_all("a", href=True):
            href = anchor.get("href", "").strip()
            text = anchor.get_text().strip()
            if not href or not text:
                continue

            link_type, relevance = self.classify(text)
            links.append(
                PageLink(
                    url=href,
                    text=text,
                    title=_attr_text(anchor.get("title")),
                    rel=_attr_text(anchor.get("rel")),
                    type=link_type,
                    relevance=relevance,
                )
            )
        return links


def _attr_text(value) -> str:
    """bs4 returns multi‑valued attributes such as ``rel`` as lists."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return str(value)


def is_valid_url(url: str) -> bool:
    """True for syntactically valid absolute http(s) URLs with a host."""
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = urlparse(url.strip())
        return parsed.scheme in _ALLOWED_SCHEMES and bool(parsed.hostname)
    except ValueError:
        return False


def validate_url(url: str) -> str:
    """Return the stripped *url*, or raise ``InvalidUrlError``."""
    if not is_valid_url(url):
        raise InvalidUrlError(url)
    return url.strip()


def hostname_of(url: str) -> str:
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""


def resolve_url(href: str, base_url: str) -> Optional[str]:
    """Resolve *href* against *base_url* and drop the fragment."""
    try:
        absolute_url = urljoin(base_url, href.strip())
        parsed = urlparse(absolute_url)
        if parsed.scheme not in _ALLOWED_SCHEMES or not parsed.hostname:
            return None
        return parsed._replace(fragment="").geturl()
    except ValueError as e:
        logger.debug(f"URL resolution failed for {href}: {e}")
        return None


def same_host_url(href: str, page_url: str) -> Optional[str]:
    """Absolute form of *href* if it points to the host of *page_url*, else None."""
    resolved = resolve_url(href, page_url)
    if resolved is None or hostname_of(resolved) != hostname_of(page_url):
        return None
    return resolved
