# services/capture/content_extractor.py
"""
Turns raw HTML into the structured fields of a ``PageDocument``.

The extractor is a pure function of its input: no network, no storage.
Missing structure (no ``<title>``, no paragraphs, broken markup) simply
yields empty collections; parsing never raises for absent elements.
"""

import re
from typing import Dict, Iterable, List, Optional

from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

from models.page_document import DEFAULT_TITLE, Heading, PageDocument, PageLink, PageList
from models.timestamps import now_ms

from .config_loader import ExtractionSettings
from .link_extractor import LinkExtractor, hostname_of

_TAG_RE = re.compile(r"<[^>]*>")
_NON_WORD_RE = re.compile(r"[^\w\s]", re.ASCII)
_WHITESPACE_RE = re.compile(r"\s+", re.ASCII)


class ExtractedContent(BaseModel):
    """Everything the extractor produces; the caller adds url/hostname/timestamp."""
    title: str = DEFAULT_TITLE
    meta: Dict[str, str] = Field(default_factory=dict)
    headings: List[Heading] = Field(default_factory=list)
    paragraphs: List[str] = Field(default_factory=list)
    lists: List[PageList] = Field(default_factory=list)
    links: List[PageLink] = Field(default_factory=list)
    terms: List[str] = Field(default_factory=list)


class ContentExtractor:
    """Extracts metadata, headings, paragraphs, lists, links and search terms."""

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        self.settings = settings or ExtractionSettings()
        self.stop_words = set(self.settings.stop_words)
        self.link_extractor = LinkExtractor(self.settings.article_keywords)

    # ------------------------------------------------------------------
    # Individual field extractors
    # ------------------------------------------------------------------
    @staticmethod
    def _extract_title(soup: BeautifulSoup) -> str:
        if soup.title is None:
            return DEFAULT_TITLE
        return soup.title.get_text().strip() or DEFAULT_TITLE

    @staticmethod
    def _extract_metadata(soup: BeautifulSoup) -> Dict[str, str]:
        """Every meta tag with a name (or property) and content; later tags win."""
        metadata: Dict[str, str] = {}
        for meta in soup.find_all("meta"):
            name = meta.get("name") or meta.get("property")
            content = meta.get("content")
            if name and content:
                metadata[name] = content
        return metadata

    @staticmethod
    def _extract_headings(soup: BeautifulSoup) -> List[Heading]:
        headings: List[Heading] = []
        for element in soup.find_all(["h1", "h2", "h3"]):
            text = element.get_text().strip()
            if text:
                headings.append(Heading(level=element.name.lower(), text=text))
        return headings

    def _extract_paragraphs(self, soup: BeautifulSoup) -> List[str]:
        min_length = self.settings.min_paragraph_length
        paragraphs: List[str] = []
        for element in soup.find_all("p"):
            text = element.get_text().strip()
            if len(text) >= min_length:
                paragraphs.append(text)
        return paragraphs

    @staticmethod
    def _extract_lists(soup: BeautifulSoup) -> List[PageList]:
        lists: List[PageList] = []
        for element in soup.find_all(["ul", "ol"]):
            items = [
                text
                for text in (li.get_text().strip() for li in element.find_all("li"))
                if text
            ]
            if items:
                lists.append(PageList(type=element.name.lower(), items=items))
        return lists

    def extract_terms(self, texts: Iterable[str]) -> List[str]:
        """
        Build the search terms of a page.

        Lowercase, strip tags and non‑word characters, split on whitespace,
        keep long enough non‑stop‑words, dedupe in first‑seen order and cap.
        Word characters are ASCII only: an accented letter splits its word
        (``lançado`` becomes ``lan`` and ``ado``, both too short to keep).
        """
        all_text = " ".join(t for t in texts if t).lower()
        clean_text = _TAG_RE.sub(" ", all_text)
        clean_text = _NON_WORD_RE.sub(" ", clean_text)
        clean_text = _WHITESPACE_RE.sub(" ", clean_text).strip()

        terms: List[str] = []
        seen = set()
        for word in clean_text.split():
            if len(word) < self.settings.min_term_length or word in self.stop_words:
                continue
            if word in seen:
                continue
            seen.add(word)
            terms.append(word)
            if len(terms) >= self.settings.max_terms:
                break
        return terms

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def extract(self, html: str) -> ExtractedContent:
        """Parse *html* and return its structured content."""
        soup = BeautifulSoup(html or "", "html.parser")

        title = self._extract_title(soup)
        meta = self._extract_metadata(soup)
        headings = self._extract_headings(soup)
        paragraphs = self._extract_paragraphs(soup)
        lists = self._extract_lists(soup)
        links = self.link_extractor.extract_links(soup)

        # The raw title (not the placeholder) feeds the terms.
        raw_title = soup.title.get_text() if soup.title is not None else ""
        terms = self.extract_terms(
            [raw_title, meta.get("description", "")]
            + [h.text for h in headings]
            + paragraphs
            + [item for page_list in lists for item in page_list.items]
        )

        return ExtractedContent(
            title=title,
            meta=meta,
            headings=headings,
            paragraphs=paragraphs,
            lists=lists,
            links=links,
            terms=terms,
        )

    def build_document(self, url: str, html: str) -> PageDocument:
        """Extract *html* and complete it into a ``PageDocument`` for *url*."""
        content = self.extract(html)
        return PageDocument(
            url=url,
            hostname=hostname_of(url),
            timestamp=now_ms(),
            captured_by=self.settings.captured_by,
            **content.model_dump(),
        )
