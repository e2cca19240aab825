# services/search/search_engine.py
"""
Query‑time relevance scoring over the captured pages.

The whole query string is matched, case‑insensitively, as a substring of
each field; there is no tokenisation or stemming.  Weights:

=================  =====================================
title              +10, and +5 more if it starts with it
meta description   +8
each heading       +6
each paragraph     +3
each search term   +4
=================  =====================================
"""

from typing import List

from loguru import logger

from models.page_document import PageDocument
from models.search_hit import SearchHit
from services.storage.page_store import PageStore

TITLE_WEIGHT = 10
TITLE_PREFIX_BONUS = 5
DESCRIPTION_WEIGHT = 8
HEADING_WEIGHT = 6
PARAGRAPH_WEIGHT = 3
TERM_WEIGHT = 4


def score(page: PageDocument, query: str) -> int:
    """Relevance of *page* for *query*; 0 means no match."""
    if not query:
        return 0

    needle = query.lower()
    total = 0

    title = page.title.lower()
    if needle in title:
        total += TITLE_WEIGHT
    if title.startswith(needle):
        total += TITLE_PREFIX_BONUS

    if needle in page.description.lower():
        total += DESCRIPTION_WEIGHT

    total += HEADING_WEIGHT * sum(1 for h in page.headings if needle in h.text.lower())
    total += PARAGRAPH_WEIGHT * sum(1 for p in page.paragraphs if needle in p.lower())
    total += TERM_WEIGHT * sum(1 for t in page.terms if needle in t.lower())
    return total


class SearchEngine:
    """Ranks every stored page against a free‑text query."""

    def __init__(self, page_store: PageStore):
        self.page_store = page_store

    async def search(self, query: str) -> List[SearchHit]:
        """
        Return matching pages ordered by descending score.

        A blank query is invalid input and yields an empty list without
        touching the store.
        """
        if not query or not query.strip():
            return []

        pages = await self.page_store.get_all()
        hits = []
        for page in pages:
            page_score = score(page, query)
            if page_score > 0:
                hits.append(SearchHit.from_document(page, page_score))

        hits.sort(key=lambda hit: hit.score, reverse=True)
        logger.info(f"Search '{query}': {len(hits)} of {len(pages)} pages matched")
        return hits
