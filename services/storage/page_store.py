# services/storage/page_store.py
from typing import List, Optional

from loguru import logger

from models.page_document import PageDocument
from models.stats import CaptureHistoryEntry

from .database import Database


class PageStore:
    """
    Persistent ``url → PageDocument`` mapping.

    ``put`` is an upsert: a URL never has more than one stored document and
    the latest write wins.  ``get`` returns ``None`` for unknown URLs.
    """

    def __init__(self, db: Database):
        self.db = db

    async def put(self, page: PageDocument) -> None:
        await self.db.execute(
            "put_page",
            """
            INSERT INTO captured_pages (url, hostname, title, timestamp, document)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(url) DO UPDATE SET
                hostname = excluded.hostname,
                title = excluded.title,
                timestamp = excluded.timestamp,
                document = excluded.document
            """,
            (
                page.url,
                page.hostname,
                page.title,
                page.timestamp,
                page.model_dump_json(by_alias=True),
            ),
        )
        logger.debug(f"Stored page {page.url}")

    async def get(self, url: str) -> Optional[PageDocument]:
        row = await self.db.fetch_one(
            "get_page", "SELECT document FROM captured_pages WHERE url = ?", (url,)
        )
        if row is None:
            return None
        return PageDocument.model_validate_json(row[0])

    async def exists(self, url: str) -> bool:
        row = await self.db.fetch_one(
            "page_exists", "SELECT 1 FROM captured_pages WHERE url = ?", (url,)
        )
        return row is not None

    async def get_all(self) -> List[PageDocument]:
        rows = await self.db.fetch_all("get_all_pages", "SELECT document FROM captured_pages")
        return [PageDocument.model_validate_json(row[0]) for row in rows]

    async def count(self) -> int:
        row = await self.db.fetch_one("count_pages", "SELECT COUNT(*) FROM captured_pages")
        return row[0] if row else 0

    async def delete(self, url: str) -> None:
        await self.db.execute("delete_page", "DELETE FROM captured_pages WHERE url = ?", (url,))

    # ------------------------------------------------------------------
    # Capture history
    # ------------------------------------------------------------------
    async def add_history(self, page: PageDocument) -> CaptureHistoryEntry:
        """Log a successful capture; rows sharing a timestamp replace each other."""
        entry = CaptureHistoryEntry(
            timestamp=page.timestamp,
            url=page.url,
            hostname=page.hostname,
            title=page.title,
        )
        await self.db.execute(
            "add_history",
            "INSERT OR REPLACE INTO capture_history (timestamp, url, hostname, title) VALUES (?, ?, ?, ?)",
            (entry.timestamp, entry.url, entry.hostname, entry.title),
        )
        return entry

    async def get_history(self, limit: int = 50) -> List[CaptureHistoryEntry]:
        rows = await self.db.fetch_all(
            "get_history",
            "SELECT timestamp, url, hostname, title FROM capture_history ORDER BY timestamp DESC LIMIT ?",
            (limit,),
        )
        return [
            CaptureHistoryEntry(timestamp=ts, url=url, hostname=host, title=title)
            for ts, url, host, title in rows
        ]
