# services/capture/capture_service.py
from typing import List, Optional

import httpx
from loguru import logger

from models.search_hit import SearchHit
from models.stats import CaptureStats
from services.search.peer_adapter import PeerSearchAdapter
from services.search.search_engine import SearchEngine
from services.storage.database import Database
from services.storage.link_index import LinkIndex
from services.storage.page_store import PageStore
from .capture_queue import CaptureQueue
from .config_loader import CaptureSettings, get_settings
from .content_extractor import ContentExtractor
from .fetcher import PageFetcher

BYTES_PER_MB = 1024 * 1024


# ----------------------------------------------------------------------
#  CaptureService – the handle the UI / API layers hold on to
# ----------------------------------------------------------------------
class CaptureService:
    """
    Wires the store, fetcher, extractor, queue, search engine and peer adapter
    together from one ``CaptureSettings`` and exposes the operations the
    outer layers consume: submit, search, statistics and queue control.
    """

    def __init__(
        self,
        settings: Optional[CaptureSettings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()

        self.db = Database(self.settings.storage.database_path)
        self.page_store = PageStore(self.db)
        self.link_index = LinkIndex(self.db)
        self.fetcher = PageFetcher(self.settings.fetch, client=http_client)
        self.extractor = ContentExtractor(self.settings.extraction)
        self.queue = CaptureQueue(
            self.page_store,
            self.link_index,
            self.fetcher,
            self.extractor,
            self.settings.queue,
        )
        self.search_engine = SearchEngine(self.page_store)
        self.peer = PeerSearchAdapter(self.search_engine, self.settings.peer.peer_id)

    # ------------------------------------------------------------------
    #  Lifecycle
    # ------------------------------------------------------------------
    async def open(self) -> "CaptureService":
        await self.db.open()
        pages = await self.page_store.count()
        logger.info(f"Capture service ready ({pages} pages stored, peer id {self.peer.peer_id})")
        return self

    async def close(self) -> None:
        """Stop taking new items, let the in‑flight capture finish, release resources."""
        self.queue.stop()
        await self.queue.wait_idle()
        await self.fetcher.close()
        await self.db.close()

    async def __aenter__(self) -> "CaptureService":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    #  Operations consumed by the UI / API layers
    # ------------------------------------------------------------------
    def submit(self, url: str, priority: str = "normal") -> bool:
        return self.queue.submit(url, priority)

    async def submit_checked(self, url: str, priority: str = "normal") -> bool:
        return await self.queue.submit_checked(url, priority)

    async def search(self, query: str) -> List[SearchHit]:
        return await self.search_engine.search(query)

    def start(self) -> bool:
        return self.queue.start()

    def stop(self) -> bool:
        return self.queue.stop()

    async def get_stats(self) -> CaptureStats:
        """
        Dashboard statistics.

        Reads the stores and takes a synchronous queue snapshot; the drain
        loop is never paused or awaited.
        """
        pages = await self.page_store.get_all()
        total_links = await self.link_index.count()
        queue_stats = self.queue.stats()

        unique_hosts = {page.hostname for page in pages if page.hostname}
        total_size_bytes = sum(page.content_size() for page in pages)

        return CaptureStats(
            total_pages=len(pages),
            captured_pages=len(pages),
            unique_hosts=len(unique_hosts),
            total_size=round(total_size_bytes / BYTES_PER_MB, 2),
            total_size_bytes=total_size_bytes,
            queue_length=queue_stats.total,
            is_capturing=queue_stats.is_capturing,
            api_connected=self.peer.is_connected,
            total_links=total_links,
            discovered_links=queue_stats.discovered,
            high_priority=queue_stats.high,
            normal_priority=queue_stats.normal,
            low_priority=queue_stats.low,
            db_status=self.db.status(),
        )
