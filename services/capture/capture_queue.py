# services/capture/capture_queue.py
from typing import Callable, List, Optional, Set, Tuple
import asyncio

from loguru import logger
from prometheus_client import Counter, Gauge
from pydantic import ValidationError

# ----------------------------------------------------------------------
#  Pipeline collaborators
# ----------------------------------------------------------------------
from models.capture_item import CaptureQueueItem, ItemOrigin, ItemStatus, Priority
from models.page_document import PageDocument
from models.stats import QueueStats, QueueUpdate
from models.timestamps import now_ms
from services.storage.link_index import LinkIndex
from services.storage.page_store import PageStore
from .config_loader import QueueSettings
from .content_extractor import ContentExtractor
from .exceptions import InvalidUrlError, PageCaptureError
from .fetcher import PageFetcher
from .link_extractor import hostname_of, validate_url

QUEUE_LENGTH = Gauge('capture_queue_length', 'Items waiting in the capture queue')
CAPTURED_TOTAL = Counter('capture_pages_captured_total', 'Pages captured and stored')
RETRIES_TOTAL = Counter('capture_retries_total', 'Failed captures re-queued for another attempt')
DROPPED_TOTAL = Counter('capture_dropped_total', 'Captures dropped after exhausting retries')

QueueListener = Callable[[QueueUpdate], None]


# ----------------------------------------------------------------------
#  CaptureQueue – scheduler of the whole pipeline
# ----------------------------------------------------------------------
class CaptureQueue:
    """
    In‑memory priority queue of capture requests and the loop that drains it.

    Items are processed strictly one at a time, highest priority first
    (``high`` > ``normal`` > ``low``), earliest ``scheduled_at`` first within a
    priority, with a fixed pause between captures.  A successful *direct*
    capture enqueues the same‑host links found so far as *discovered*,
    low‑priority items; a failed capture is re‑queued at low priority until it
    has been retried ``max_retries`` times.
    """

    def __init__(
        self,
        page_store: PageStore,
        link_index: LinkIndex,
        fetcher: PageFetcher,
        extractor: ContentExtractor,
        settings: Optional[QueueSettings] = None,
    ):
        self.page_store = page_store
        self.link_index = link_index
        self.fetcher = fetcher
        self.extractor = extractor
        self.settings = settings or QueueSettings()

        self._items: List[CaptureQueueItem] = []
        self._current: Optional[CaptureQueueItem] = None
        self._is_capturing = False
        self._stop_requested = False
        self._task: Optional[asyncio.Task] = None
        self._store_checks: Set[asyncio.Task] = set()
        self._listeners: List[QueueListener] = []

    # ------------------------------------------------------------------
    #  Introspection
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._items) + (1 if self._current is not None else 0)

    def __contains__(self, url: str) -> bool:
        if self._current is not None and self._current.url == url:
            return True
        return any(item.url == url for item in self._items)

    @property
    def is_capturing(self) -> bool:
        return self._is_capturing

    def items(self) -> List[CaptureQueueItem]:
        """Snapshot of the queue in processing order (in‑flight item first)."""
        ordered = sorted(self._items, key=lambda i: i.rank())
        if self._current is not None:
            ordered.insert(0, self._current)
        return [item.model_copy() for item in ordered]

    def stats(self) -> QueueStats:
        """Synchronous snapshot; never touches the store."""
        items = list(self._items)
        if self._current is not None:
            items.append(self._current)
        return QueueStats(
            total=len(items),
            pending=sum(1 for i in items if i.status == ItemStatus.PENDING),
            processing=sum(1 for i in items if i.status == ItemStatus.PROCESSING),
            high=sum(1 for i in items if i.priority == Priority.HIGH),
            normal=sum(1 for i in items if i.priority == Priority.NORMAL),
            low=sum(1 for i in items if i.priority == Priority.LOW),
            discovered=sum(1 for i in items if i.origin == ItemOrigin.DISCOVERED),
            is_capturing=self._is_capturing,
        )

    # ------------------------------------------------------------------
    #  Observers
    # ------------------------------------------------------------------
    def add_listener(self, callback: QueueListener) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: QueueListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        """Tell every listener the queue changed; listener failures are only logged."""
        QUEUE_LENGTH.set(len(self))
        if not self._listeners:
            return
        update = QueueUpdate(items=self.items(), stats=self.stats(), is_capturing=self._is_capturing)
        for callback in list(self._listeners):
            try:
                callback(update)
            except Exception as exc:  # notifications are fire-and-forget
                logger.warning(f"Queue listener {callback!r} failed: {exc}")

    # ------------------------------------------------------------------
    #  Submission
    # ------------------------------------------------------------------
    def _accept(self, url: str, priority) -> Optional[Tuple[str, Priority]]:
        """
        Validate a submission; returns the normalised URL and parsed priority,
        or None (logged).
        """
        try:
            parsed_priority = Priority(priority)
        except ValueError:
            logger.warning(f"Rejected {url!r}: unknown priority {priority!r}")
            return None
        try:
            url = validate_url(url)
        except InvalidUrlError as exc:
            logger.warning(f"Rejected submission: {exc}")
            return None
        if url in self:
            logger.info(f"URL already queued: {url}")
            return None
        return url, parsed_priority

    def _enqueue(self, url: str, priority: Priority) -> CaptureQueueItem:
        item = CaptureQueueItem(url=url, priority=priority)
        self._items.append(item)
        logger.info(f"Queued {url} ({priority.value}) as {item.id}")
        self._notify()
        if self.settings.auto_start:
            self.start()
        return item

    def submit(self, url: str, priority="normal") -> bool:
        """
        Add a direct capture request.

        Returns False (and logs) for an invalid URL, an unknown priority, or a
        URL that is already queued.  The "already captured" check runs in the
        background: if the page turns out to be stored, the item is withdrawn
        again (and the capture step re‑checks the store anyway).
        """
        accepted = self._accept(url, priority)
        if accepted is None:
            return False

        url, parsed_priority = accepted
        item = self._enqueue(url, parsed_priority)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return True
        task = loop.create_task(self._withdraw_if_stored(item))
        self._store_checks.add(task)
        task.add_done_callback(self._store_checks.discard)
        return True

    async def submit_checked(self, url: str, priority="normal") -> bool:
        """Like :meth:`submit`, but awaits the store check before enqueueing."""
        accepted = self._accept(url, priority)
        if accepted is None:
            return False
        url, parsed_priority = accepted
        if await self.page_store.exists(url):
            logger.info(f"Page already captured: {url}")
            return False
        # The await above may have let another submission of the same URL in.
        if url in self:
            logger.info(f"URL already queued: {url}")
            return False
        self._enqueue(url, parsed_priority)
        return True

    async def _withdraw_if_stored(self, item: CaptureQueueItem) -> None:
        try:
            stored = await self.page_store.exists(item.url)
        except PageCaptureError as exc:
            logger.error(f"Store check failed for {item.url} ({item.id}): {exc}")
            return
        except Exception:  # nobody awaits this task
            logger.exception(f"Unexpected error checking the store for {item.url} ({item.id})")
            return
        if stored and item in self._items:
            self._items.remove(item)
            logger.info(f"Page already captured, withdrawn from queue: {item.url}")
            self._notify()

    async def wait_for_store_checks(self) -> None:
        """Await the background "already captured" checks started by submit()."""
        if self._store_checks:
            await asyncio.gather(*list(self._store_checks))

    # ------------------------------------------------------------------
    #  Queue management
    # ------------------------------------------------------------------
    def clear(self) -> int:
        """Drop every waiting item (an in‑flight capture is not affected)."""
        removed = len(self._items)
        self._items.clear()
        if removed:
            logger.info(f"Cleared {removed} items from the capture queue")
            self._notify()
        return removed

    def remove(self, item_id: str) -> bool:
        for item in self._items:
            if item.id == item_id:
                self._items.remove(item)
                logger.info(f"Removed {item.url} ({item_id}) from the queue")
                self._notify()
                return True
        return False

    def change_priority(self, item_id: str, priority) -> bool:
        """Re‑prioritise a waiting item; it is rescheduled as of now."""
        try:
            parsed_priority = Priority(priority)
        except ValueError:
            logger.warning(f"Unknown priority {priority!r} for item {item_id}")
            return False
        for item in self._items:
            if item.id == item_id:
                item.priority = parsed_priority
                item.scheduled_at = now_ms()
                logger.info(f"Priority of {item.url} ({item_id}) set to {parsed_priority.value}")
                self._notify()
                return True
        return False

    # ------------------------------------------------------------------
    #  Capture step
    # ------------------------------------------------------------------
    async def capture(self, url: str) -> PageDocument:
        """
        Fetch, extract and persist *url*, then index its same‑host links.

        The store is re‑checked right before fetching so a URL that slipped
        into the queue twice is only fetched once.
        """
        existing = await self.page_store.get(url)
        if existing is not None:
            logger.info(f"Page already captured: {url}")
            return existing

        html = await self.fetcher.fetch(url)
        page = self.extractor.build_document(url, html)

        await self.page_store.put(page)
        await self.page_store.add_history(page)
        await self.link_index.ingest(page)

        CAPTURED_TOTAL.inc()
        logger.info(f"Captured {url}: '{page.title}' ({len(page.links)} links, {len(page.terms)} terms)")
        return page

    async def expand_discovered_links(self, source_url: str) -> int:
        """
        Queue the known same‑host links of *source_url*'s host that are
        neither captured nor queued.  Returns how many items were added.
        """
        hostname = hostname_of(source_url)
        links = await self.link_index.get_by_source_hostname(hostname)
        if not links:
            logger.info(f"No discovered links for {hostname}")
            return 0

        added = 0
        for link in links:
            if link.url in self:
                continue
            if await self.page_store.exists(link.url):
                continue
            self._items.append(
                CaptureQueueItem(
                    url=link.url,
                    hostname=hostname,
                    priority=Priority.LOW,
                    origin=ItemOrigin.DISCOVERED,
                    discovered_from=source_url,
                )
            )
            added += 1

        if added:
            logger.info(f"Queued {added} discovered links from {source_url}")
            self._notify()
        return added

    def _handle_failure(self, item: CaptureQueueItem, exc: Exception) -> None:
        if item.retry_count < self.settings.max_retries:
            item.retry_count += 1
            item.priority = Priority.LOW
            item.status = ItemStatus.PENDING
            self._items.append(item)
            RETRIES_TOTAL.inc()
            logger.warning(
                f"Capture of {item.url} ({item.id}) failed: {exc}; "
                f"retry {item.retry_count}/{self.settings.max_retries}"
            )
        else:
            DROPPED_TOTAL.inc()
            logger.error(
                f"Capture of {item.url} ({item.id}) failed after "
                f"{self.settings.max_retries} retries, dropping: {exc}"
            )

    # ------------------------------------------------------------------
    #  Scheduler loop
    # ------------------------------------------------------------------
    async def process_next(self) -> Optional[CaptureQueueItem]:
        """
        Run one iteration of the scheduler: pick the best item and capture it.
        Returns the processed item, or None when the queue is empty.
        """
        if not self._items:
            return None

        # list.sort is stable: equal ranks keep insertion order.
        self._items.sort(key=lambda i: i.rank())
        item = self._items.pop(0)
        item.status = ItemStatus.PROCESSING
        self._current = item
        self._notify()
        logger.info(f"Processing {item.url} ({item.priority.value}, {item.id})")

        try:
            await self.capture(item.url)
        except PageCaptureError as exc:
            self._current = None
            self._handle_failure(item, exc)
        except Exception as exc:
            logger.exception(f"Unexpected error capturing {item.url} ({item.id})")
            self._current = None
            self._handle_failure(item, exc)
        else:
            self._current = None
            if item.origin == ItemOrigin.DIRECT:
                try:
                    await self.expand_discovered_links(item.url)
                except (PageCaptureError, ValidationError) as exc:
                    logger.error(f"Could not expand links of {item.url} ({item.id}): {exc}")
        finally:
            self._notify()
        return item

    async def drain(self) -> None:
        """Process items until the queue is empty or :meth:`stop` is called."""
        if self._is_capturing:
            logger.info("Queue processing already running")
            return

        self._is_capturing = True
        self._stop_requested = False
        logger.info(f"Processing capture queue with {len(self._items)} items")
        try:
            while self._items and not self._stop_requested:
                await self.process_next()
                if self._items and not self._stop_requested and self.settings.request_delay > 0:
                    await asyncio.sleep(self.settings.request_delay)
        finally:
            self._is_capturing = False
            self._stop_requested = False
            logger.info("Capture queue processing finished")
            self._notify()

    def start(self) -> bool:
        """Start the drain loop in the background if it is idle."""
        if self._is_capturing or (self._task is not None and not self._task.done()):
            return False
        if not self._items:
            return False
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; call drain() to process the queue")
            return False
        logger.info("Starting capture queue processing")
        self._task = loop.create_task(self.drain())
        return True

    def stop(self) -> bool:
        """Stop after the in‑flight capture; waiting items stay queued."""
        if not self._is_capturing:
            logger.info("Queue processing is not running")
            return False
        logger.info("Stopping capture queue processing")
        self._stop_requested = True
        self._notify()
        return True

    async def wait_idle(self) -> None:
        """Wait for the background drain task (if any) to finish."""
        if self._task is not None:
            await self._task
