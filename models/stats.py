# models/stats.py
from typing import List

from pydantic import Field

from .capture_item import CaptureQueueItem
from .page_document import _Record
from .timestamps import now_ms


# ----------------------------------------------------------------------
#  Queue snapshot – computed synchronously by CaptureQueue.stats()
# ----------------------------------------------------------------------
class QueueStats(_Record):
    total: int = 0
    pending: int = 0
    processing: int = 0
    high: int = 0
    normal: int = 0
    low: int = 0
    discovered: int = 0
    is_capturing: bool = False


class QueueUpdate(_Record):
    """Payload delivered to queue listeners after every mutation."""
    items: List[CaptureQueueItem] = Field(default_factory=list)
    stats: QueueStats = Field(default_factory=QueueStats)
    is_capturing: bool = False


# ----------------------------------------------------------------------
#  Store / dashboard statistics
# ----------------------------------------------------------------------
class DatabaseStatus(_Record):
    initialized: bool = False
    stores: List[str] = Field(default_factory=list)
    message: str = "Database not initialised"


class CaptureStats(_Record):
    total_pages: int = 0
    captured_pages: int = 0
    unique_hosts: int = 0
    total_size: float = 0.0          # MB, two decimals
    total_size_bytes: int = 0
    queue_length: int = 0
    is_capturing: bool = False
    api_connected: bool = False
    total_links: int = 0
    discovered_links: int = 0
    high_priority: int = 0
    normal_priority: int = 0
    low_priority: int = 0
    db_status: DatabaseStatus = Field(default_factory=DatabaseStatus)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class CaptureHistoryEntry(_Record):
    """One row of the capture history, keyed by capture time."""
    timestamp: int = Field(default_factory=now_ms)
    url: str
    hostname: str = ""
    title: str = ""
