from .capture_item import CaptureQueueItem, ItemOrigin, ItemStatus, Priority
from .link_record import LinkRecord
from .page_document import Heading, PageDocument, PageLink, PageList
from .search_hit import SearchHit
from .stats import CaptureHistoryEntry, CaptureStats, DatabaseStatus, QueueStats, QueueUpdate

__all__ = [
    'CaptureQueueItem', 'ItemOrigin', 'ItemStatus', 'Priority',
    'LinkRecord',
    'Heading', 'PageDocument', 'PageLink', 'PageList',
    'SearchHit',
    'CaptureHistoryEntry', 'CaptureStats', 'DatabaseStatus', 'QueueStats', 'QueueUpdate',
]
