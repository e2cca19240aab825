# models/capture_item.py
import uuid
from enum import Enum
from typing import Optional, Tuple
from urllib.parse import urlparse

from pydantic import BaseModel, Field, model_validator

from .timestamps import now_ms


# ----------------------------------------------------------------------
#  Enumerations – used by the scheduler to order and track items
# ----------------------------------------------------------------------
class Priority(str, Enum):
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"

    @property
    def weight(self) -> int:
        return _PRIORITY_WEIGHTS[self]


_PRIORITY_WEIGHTS = {Priority.HIGH: 3, Priority.NORMAL: 2, Priority.LOW: 1}


class ItemStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"


class ItemOrigin(str, Enum):
    DIRECT = "direct"
    DISCOVERED = "discovered"


def _new_item_id() -> str:
    return uuid.uuid4().hex[:16]


# ----------------------------------------------------------------------
#  Queue item – owned exclusively by CaptureQueue, lives only in memory
# ----------------------------------------------------------------------
class CaptureQueueItem(BaseModel):
    """
    A pending capture request.

    The item is created ``pending``, becomes ``processing`` while its page is
    being fetched, and is either removed (success) or re‑queued as ``pending``
    with a higher ``retry_count`` and ``low`` priority (failure).
    """

    id: str = Field(default_factory=_new_item_id)
    url: str
    hostname: str = ""
    priority: Priority = Priority.NORMAL
    scheduled_at: int = Field(default_factory=now_ms)
    status: ItemStatus = ItemStatus.PENDING
    retry_count: int = Field(default=0, ge=0)
    origin: ItemOrigin = ItemOrigin.DIRECT
    discovered_from: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _derive_hostname(cls, data):
        """Fill ``hostname`` from ``url`` when the caller did not supply one."""
        if isinstance(data, dict) and not data.get("hostname") and data.get("url"):
            data = dict(data)
            data["hostname"] = urlparse(str(data["url"])).hostname or ""
        return data

    def rank(self) -> Tuple[int, int]:
        """Sort key: higher priority first, then earliest ``scheduled_at``."""
        return (-self.priority.weight, self.scheduled_at)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
