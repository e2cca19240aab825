# models/capture_request.py
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .capture_item import Priority


# ----------------------------------------------------------------------
#  Request bodies accepted by the HTTP API
# ----------------------------------------------------------------------
class CaptureRequest(BaseModel):
    """
    Request model for ``POST /capture``.

    The URL is validated by the queue itself (an invalid URL is answered with
    ``accepted: false``, not a 422) so it is kept as a plain string here.
    """

    url: str = Field(..., description="Absolute http(s) URL to capture")
    priority: Priority = Field(
        default=Priority.NORMAL,
        description="Scheduling priority: high, normal or low",
    )

    @field_validator("url", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"url": "https://example.com/article", "priority": "high"}
        }
    )


class PriorityUpdate(BaseModel):
    """Request model for ``PATCH /queue/{item_id}``."""
    priority: Priority


class CaptureResponse(BaseModel):
    accepted: bool
    url: str
    queue_length: int


class PeerMessage(BaseModel):
    """Loose envelope for ``POST /peer/message``; the adapter validates the rest."""
    type: str
    data: Optional[Dict[str, Any]] = None
    queryId: Optional[str] = None
    query: Optional[str] = None
    peerId: Optional[str] = None
    timestamp: Optional[int] = None
