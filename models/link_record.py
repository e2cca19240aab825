# models/link_record.py
from __future__ import annotations

from typing import List, Optional

from pydantic import Field, model_validator

from .page_document import _Record
from .timestamps import now_ms


class LinkRecord(_Record):
    """
    One entry of the link index.

    Exactly one record exists per link URL; rediscovering the link from
    another page only refreshes ``last_seen`` and records the new source in
    ``source_urls``.
    """

    url: str
    text: str = ""
    title: str = ""
    rel: str = ""
    type: str = "general"
    relevance: float = 0.5
    source_url: str
    source_hostname: str
    discovered_at: int = Field(default_factory=now_ms)
    last_seen: int = Field(default_factory=now_ms)
    click_count: int = Field(default=0, ge=0)
    source_urls: List[str] = Field(default_factory=list)
    status: str = "discovered"

    @model_validator(mode="after")
    def _include_first_source(self) -> "LinkRecord":
        """``source_urls`` always contains the page that first linked here."""
        if self.source_url not in self.source_urls:
            self.source_urls.insert(0, self.source_url)
        return self

    def add_source(self, url: str, seen_at: Optional[int] = None) -> bool:
        """
        Record that *url* links here and refresh ``last_seen``.
        Duplicate source URLs are ignored; returns True if *url* was new.
        """
        self.last_seen = seen_at if seen_at is not None else now_ms()
        if url in self.source_urls:
            return False
        self.source_urls.append(url)
        return True

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
