# models/page_document.py
from __future__ import annotations

from typing import Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .timestamps import now_ms

DEFAULT_TITLE = "Untitled"


class _Record(BaseModel):
    """Shared config: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Heading(_Record):
    level: str
    text: str

    @field_validator("level", mode="before")
    @classmethod
    def _normalise_level(cls, v: Union[str, int]) -> str:
        """Accept ``2``, ``"2"`` or ``"H2"`` and store ``"h2"``."""
        if isinstance(v, int) or (isinstance(v, str) and v.isdigit()):
            return f"h{v}"
        return str(v).lower()


class PageList(_Record):
    type: str
    items: List[str] = Field(default_factory=list)


class PageLink(_Record):
    url: str
    text: str
    title: str = ""
    rel: str = ""
    type: str = "general"
    relevance: float = 0.5


class PageDocument(_Record):
    """
    Structured content extracted from one captured page.

    Keyed by ``url``; the page store keeps at most one document per URL and a
    re‑capture overwrites the previous one wholesale.
    """

    url: str
    hostname: str = ""
    title: str = DEFAULT_TITLE
    meta: Dict[str, str] = Field(default_factory=dict)
    headings: List[Heading] = Field(default_factory=list)
    paragraphs: List[str] = Field(default_factory=list)
    lists: List[PageList] = Field(default_factory=list)
    links: List[PageLink] = Field(default_factory=list)
    terms: List[str] = Field(default_factory=list)
    timestamp: int = Field(default_factory=now_ms)
    captured_by: str = "desktop-app"

    @field_validator("title", mode="before")
    @classmethod
    def _default_title(cls, v):
        if v is None:
            return DEFAULT_TITLE
        v = str(v).strip()
        return v or DEFAULT_TITLE

    @property
    def description(self) -> str:
        return self.meta.get("description", "")

    def content_size(self) -> int:
        """
        Approximate stored size in characters: title, string meta values,
        heading texts, paragraphs and terms.
        """
        size = len(self.title)
        size += sum(len(v) for v in self.meta.values() if isinstance(v, str))
        size += sum(len(h.text) for h in self.headings)
        size += sum(len(p) for p in self.paragraphs)
        size += sum(len(t) for t in self.terms)
        return size

    def to_dict(self) -> dict:
        """Serialise with the camelCase keys used on the wire and in the store."""
        return self.model_dump(mode="json", by_alias=True)
