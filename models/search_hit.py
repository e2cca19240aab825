# models/search_hit.py
from .page_document import PageDocument

# Fields handed to remote peers, in the order they expect them.
PEER_RESULT_FIELDS = (
    "url",
    "title",
    "hostname",
    "meta",
    "headings",
    "paragraphs",
    "terms",
    "score",
    "timestamp",
)


class SearchHit(PageDocument):
    """A stored document plus the relevance score computed for one query."""

    score: int = 0

    @classmethod
    def from_document(cls, page: PageDocument, score: int) -> "SearchHit":
        return cls(**page.model_dump(), score=score)

    def to_peer_result(self) -> dict:
        data = self.to_dict()
        return {key: data[key] for key in PEER_RESULT_FIELDS}
