# tests/test_search_engine.py
import pytest

from models import PageDocument
from services.search.search_engine import SearchEngine, score


@pytest.fixture
def engine(page_store) -> SearchEngine:
    return SearchEngine(page_store)


def test_title_match_scores_at_least_ten():
    page = PageDocument(url="https://a.io/", title="Learning Python")
    assert score(page, "python") == 10


def test_title_prefix_gets_bonus():
    page = PageDocument(url="https://a.io/", title="Python basics")
    assert score(page, "PYTHON") == 15


def test_term_only_match_scores_four():
    page = PageDocument(url="https://a.io/", title="Other", terms=["python"])
    assert score(page, "python") == 4


def test_every_field_adds_its_weight():
    page = PageDocument(
        url="https://a.io/",
        title="Python",                                           # 10 + 5
        meta={"description": "all about python"},                 # 8
        headings=[{"level": "h1", "text": "Python"}, {"level": "h2", "text": "Misc"}],  # 6
        paragraphs=["python one", "python two", "nothing here"],  # 3 * 2
        terms=["python", "pythonic", "other"],                    # 4 * 2
    )
    assert score(page, "python") == 15 + 8 + 6 + 6 + 8


def test_no_match_scores_zero():
    page = PageDocument(url="https://a.io/", title="Rust")
    assert score(page, "python") == 0


async def test_search_ranks_title_match_above_paragraph_match(engine, page_store):
    await page_store.put(
        PageDocument(url="https://a.io/p", title="Notes", paragraphs=["some python tips here"])
    )
    await page_store.put(PageDocument(url="https://a.io/t", title="Python tricks"))
    await page_store.put(PageDocument(url="https://a.io/n", title="Unrelated"))

    hits = await engine.search("python")

    assert [hit.url for hit in hits] == ["https://a.io/t", "https://a.io/p"]
    assert [hit.score for hit in hits] == [15, 3]


@pytest.mark.parametrize("query", ["", "   "])
async def test_blank_query_returns_nothing(engine, page_store, query):
    await page_store.put(PageDocument(url="https://a.io/", title="Anything"))
    assert await engine.search(query) == []


async def test_search_on_empty_store(engine):
    assert await engine.search("python") == []
