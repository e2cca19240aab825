# tests/test_content_extractor.py
import pytest

from services.capture.config_loader import ExtractionSettings
from services.capture.content_extractor import ContentExtractor
from services.capture.link_extractor import (
    LinkExtractor,
    is_valid_url,
    resolve_url,
    same_host_url,
    validate_url,
)
from services.capture.exceptions import InvalidUrlError

ARTICLE_HTML = """
<html>
  <head>
    <title> Guia Python </title>
    <meta name="description" content="Aprenda python rapidamente">
    <meta property="og:title" content="Guia">
    <meta name="keywords">
  </head>
  <body>
    <h1>Introdução ao Python</h1>
    <h2>Instalação</h2>
    <h4>ignored level</h4>
    <p>Short</p>
    <p>Python é uma linguagem para automação e dados.</p>
    <ul><li>Variáveis</li><li> </li><li>Funções</li></ul>
    <ol><li>Primeiro</li></ol>
    <a href="/b" title="Bee" rel="next nofollow">Tutorial de Python</a>
    <a href="https://other.org/x">Outro site</a>
    <a href="/empty"> </a>
  </body>
</html>
"""


@pytest.fixture
def extractor() -> ContentExtractor:
    return ContentExtractor()


def test_extract_structure(extractor):
    content = extractor.extract(ARTICLE_HTML)

    assert content.title == "Guia Python"
    assert content.meta == {
        "description": "Aprenda python rapidamente",
        "og:title": "Guia",
    }
    assert [(h.level, h.text) for h in content.headings] == [
        ("h1", "Introdução ao Python"),
        ("h2", "Instalação"),
    ]
    # Paragraphs shorter than 11 characters are dropped.
    assert content.paragraphs == ["Python é uma linguagem para automação e dados."]
    assert [(lst.type, lst.items) for lst in content.lists] == [
        ("ul", ["Variáveis", "Funções"]),
        ("ol", ["Primeiro"]),
    ]


def test_links_keep_raw_href_and_are_classified(extractor):
    links = extractor.extract(ARTICLE_HTML).links

    assert [link.url for link in links] == ["/b", "https://other.org/x"]
    first, second = links
    assert (first.type, first.relevance) == ("article", 0.8)
    assert first.title == "Bee"
    assert first.rel == "next nofollow"
    assert (second.type, second.relevance) == ("general", 0.5)


def test_terms_are_normalised_deduped_and_filtered(extractor):
    terms = extractor.extract(ARTICLE_HTML).terms

    assert terms[:2] == ["guia", "python"]
    assert terms.count("python") == 1
    assert "para" not in terms            # stop word
    assert "uma" not in terms             # stop word and too short
    # Accented letters split words: "introdução" leaves only "introdu".
    assert "introdução" not in terms
    assert "introdu" in terms
    assert "funções" not in terms and "fun" not in terms
    assert all(len(t) >= 4 for t in terms)


def test_terms_are_capped():
    extractor = ContentExtractor(ExtractionSettings(max_terms=3))
    terms = extractor.extract_terms(["alpha beta gamma delta epsilon"])
    assert terms == ["alpha", "beta", "gamma"]


def test_extract_terms_strips_markup_and_punctuation(extractor):
    terms = extractor.extract_terms(["<b>Hello</b>, world! hello-world"])
    assert terms == ["hello", "world"]


@pytest.mark.parametrize("html", ["", "<html><body></body></html>", "<div><p>tiny<span>"])
def test_missing_structure_yields_empty_fields(extractor, html):
    content = extractor.extract(html)

    assert content.title == "Untitled"
    assert content.meta == {}
    assert content.headings == []
    assert content.links == []
    assert content.terms == []


def test_build_document_fills_page_fields(extractor):
    page = extractor.build_document("https://example.com/a", ARTICLE_HTML)

    assert page.url == "https://example.com/a"
    assert page.hostname == "example.com"
    assert page.captured_by == "desktop-app"
    assert page.timestamp > 0
    assert page.description == "Aprenda python rapidamente"


# ----------------------------------------------------------------------
# URL helpers
# ----------------------------------------------------------------------
@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://example.com/a", True),
        ("http://example.com", True),
        ("ftp://example.com/file", False),
        ("not a url", False),
        ("/relative/path", False),
        ("", False),
    ],
)
def test_is_valid_url(url, expected):
    assert is_valid_url(url) is expected


def test_resolve_url_drops_fragment_and_non_http():
    assert resolve_url("/b#top", "https://example.com/a") == "https://example.com/b"
    assert resolve_url("mailto:x@example.com", "https://example.com/a") is None


def test_same_host_url():
    page = "https://example.com/a"
    assert same_host_url("c", page) == "https://example.com/c"
    assert same_host_url("https://other.org/x", page) is None


def test_classify_is_case_insensitive():
    extractor = LinkExtractor(["como instalar"])
    assert extractor.classify("COMO INSTALAR o Linux") == ("article", 0.8)
    assert extractor.classify("Sobre nós") == ("general", 0.5)


def test_validate_url():
    assert validate_url("  https://example.com/a ") == "https://example.com/a"
    with pytest.raises(InvalidUrlError) as exc_info:
        validate_url("javascript:void(0)")
    assert exc_info.value.url == "javascript:void(0)"
    # Also usable wherever a ValueError is expected.
    assert isinstance(exc_info.value, ValueError)


def test_accented_words_are_split_into_ascii_fragments(extractor):
    assert extractor.extract_terms(["Ubuntu lançado hoje"]) == ["ubuntu", "hoje"]
    assert extractor.extract_terms(["Variáveis"]) == ["vari", "veis"]
