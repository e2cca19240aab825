# tests/test_config_loader.py
"""
Tests for the Pydantic‑based ``services.capture.config_loader`` module.

The loader returns validated ``CaptureSettings`` models, so the tests use
attribute access (``cfg.queue.request_delay``) rather than key lookup.
"""

import pytest

from services.capture.config_loader import (
    CONFIG_ENV_VAR,
    CaptureSettings,
    ExtractionSettings,
    get_settings,
    load_settings,
    reset_settings_cache,
)
from services.capture.exceptions import ConfigError


@pytest.fixture(autouse=True)
def _fresh_cache():
    reset_settings_cache()
    yield
    reset_settings_cache()


def test_bundled_config_matches_defaults():
    cfg = load_settings()

    assert isinstance(cfg, CaptureSettings)
    assert cfg.queue.request_delay == 1.0
    assert cfg.queue.max_retries == 3
    assert cfg.fetch.user_agent == "BuscaLogo-Desktop/1.0.0"
    assert cfg.fetch.timeout is None
    assert cfg.extraction.max_terms == 50
    assert cfg.extraction.min_term_length == 4
    assert "tutorial" in cfg.extraction.article_keywords
    assert "para" in cfg.extraction.stop_words
    # The shipped file mirrors the in‑code defaults.
    assert cfg.extraction == ExtractionSettings()


def test_wrapped_capture_key_and_partial_sections(tmp_path):
    path = tmp_path / "capture.yaml"
    path.write_text(
        "capture:\n"
        "  queue:\n"
        "    request_delay: 0\n"
        "  storage:\n"
        "    database_path: ':memory:'\n",
        encoding="utf-8",
    )

    cfg = load_settings(path)

    assert cfg.queue.request_delay == 0
    assert cfg.queue.max_retries == 3          # untouched default
    assert cfg.storage.database_path == ":memory:"


def test_keywords_and_stop_words_are_lowercased(tmp_path):
    path = tmp_path / "capture.yaml"
    path.write_text(
        "extraction:\n"
        "  article_keywords: ['Tutorial', ' GUIA ', '']\n"
        "  stop_words: ['PARA']\n",
        encoding="utf-8",
    )

    cfg = load_settings(path)

    assert cfg.extraction.article_keywords == ["tutorial", "guia"]
    assert cfg.extraction.stop_words == ["para"]


def test_env_var_overrides_path_and_result_is_cached(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text("queue:\n  max_retries: 5\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

    first = get_settings()
    second = get_settings()

    assert first.queue.max_retries == 5
    assert first is second


@pytest.mark.parametrize(
    "content",
    [
        "queue: [unclosed",              # malformed YAML
        "- just\n- a list\n",            # top level is not a mapping
        "queue:\n  request_delay: -1\n", # schema violation
    ],
)
def test_invalid_files_raise_config_error(tmp_path, content):
    path = tmp_path / "capture.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError) as exc_info:
        load_settings(path)
    assert exc_info.value.path == str(path)


def test_missing_file_raises_config_error(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(tmp_path / "nope.yaml")
