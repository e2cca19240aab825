# services/capture/config_loader.py
"""
Loads the pipeline configuration from ``configs/capture.yaml`` and validates it
with Pydantic models.  The file can contain a top‑level ``capture`` key or
just the mapping of section names → settings.

Public API:
* ``get_settings()`` – returns the validated, process‑wide ``CaptureSettings``.
* ``load_settings(path)`` – reads and validates an explicit file (no caching).
* ``reset_settings_cache()`` – drops the cached instance (tests, reloads).
"""

import os
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigError


# ----------------------------------------------------------------------
# Pydantic schemas – they give us runtime validation and nice error msgs
# ----------------------------------------------------------------------
class QueueSettings(BaseModel):
    """How the scheduler paces and retries captures."""
    request_delay: float = Field(default=1.0, ge=0)
    max_retries: int = Field(default=3, ge=0)
    auto_start: bool = True


class FetchSettings(BaseModel):
    """Outbound HTTP behaviour of the fetch step."""
    user_agent: str = "BuscaLogo-Desktop/1.0.0"
    follow_redirects: bool = True
    timeout: Optional[float] = Field(default=None, gt=0)


class ExtractionSettings(BaseModel):
    """Knobs of the content extractor."""
    max_terms: int = Field(default=50, ge=1)
    min_term_length: int = Field(default=4, ge=1)
    min_paragraph_length: int = Field(default=11, ge=1)
    captured_by: str = "desktop-app"
    article_keywords: List[str] = Field(
        default_factory=lambda: [
            "lançado", "lançada", "como instalar", "tutorial", "dica", "guia",
        ]
    )
    stop_words: List[str] = Field(
        default_factory=lambda: [
            "para", "com", "uma", "por", "mais", "como", "mas", "foi", "ele",
            "se", "tem", "à", "seu", "sua", "ou", "ser", "quando", "muito",
            "há", "nos", "já", "está", "eu", "também", "só", "pelo", "pela",
            "até", "isso", "ela", "entre", "era", "depois", "sem", "mesmo",
            "aos", "ter", "seus", "suas",
        ]
    )

    @field_validator("article_keywords", "stop_words", mode="after")
    @classmethod
    def _lowercase(cls, values: List[str]) -> List[str]:
        """Matching is case‑insensitive, so store everything lowercased."""
        return [v.strip().lower() for v in values if v and v.strip()]


class StorageSettings(BaseModel):
    """Where the local embedded store lives (``:memory:`` for tests)."""
    database_path: str = "data/pagecapture.db"


class PeerSettings(BaseModel):
    """Identity announced to the peer search network."""
    peer_id: Optional[str] = None


class CaptureSettings(BaseModel):
    """Top‑level container for every section of ``capture.yaml``."""
    queue: QueueSettings = Field(default_factory=QueueSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    peer: PeerSettings = Field(default_factory=PeerSettings)


# ----------------------------------------------------------------------
# Internal helpers & caching
# ----------------------------------------------------------------------
# Resolve the path relative to this file (two levels up → project root)
CONFIG_PATH = Path(__file__).resolve().parents[2] / "configs" / "capture.yaml"

CONFIG_ENV_VAR = "PAGECAPTURE_CONFIG"

# Simple in‑process cache so the YAML is read/validated only once per process
_cached_settings: Optional[CaptureSettings] = None


def _config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    return Path(override) if override else CONFIG_PATH


def _load_yaml(path: Path) -> dict:
    """Read the YAML file and return the inner ``capture`` mapping."""
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
    except OSError as exc:
        raise ConfigError(str(path), f"cannot read file ({exc})") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(str(path), f"malformed YAML ({exc})") from exc

    if not isinstance(raw, dict):
        raise ConfigError(str(path), "top level must be a mapping")
    # If the file wraps everything under a top‑level key called “capture”,
    # return that inner dict; otherwise return the whole dict.
    return raw.get("capture", raw)


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------
def load_settings(path: Optional[Path] = None) -> CaptureSettings:
    """
    Parse ``path`` (default: ``configs/capture.yaml`` or ``$PAGECAPTURE_CONFIG``)
    and validate it against ``CaptureSettings``.

    Raises
    ------
    ConfigError
        If the file cannot be read, is not valid YAML, or does not conform
        to the schema.
    """
    path = Path(path) if path is not None else _config_path()
    raw = _load_yaml(path)
    try:
        return CaptureSettings(**raw)   # validation happens here
    except ValidationError as exc:
        raise ConfigError(str(path), str(exc)) from exc


def get_settings() -> CaptureSettings:
    """Return the cached process‑wide settings, loading them on first use."""
    global _cached_settings
    if _cached_settings is None:
        _cached_settings = load_settings()
    return _cached_settings


def reset_settings_cache() -> None:
    global _cached_settings
    _cached_settings = None
