# services/capture/exceptions.py
"""
Exception hierarchy for the capture pipeline.

Every error carries enough context (URL, status, underlying reason) to be
logged and reproduced.  None of them is meant to stop the process: the
scheduler catches them per item and moves on.
"""

from typing import Optional


class PageCaptureError(Exception):
    """Base class for every error raised by the capture pipeline."""


class InvalidUrlError(PageCaptureError, ValueError):
    """Raised when a URL is not a syntactically valid absolute http(s) URL."""

    def __init__(self, url: str):
        super().__init__(f"Invalid URL: {url!r}")
        self.url = url


class CaptureError(PageCaptureError):
    """
    Raised when fetching a page fails.

    ``status_code`` is set for non‑2xx responses, ``reason`` holds the
    transport error text (DNS failure, timeout, reset...).
    """

    def __init__(
        self,
        url: str,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        if status_code is not None:
            message = f"HTTP {status_code} fetching {url}"
            if reason:
                message += f": {reason}"
        else:
            message = f"Error fetching {url}: {reason or 'unknown error'}"
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.reason = reason


class StoreError(PageCaptureError):
    """Raised when the local store cannot complete an operation."""

    def __init__(self, operation: str, detail: str):
        super().__init__(f"Store operation '{operation}' failed: {detail}")
        self.operation = operation
        self.detail = detail


class ConfigError(PageCaptureError):
    """Raised when ``capture.yaml`` is missing, unreadable or invalid."""

    def __init__(self, path: str, detail: str):
        super().__init__(f"Invalid configuration in {path}: {detail}")
        self.path = path
        self.detail = detail
