# tests/conftest.py
"""
Shared fixtures: in‑memory store, settings without pacing, and HTTP clients
built on ``httpx.MockTransport`` so no test ever touches the network.
"""

from typing import Callable, Dict, List, Tuple, Union

import httpx
import pytest

from services.capture.capture_service import CaptureService
from services.capture.config_loader import (
    CaptureSettings,
    PeerSettings,
    QueueSettings,
    StorageSettings,
)
from services.storage.database import Database
from services.storage.link_index import LinkIndex
from services.storage.page_store import PageStore

Route = Union[str, Tuple[int, str]]


class FakeSite:
    """
    Serves a fixed ``{url: html}`` (or ``{url: (status, html)}``) mapping and
    records every requested URL.  Unknown URLs answer 404.
    """

    def __init__(self, routes: Dict[str, Route]):
        self.routes = routes
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, tuple):
            status, body = route
            return httpx.Response(status, text=body)
        return httpx.Response(200, text=route, headers={"content-type": "text/html"})

    @property
    def requested_urls(self) -> List[str]:
        return [str(r.url) for r in self.requests]

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def settings() -> CaptureSettings:
    return CaptureSettings(
        queue=QueueSettings(request_delay=0, max_retries=3, auto_start=False),
        storage=StorageSettings(database_path=":memory:"),
        peer=PeerSettings(peer_id="peer_test"),
    )


@pytest.fixture
def fake_site() -> Callable[[Dict[str, Route]], FakeSite]:
    return FakeSite


@pytest.fixture
async def db():
    database = Database(":memory:")
    await database.open()
    yield database
    await database.close()


@pytest.fixture
def page_store(db) -> PageStore:
    return PageStore(db)


@pytest.fixture
def link_index(db) -> LinkIndex:
    return LinkIndex(db)


@pytest.fixture
async def make_service(settings):
    """Factory for an opened ``CaptureService`` talking to a ``FakeSite``."""
    opened: List[CaptureService] = []

    async def _make(site: FakeSite, **queue_overrides) -> CaptureService:
        cfg = settings
        if queue_overrides:
            cfg = settings.model_copy(
                update={"queue": settings.queue.model_copy(update=queue_overrides)}
            )
        service = CaptureService(cfg, http_client=site.client())
        await service.open()
        opened.append(service)
        return service

    yield _make

    for service in opened:
        await service.close()
