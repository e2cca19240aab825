# tests/test_api.py
import pytest
from fastapi.testclient import TestClient

from main import create_app
from services.capture.capture_service import CaptureService

PAGE = """
<html><head><title>Python Guide</title>
<meta name="description" content="Everything about python"></head>
<body><p>A longer paragraph about python.</p><a href="/next">Next page</a></body></html>
"""


@pytest.fixture
def client(settings, fake_site):
    site = fake_site({"https://example.com/guide": PAGE})
    app = create_app(lambda: CaptureService(settings, http_client=site.client()))
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"]["initialized"] is True
    assert "X-Process-Time" in response.headers


def test_capture_queue_and_priority_endpoints(client):
    response = client.post("/capture", json={"url": " https://example.com/guide ", "priority": "low"})
    assert response.json() == {
        "accepted": True,
        "url": "https://example.com/guide",
        "queue_length": 1,
    }

    # Same URL again is refused, invalid URL is refused without a 422.
    assert client.post("/capture", json={"url": "https://example.com/guide"}).json()["accepted"] is False
    assert client.post("/capture", json={"url": "nope"}).json()["accepted"] is False

    queue = client.get("/queue").json()
    assert queue["stats"]["total"] == 1
    item_id = queue["items"][0]["id"]

    response = client.patch(f"/queue/{item_id}", json={"priority": "high"})
    assert response.json() == {"id": item_id, "priority": "high"}
    assert client.get("/queue").json()["stats"]["high"] == 1

    assert client.patch("/queue/unknown", json={"priority": "high"}).status_code == 404
    assert client.patch(f"/queue/{item_id}", json={"priority": "urgent"}).status_code == 422

    assert client.delete(f"/queue/{item_id}").json() == {"removed": item_id}
    assert client.delete(f"/queue/{item_id}").status_code == 404


def test_clear_queue(client):
    client.post("/capture", json={"url": "https://example.com/one"})
    client.post("/capture", json={"url": "https://example.com/two"})

    assert client.delete("/queue").json() == {"removed": 2}
    assert client.get("/queue").json()["items"] == []


def test_stats_search_and_peer_after_capture(client):
    client.post("/capture", json={"url": "https://example.com/guide", "priority": "high"})
    client.portal.call(client.app.state.capture.queue.process_next)

    stats = client.get("/stats").json()
    assert stats["totalPages"] == 1
    assert stats["uniqueHosts"] == 1
    assert stats["totalLinks"] == 1
    assert stats["queueLength"] == 1           # the discovered /next link
    assert stats["discoveredLinks"] == 1
    assert stats["dbStatus"]["initialized"] is True

    results = client.get("/search", params={"q": "python"}).json()
    assert results["count"] == 1
    assert results["results"][0]["url"] == "https://example.com/guide"
    assert results["results"][0]["score"] > 10

    history = client.get("/history").json()
    assert [entry["url"] for entry in history] == ["https://example.com/guide"]

    reply = client.post(
        "/peer/message",
        json={"type": "SEARCH_REQUEST", "data": {"queryId": "q-1", "query": "python"}},
    ).json()
    assert reply["queryId"] == "q-1"
    assert reply["peerId"] == "peer_test"
    assert len(reply["results"]) == 1

    assert client.post("/peer/message", json={"type": "PONG"}).json() == {}


def test_blank_search(client):
    assert client.get("/search").json() == {"query": "", "count": 0, "results": []}


def test_start_and_stop(client):
    assert client.post("/queue/stop").json() == {"stopped": False}
    assert client.post("/queue/start").json() == {"started": False}   # empty queue
