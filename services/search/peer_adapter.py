# services/search/peer_adapter.py
"""
Answers search requests coming from the peer search network.

The WebSocket transport lives outside this package; it hands every decoded
message to ``PeerSearchAdapter.handle_message`` and sends back whatever dict
is returned (``None`` means "nothing to send").
"""

import uuid
from typing import Any, Dict, Optional

from loguru import logger

from models.timestamps import now_ms

from .search_engine import SearchEngine

SEARCH_REQUEST = "SEARCH_REQUEST"
SEARCH_RESPONSE = "SEARCH_RESPONSE"
PEER_CONNECT = "PEER_CONNECT"
_INFO_MESSAGES = {"WELCOME", "CONNECTION_ESTABLISHED", "PONG"}


def generate_peer_id() -> str:
    return f"peer_{now_ms()}_{uuid.uuid4().hex[:9]}"


class PeerSearchAdapter:
    """Formats local search results for remote peers, tagged with their query id."""

    def __init__(self, engine: SearchEngine, peer_id: Optional[str] = None):
        self.engine = engine
        self.peer_id = peer_id or generate_peer_id()
        # Flipped by the transport on connect / disconnect.
        self.is_connected = False

    def connect_message(self) -> Dict[str, Any]:
        """Announcement sent right after the socket opens."""
        return {
            "type": PEER_CONNECT,
            "peerId": self.peer_id,
            "capabilities": {"search": True, "storage": True, "scraping": True},
            "clientType": "desktop-app",
            "timestamp": now_ms(),
        }

    async def handle_message(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Dispatch one decoded message; returns the reply to send, if any."""
        if not isinstance(message, dict):
            logger.warning(f"Ignoring non-object peer message: {message!r}")
            return None

        msg_type = message.get("type")
        if msg_type == SEARCH_REQUEST:
            # The payload may be nested under ``data`` or inlined in the message.
            data = message.get("data") or {
                "queryId": message.get("queryId"),
                "query": message.get("query"),
                "peerId": message.get("peerId"),
                "timestamp": message.get("timestamp"),
            }
            return await self.handle_search_request(data)

        if msg_type in _INFO_MESSAGES:
            logger.info(f"Peer server message: {msg_type}")
        else:
            logger.debug(f"Unhandled peer message type: {msg_type}")
        return None

    async def handle_search_request(self, data: Any) -> Optional[Dict[str, Any]]:
        """
        Run a remote ``{queryId, query}`` request against the local corpus.

        Returns a ``SEARCH_RESPONSE`` envelope with ``results`` on success or
        ``error`` if the search itself failed; ``None`` for malformed input.
        """
        if not isinstance(data, dict):
            logger.warning(f"Invalid search request payload: {data!r}")
            return None

        query_id = data.get("queryId")
        query = data.get("query")
        if not query_id or not query:
            logger.warning(f"Search request missing queryId or query: {data!r}")
            return None

        logger.info(f"Peer search requested: '{query}' ({query_id})")
        try:
            hits = await self.engine.search(query)
        except Exception as exc:  # reply with the error instead of dropping the request
            logger.exception(f"Peer search '{query}' ({query_id}) failed: {exc}")
            return self._envelope(query_id, error=str(exc))

        results = [hit.to_peer_result() for hit in hits]
        logger.info(f"Answering peer search {query_id} with {len(results)} results")
        return self._envelope(query_id, results=results)

    def _envelope(self, query_id: str, **payload: Any) -> Dict[str, Any]:
        return {
            "type": SEARCH_RESPONSE,
            "queryId": query_id,
            **payload,
            "peerId": self.peer_id,
            "timestamp": now_ms(),
        }
