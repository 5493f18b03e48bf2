"""
Connection registry and fan-out of events to connected clients.
"""

import logging
from typing import Any, Dict, List, Mapping

import orjson
from fastapi import WebSocket

from .events import OutboundEventType, make_message

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages WebSocket connections and broadcasting."""

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}
        self.dropped: List[str] = []

    def connect(self, connection_id: str, websocket: WebSocket):
        # WebSocket is already accepted in the endpoint
        self.active_connections[connection_id] = websocket
        logger.info(f"Connection {connection_id} opened ({self.count} live)")

    def disconnect(self, connection_id: str) -> bool:
        if self.active_connections.pop(connection_id, None) is None:
            return False
        logger.info(f"Connection {connection_id} closed ({self.count} live)")
        return True

    @property
    def count(self) -> int:
        return len(self.active_connections)

    def connection_ids(self) -> List[str]:
        return list(self.active_connections)

    def pop_dropped(self) -> List[str]:
        """Return and forget the connections removed after a failed send."""
        dropped, self.dropped = self.dropped, []
        return dropped

    async def send(self, connection_id: str, event: OutboundEventType, data: Any = None):
        """Send an event to one connection."""
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            return
        await self._send_frame(connection_id, websocket, _encode(event, data))

    async def broadcast(self, event: OutboundEventType, data: Any = None):
        """Send an event to every live connection."""
        frame = _encode(event, data)
        for connection_id, websocket in list(self.active_connections.items()):
            await self._send_frame(connection_id, websocket, frame)

    async def deliver_each(self, payloads: Mapping[str, Any], event: OutboundEventType):
        """Send each connection its own payload, e.g. freshly dealt cards."""
        for connection_id, data in payloads.items():
            await self.send(connection_id, event, data)

    async def _send_frame(self, connection_id: str, websocket: WebSocket, frame: str):
        try:
            await websocket.send_text(frame)
        except Exception as e:
            logger.error(f"Error sending to {connection_id}: {e}")
            # Remove dead connection; the owner still has to release its identity
            if self.disconnect(connection_id):
                self.dropped.append(connection_id)


def _encode(event: OutboundEventType, data: Any) -> str:
    return orjson.dumps(make_message(event, data)).decode()
