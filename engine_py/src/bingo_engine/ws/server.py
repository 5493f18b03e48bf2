"""
FastAPI WebSocket server for the bingo session.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import orjson
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from ..config import ServerConfig
from ..constants import BINGO_ALERT_TEMPLATE
from ..engine import BingoEngine
from ..errors import INTERNAL_ERROR, INVALID_EVENT, GameError
from ..models import Theme
from ..store import create_store
from .events import (
    EventType, JoinGameEvent, OutboundEventType, StartGameEvent,
    error_payload, parse_inbound_event
)
from .manager import ConnectionManager

logger = logging.getLogger(__name__)


class BingoServer:
    """
    Routes inbound events to the engine and fans the results out.

    Every connection event and inbound message runs under one lock, so all
    frames caused by one event go out before the next event is looked at.
    """

    def __init__(self, engine: BingoEngine, manager: Optional[ConnectionManager] = None):
        self.engine = engine
        self.manager = manager or ConnectionManager()
        self._lock = asyncio.Lock()
        self._handlers = {
            EventType.JOIN_GAME: self.handle_join,
            EventType.REQUEST_CARDS: self.handle_request_cards,
            EventType.START_GAME: self.handle_start,
            EventType.PATTERN_CHANGE: self.handle_pattern_change,
            EventType.PREVIEW_SONG: self.handle_preview,
            EventType.CONFIRM_SONG: self.handle_confirm,
            EventType.NEXT_CALL: self.handle_next_call,
            EventType.BINGO_CLAIM: self.handle_bingo_claim,
            EventType.ANNOUNCEMENT: self.handle_announcement,
            EventType.CLEAR_SONGS: self.handle_clear_songs,
        }

    async def handle_websocket(self, websocket: WebSocket):
        """Main loop for one client connection."""
        await websocket.accept()
        connection_id = uuid.uuid4().hex[:8]

        async with self._lock:
            await self.on_connect(connection_id, websocket)

        try:
            while True:
                raw_data = await websocket.receive_text()
                await self.dispatch(connection_id, raw_data)
        except WebSocketDisconnect:
            logger.info(f"WebSocket {connection_id} disconnected")
        except Exception as e:
            logger.error(f"WebSocket error for {connection_id}: {e}")
        finally:
            async with self._lock:
                await self.on_disconnect(connection_id)

    async def dispatch(self, connection_id: str, raw_data: str):
        async with self._lock:
            try:
                event_type, payload = parse_inbound_event(orjson.loads(raw_data))
                await self._handlers[event_type](connection_id, payload)
            except orjson.JSONDecodeError:
                logger.warning(f"Malformed frame from {connection_id}")
                await self.send_error(connection_id, INVALID_EVENT, "Malformed JSON")
            except GameError as e:
                logger.warning(f"Rejected event from {connection_id}: {e}")
                await self.send_error(connection_id, e.code, e.message)
            except Exception as e:
                logger.error(f"Error handling event from {connection_id}: {e}")
                await self.send_error(connection_id, INTERNAL_ERROR, "Internal server error")
            await self.release_dropped()

    async def send_error(self, connection_id: str, code: str, message: str):
        await self.manager.send(connection_id, OutboundEventType.ERROR, error_payload(code, message))

    async def on_connect(self, connection_id: str, websocket: WebSocket):
        self.manager.connect(connection_id, websocket)

        # Catch the newcomer up before anything else reaches it
        state = self.engine.catch_up()
        await self.manager.send(connection_id, OutboundEventType.GAME_INFO, state["game_info"])
        await self.manager.send(connection_id, OutboundEventType.CALL_UPDATE, state["calls"])
        await self.manager.send(connection_id, OutboundEventType.PLAYER_LIST, state["players"])
        await self.manager.send(connection_id, OutboundEventType.ANNOUNCEMENT, state["announcement"])

        await self.broadcast_presence()
        await self.release_dropped()

    async def on_disconnect(self, connection_id: str):
        self.manager.disconnect(connection_id)
        self._release(connection_id)
        await self.broadcast_presence()
        await self.release_dropped()

    async def release_dropped(self):
        """
        Finish the disconnect of sockets the manager dropped after a failed send.

        Their identities are released and presence is re-broadcast. That
        broadcast can drop more sockets, so repeat until none are left.
        """
        dropped = self.manager.pop_dropped()
        while dropped:
            for connection_id in dropped:
                self._release(connection_id)
            await self.broadcast_presence()
            dropped = self.manager.pop_dropped()

    def _release(self, connection_id: str):
        name = self.engine.leave(connection_id)
        if name:
            logger.info(f"Player '{name}' left")

    async def broadcast_presence(self):
        await self.manager.broadcast(OutboundEventType.PLAYER_COUNT, self.manager.count)
        await self.manager.broadcast(OutboundEventType.PLAYER_LIST, self.engine.roster())

    async def handle_join(self, connection_id: str, event: JoinGameEvent):
        outcome = self.engine.join(connection_id, event.name, event.resume)
        result = outcome.result

        if not result.success:
            logger.warning(f"Join rejected for {connection_id}: {result.error_message}")
            await self.manager.send(connection_id, OutboundEventType.JOIN_FAILED, result.error_message)
            return

        if result.evicted:
            logger.info(f"'{result.name}' resumed on {connection_id}, replacing stale connection {result.evicted}")
        if result.disambiguated:
            await self.manager.send(connection_id, OutboundEventType.NAME_DISAMBIGUATED, result.name)
        await self.manager.send(connection_id, OutboundEventType.JOIN_ACCEPTED, result.name)
        await self.manager.broadcast(OutboundEventType.PLAYER_LIST, self.engine.roster())

        session = self.engine.session
        await self.manager.send(connection_id, OutboundEventType.GAME_INFO, session.game_info())
        await self.manager.send(connection_id, OutboundEventType.CALL_UPDATE, list(session.called_history))
        if outcome.cards is not None:
            await self.manager.send(connection_id, OutboundEventType.GENERATE_CARD, outcome.cards.to_dict())

    async def handle_request_cards(self, connection_id: str, name: str):
        name = name.strip() or self.engine.registry.name_for(connection_id)
        cards = self.engine.cards_for(name)
        if cards is None:
            logger.debug(f"No cards to deliver to {connection_id} (name={name!r})")
            return
        await self.manager.send(connection_id, OutboundEventType.GENERATE_CARD, cards.to_dict())

    async def handle_start(self, connection_id: str, event: StartGameEvent):
        result = self.engine.start_game(Theme(name=event.name, songs=event.songs))

        await self.manager.broadcast(OutboundEventType.GAME_INFO, result.session.game_info())
        await self.manager.broadcast(OutboundEventType.CALL_UPDATE, [])
        await self.manager.deliver_each(
            {cid: cards.to_dict() for cid, cards in result.deals.items()},
            OutboundEventType.GENERATE_CARD,
        )

    async def handle_pattern_change(self, connection_id: str, pattern: str):
        await self.manager.broadcast(OutboundEventType.BINGO_PATTERN, pattern)

    async def handle_preview(self, connection_id: str, item: str):
        await self.manager.send(connection_id, OutboundEventType.PREVIEW_SONG, item)

    async def handle_confirm(self, connection_id: str, item: str):
        item = self.engine.confirm_call(item)
        await self.manager.broadcast(OutboundEventType.NEW_CALL, item)
        await self.manager.broadcast(OutboundEventType.BROADCAST_SONG, item)

    async def handle_next_call(self, connection_id: str, _payload=None):
        item = self.engine.next_call()
        if item is not None:
            await self.manager.broadcast(OutboundEventType.NEW_CALL, item)

    async def handle_bingo_claim(self, connection_id: str, name: str):
        name = name.strip() or self.engine.registry.name_for(connection_id) or ''
        logger.info(f"Bingo claimed by '{name}'")
        await self.manager.broadcast(OutboundEventType.BINGO_ALERT, BINGO_ALERT_TEMPLATE.format(name=name))

    async def handle_announcement(self, connection_id: str, text: str):
        text = self.engine.set_announcement(text)
        await self.manager.broadcast(OutboundEventType.ANNOUNCEMENT, text)

    async def handle_clear_songs(self, connection_id: str, _payload=None):
        await self.manager.broadcast(OutboundEventType.CLEAR_BIGSCREEN)


def create_app(config: Optional[ServerConfig] = None, engine: Optional[BingoEngine] = None) -> FastAPI:
    """Build the FastAPI app around one engine instance."""
    config = config or ServerConfig.from_env()
    engine = engine or BingoEngine(store=create_store(config.snapshot_path))
    server = BingoServer(engine)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        flush = getattr(engine.store, "flush", None)
        if flush is not None:
            await flush()

    app = FastAPI(title="Music Bingo Engine", version="1.0.0", lifespan=lifespan)
    app.state.server = server

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "connections": server.manager.count,
            "players": len(engine.registry),
            "game_id": engine.session.game_id,
        }

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Main WebSocket endpoint."""
        await server.handle_websocket(websocket)

    return app


_config = ServerConfig.from_env()

# Configure logging
logging.basicConfig(level=_config.log_level.upper())

app = create_app(_config)
