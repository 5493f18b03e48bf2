"""
WebSocket event models and validation.

Every frame is a JSON object ``{"event": <name>, "data": <payload>}``.
"""

from enum import Enum
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import INVALID_EVENT, raise_error


class EventType(str, Enum):
    """Inbound event types."""
    JOIN_GAME = "join-game"
    REQUEST_CARDS = "request-cards"
    START_GAME = "start-game"
    START_GAME_LEGACY = "startgame"
    PATTERN_CHANGE = "pattern-change"
    PREVIEW_SONG = "previewSong"
    CONFIRM_SONG = "confirmSong"
    NEXT_CALL = "next-call"
    BINGO_CLAIM = "bingo-claim"
    ANNOUNCEMENT = "announcement"
    CLEAR_SONGS = "clear-songs"


class OutboundEventType(str, Enum):
    """Outbound event types."""
    JOIN_ACCEPTED = "join-accepted"
    JOIN_FAILED = "join-failed"
    NAME_DISAMBIGUATED = "name-disambiguated"
    GAME_INFO = "game-info"
    CALL_UPDATE = "call-update"
    NEW_CALL = "new-call"
    BROADCAST_SONG = "broadcastSong"
    PREVIEW_SONG = "previewSong"
    GENERATE_CARD = "generateCard"
    PLAYER_LIST = "player-list"
    PLAYER_COUNT = "player-count"
    BINGO_PATTERN = "bingo-pattern"
    BINGO_ALERT = "bingo-alert"
    ANNOUNCEMENT = "announcement"
    CLEAR_BIGSCREEN = "clear-bigscreen"
    ERROR = "error"


# Inbound payload models
class JoinGameEvent(BaseModel):
    """Join or resume request, normalised from a bare name or an object."""
    name: str = ''
    resume: bool = False

    @field_validator('name', mode='before')
    @classmethod
    def coerce_name(cls, v):
        """Treat a missing or non-text name as empty so the join is rejected, not the frame."""
        return v if isinstance(v, str) else ''


class StartGameEvent(BaseModel):
    """Host starts a game with a theme."""
    name: str = ''
    songs: List[str] = Field(default_factory=list)

    @field_validator('name', mode='before')
    @classmethod
    def coerce_name(cls, v):
        return '' if v is None else v

    @field_validator('songs', mode='before')
    @classmethod
    def coerce_songs(cls, v):
        return [] if v is None else v


def parse_text(data: Any, allow_empty: bool = True) -> str:
    """Validate a bare string payload."""
    if data is None and allow_empty:
        return ''
    if not isinstance(data, str):
        raise_error(INVALID_EVENT, f"Expected a string payload, got {type(data).__name__}")
    return data


def parse_join(data: Any) -> JoinGameEvent:
    if isinstance(data, str) or data is None:
        return JoinGameEvent(name=data or '')
    if isinstance(data, dict):
        try:
            return JoinGameEvent(**data)
        except ValidationError as e:
            raise_error(INVALID_EVENT, f"Invalid join payload: {e.errors()[0]['msg']}")
    raise_error(INVALID_EVENT, "join-game expects a name or {name, resume}")


def parse_start(data: Any) -> StartGameEvent:
    if data is None:
        return StartGameEvent()
    if not isinstance(data, dict):
        raise_error(INVALID_EVENT, "start-game expects {name, songs}")
    try:
        return StartGameEvent(**data)
    except ValidationError as e:
        raise_error(INVALID_EVENT, f"Invalid theme: {e.errors()[0]['msg']}")


def parse_inbound_event(message: Any) -> Tuple[EventType, Any]:
    """
    Parse a raw frame into an event type and a normalised payload.

    Args:
        message: Decoded JSON frame from the WebSocket

    Returns:
        (event type, payload) where the payload is a model, a string or None

    Raises:
        GameError: If the frame, event name or payload is malformed
    """
    if not isinstance(message, dict):
        raise_error(INVALID_EVENT, "Frame must be an object")

    event_name = message.get("event")
    if not event_name:
        raise_error(INVALID_EVENT, "Missing event name")

    try:
        event_type = EventType(event_name)
    except ValueError:
        raise_error(INVALID_EVENT, f"Unknown event: {event_name}")

    data = message.get("data")

    if event_type == EventType.JOIN_GAME:
        return event_type, parse_join(data)
    if event_type in (EventType.START_GAME, EventType.START_GAME_LEGACY):
        return EventType.START_GAME, parse_start(data)
    if event_type in (EventType.NEXT_CALL, EventType.CLEAR_SONGS):
        return event_type, None
    if event_type in (EventType.PREVIEW_SONG, EventType.CONFIRM_SONG):
        return event_type, parse_text(data, allow_empty=False)
    return event_type, parse_text(data)


def make_message(event: OutboundEventType, data: Any = None) -> Dict[str, Any]:
    """Build an outbound frame."""
    return {"event": event.value, "data": data}


def error_payload(code: str, message: str) -> Dict[str, str]:
    return {"code": code, "message": message}
