"""
Snapshot serialization for durable session state.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .models import GameSession, PlayerCardSet, SessionState


class CardSetSnapshot(BaseModel):
    """Persisted pair of cards for one player."""
    card1: List[str] = Field(default_factory=list)
    card2: List[str] = Field(default_factory=list)


class SessionSnapshot(BaseModel):
    """Persisted current game."""
    theme: str = ''
    callList: List[str] = Field(default_factory=list)
    cursor: int = Field(default=0, ge=0)
    calledHistory: List[str] = Field(default_factory=list)
    announcement: str = ''

    @field_validator('cursor')
    @classmethod
    def validate_cursor(cls, v, info):
        """Clamp the cursor to the call list it walks."""
        call_list = info.data.get('callList') or []
        return min(v, len(call_list))


class Snapshot(BaseModel):
    """Top-level snapshot layout written to the store."""
    currentGameId: Optional[str] = None
    playerCardsByGame: Dict[str, Dict[str, CardSetSnapshot]] = Field(default_factory=dict)
    session: Optional[SessionSnapshot] = None


def snapshot_state(state: SessionState) -> Dict[str, Any]:
    """
    Convert session state into the persisted snapshot layout.

    Args:
        state: Current session state

    Returns:
        Plain dictionary safe for JSON encoding
    """
    session = state.session
    snapshot = Snapshot(
        currentGameId=session.game_id,
        playerCardsByGame={
            game_id: {
                name: CardSetSnapshot(**cards.to_dict())
                for name, cards in by_name.items()
            }
            for game_id, by_name in state.player_cards.items()
        },
        session=SessionSnapshot(
            theme=session.theme,
            callList=list(session.call_list),
            cursor=session.cursor,
            calledHistory=list(session.called_history),
            announcement=session.announcement,
        ),
    )
    return snapshot.model_dump()


def restore_state(data: Dict[str, Any]) -> SessionState:
    """
    Rebuild session state from a persisted snapshot.

    Card maps for any game other than the current one are dropped. The
    announcement is restored even when no game is running.

    Raises:
        pydantic.ValidationError: If the snapshot does not match the layout
    """
    snapshot = Snapshot.model_validate(data)
    game_id = snapshot.currentGameId

    session = GameSession(game_id=game_id)
    if snapshot.session is not None:
        session.announcement = snapshot.session.announcement
        if game_id is not None:
            session.theme = snapshot.session.theme
            session.call_list = list(snapshot.session.callList)
            session.cursor = snapshot.session.cursor
            session.called_history = list(snapshot.session.calledHistory)

    player_cards: Dict[str, Dict[str, PlayerCardSet]] = {}
    if game_id is not None:
        player_cards[game_id] = {
            name: PlayerCardSet(card1=tuple(cards.card1), card2=tuple(cards.card2))
            for name, cards in snapshot.playerCardsByGame.get(game_id, {}).items()
        }

    return SessionState(session=session, player_cards=player_cards)
