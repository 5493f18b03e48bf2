"""Game models and data structures"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


@dataclass
class Theme:
    name: str
    songs: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PlayerCardSet:
    card1: Tuple[str, ...]
    card2: Tuple[str, ...]

    def to_dict(self) -> Dict[str, List[str]]:
        return {"card1": list(self.card1), "card2": list(self.card2)}


@dataclass
class GameSession:
    game_id: Optional[str] = None
    theme: str = ''
    call_list: List[str] = field(default_factory=list)  # fixed once the game starts
    cursor: int = 0  # how many call_list entries next-call has walked
    called_history: List[str] = field(default_factory=list)  # confirmed calls, in order
    announcement: str = ''

    @property
    def is_active(self) -> bool:
        return self.game_id is not None

    @property
    def can_deal(self) -> bool:
        return self.is_active and bool(self.call_list)

    def game_info(self) -> Optional[Dict[str, str]]:
        if not self.is_active:
            return None
        return {"gameId": self.game_id, "theme": self.theme}


@dataclass
class SessionState:
    session: GameSession = field(default_factory=GameSession)
    # game_id -> player name -> cards; only the current game is kept
    player_cards: Dict[str, Dict[str, PlayerCardSet]] = field(default_factory=dict)

    def cards_for_current_game(self) -> Dict[str, PlayerCardSet]:
        if self.session.game_id is None:
            return {}
        return self.player_cards.setdefault(self.session.game_id, {})
