"""Game session state machine: start, calls, announcements and card assignment"""

import logging
import random
import time
import uuid
from typing import Dict, List, Optional

from .models import GameSession, PlayerCardSet, SessionState, Theme
from .registry import IdentityRegistry, JoinResult
from .shuffle import deal_card_set, shuffle
from .store import MemorySnapshotStore, SnapshotStore

logger = logging.getLogger(__name__)


def new_game_id() -> str:
    """Time-ordered id, unique across restarts."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


class StartResult:
    """Outcome of starting a game."""

    def __init__(self, session: GameSession, deals: Dict[str, PlayerCardSet]):
        self.session = session
        self.deals = deals  # connection_id -> freshly drawn cards


class JoinOutcome:
    """Registry result plus the cards to hand the joining player, if any."""

    def __init__(self, result: JoinResult, cards: Optional[PlayerCardSet] = None):
        self.result = result
        self.cards = cards


class BingoEngine:
    def __init__(self, store: Optional[SnapshotStore] = None,
                 state: Optional[SessionState] = None,
                 registry: Optional[IdentityRegistry] = None,
                 rng: Optional[random.Random] = None):
        self.store = store or MemorySnapshotStore()
        self.state = state if state is not None else self.store.load()
        self.registry = registry or IdentityRegistry()
        self.rng = rng

    @property
    def session(self) -> GameSession:
        return self.state.session

    def persist(self):
        self.store.save(self.state)

    def start_game(self, theme: Theme) -> StartResult:
        """
        Replace the current game with a fresh one for the given theme.

        Card assignments from every earlier game are dropped, and each
        connected player with a name is dealt a new set right away.
        """
        session = GameSession(
            game_id=new_game_id(),
            theme=theme.name or '',
            call_list=shuffle(theme.songs or [], self.rng),
            announcement=self.session.announcement,
        )
        self.state = SessionState(session=session, player_cards={session.game_id: {}})

        assigned = self.state.player_cards[session.game_id]
        deals: Dict[str, PlayerCardSet] = {}
        for connection_id, name in self.registry.identities():
            if name not in assigned:
                assigned[name] = deal_card_set(session.call_list, self.rng)
            deals[connection_id] = assigned[name]

        logger.info(
            f"Started game {session.game_id} theme='{session.theme}' "
            f"songs={len(session.call_list)} dealt={len(deals)}"
        )
        self.persist()
        return StartResult(session, deals)

    def confirm_call(self, item: str) -> str:
        self.session.called_history.append(item)
        self.persist()
        return item

    def next_call(self) -> Optional[str]:
        """Advance the call cursor; None once the call list is exhausted."""
        session = self.session
        if session.cursor >= len(session.call_list):
            return None
        session.cursor += 1
        self.persist()
        return session.call_list[session.cursor - 1]

    def set_announcement(self, text: str) -> str:
        self.session.announcement = text or ''
        self.persist()
        return self.session.announcement

    def join(self, connection_id: str, name: str, resume: bool = False) -> JoinOutcome:
        """
        Resolve a join or resume and look up the player's cards.

        Cards are only handed out while a game with songs is running.
        """
        result = self.registry.resolve_join(connection_id, name, resume)
        if not result.success:
            return JoinOutcome(result)
        return JoinOutcome(result, self.cards_for(result.name))

    def leave(self, connection_id: str) -> Optional[str]:
        return self.registry.remove(connection_id)

    def cards_for(self, name: Optional[str]) -> Optional[PlayerCardSet]:
        """Existing or newly drawn cards for a player in the current game."""
        if not name or not self.session.can_deal:
            return None
        return self._cards_for(name)

    def catch_up(self) -> Dict:
        """Everything a fresh connection needs to render the current state."""
        session = self.session
        return {
            "game_info": session.game_info(),
            "calls": list(session.called_history),
            "players": self.registry.roster(),
            "announcement": session.announcement,
        }

    def roster(self) -> List[str]:
        return self.registry.roster()

    def _cards_for(self, name: str) -> PlayerCardSet:
        assigned = self.state.cards_for_current_game()
        cards = assigned.get(name)
        if cards is None:
            cards = deal_card_set(self.session.call_list, self.rng)
            assigned[name] = cards
            self.persist()
        return cards
