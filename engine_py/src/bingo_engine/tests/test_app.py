"""
End-to-end tests through the FastAPI app and a real WebSocket session.
"""

import random

from fastapi.testclient import TestClient

from bingo_engine.config import ServerConfig
from bingo_engine.constants import CARD_SIZE
from bingo_engine.engine import BingoEngine
from bingo_engine.store import MemorySnapshotStore
from bingo_engine.ws.server import create_app

SONGS = [f"80s hit {i + 1}" for i in range(30)]


def make_client():
    engine = BingoEngine(store=MemorySnapshotStore(), rng=random.Random(3))
    app = create_app(ServerConfig(snapshot_path=""), engine)
    return TestClient(app), engine


def send(ws, event, data=None):
    ws.send_json({"event": event, "data": data})


def receive_until(ws, event, predicate=None):
    """Read frames until one matches, returning its data."""
    while True:
        frame = ws.receive_json()
        if frame["event"] == event and (predicate is None or predicate(frame["data"])):
            return frame["data"]


def test_health():
    client, _ = make_client()
    with client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "connections": 0, "players": 0, "game_id": None}


def test_connect_receives_catch_up():
    client, _ = make_client()
    with client:
        with client.websocket_connect("/ws") as ws:
            events = [ws.receive_json()["event"] for _ in range(6)]

    assert events == [
        "game-info", "call-update", "player-list", "announcement",
        "player-count", "player-list",
    ]


def test_eighties_night():
    """Test host, two players and a screen through a full round of calls."""
    client, engine = make_client()
    with client:
        with client.websocket_connect("/ws") as host, \
                client.websocket_connect("/ws") as alice, \
                client.websocket_connect("/ws") as bob, \
                client.websocket_connect("/ws") as screen:
            send(host, "startgame", {"name": "80s", "songs": SONGS})
            info = receive_until(host, "game-info", lambda data: data is not None)
            assert info == {"gameId": engine.session.game_id, "theme": "80s"}

            send(alice, "join-game", "Alice")
            send(bob, "join-game", "Bob")
            assert receive_until(alice, "join-accepted") == "Alice"
            assert receive_until(bob, "join-accepted") == "Bob"
            for ws in (alice, bob):
                cards = receive_until(ws, "generateCard")
                assert len(cards["card1"]) == CARD_SIZE
                assert len(cards["card2"]) == CARD_SIZE

            send(host, "confirmSong", "A")
            for ws in (alice, bob, screen):
                assert receive_until(ws, "new-call") == "A"

            with client.websocket_connect("/ws") as alice_again:
                send(alice_again, "join-game", "Alice")
                assert receive_until(alice_again, "name-disambiguated") == "Alice#2"
                assert receive_until(alice_again, "join-accepted") == "Alice#2"

                with client.websocket_connect("/ws") as late:
                    assert receive_until(late, "call-update") == ["A"]


def test_resume_returns_same_cards():
    """Test a player who drops and resumes gets the same name and cards."""
    client, _ = make_client()
    with client:
        with client.websocket_connect("/ws") as host:
            send(host, "startgame", {"name": "80s", "songs": SONGS})
            receive_until(host, "game-info", lambda data: data is not None)

            with client.websocket_connect("/ws") as first:
                send(first, "join-game", "Alice")
                original = receive_until(first, "generateCard")

            with client.websocket_connect("/ws") as second:
                send(second, "join-game", {"name": "Alice", "resume": True})
                assert receive_until(second, "join-accepted") == "Alice"
                assert receive_until(second, "generateCard") == original

                send(second, "request-cards", "Alice")
                assert receive_until(second, "generateCard") == original


def test_new_game_deals_fresh_cards():
    client, _ = make_client()
    with client:
        with client.websocket_connect("/ws") as host, client.websocket_connect("/ws") as alice:
            send(alice, "join-game", "Alice")
            receive_until(alice, "join-accepted")

            send(host, "startgame", {"name": "80s", "songs": SONGS})
            first = receive_until(alice, "generateCard")

            send(host, "start-game", {"name": "90s", "songs": [f"90s hit {i + 1}" for i in range(30)]})
            second = receive_until(alice, "generateCard")

            assert first != second
            assert all(song.startswith("90s") for song in second["card1"])
