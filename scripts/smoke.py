#!/usr/bin/env python3
"""
Smoke test against a running server: a host starts a game and a player
joins and waits for a card.
"""

import asyncio
import json
import os

import websockets

SERVER_URL = os.environ.get("SERVER_URL", "ws://localhost:8000/ws")


async def receive_event(websocket, event):
    while True:
        frame = json.loads(await websocket.recv())
        if frame["event"] == event:
            return frame["data"]


async def smoke_test():
    """Start a game as host, join as a player and print a card tile."""
    print(f"Starting smoke test against {SERVER_URL}")

    try:
        async with websockets.connect(SERVER_URL) as host, websockets.connect(SERVER_URL) as player:
            print("✅ Host and player connected")

            songs = [f"Song {i + 1}" for i in range(30)]
            await host.send(json.dumps({"event": "startgame", "data": {"name": "Smoke Test Theme", "songs": songs}}))
            info = await receive_event(host, "game-info")
            while not info or info["theme"] != "Smoke Test Theme":
                info = await receive_event(host, "game-info")
            print(f"Game started: {info}")

            await player.send(json.dumps({"event": "join-game", "data": "SmokePlayer"}))
            name = await receive_event(player, "join-accepted")
            cards = await receive_event(player, "generateCard")
            print(f"Player joined as {name}, sample tile: {cards['card1'][0]}")

            await host.send(json.dumps({"event": "confirmSong", "data": songs[0]}))
            call = await receive_event(player, "new-call")
            print(f"new-call received by player: {call}")

            print("✅ Smoke test completed successfully!")

    except Exception as e:
        print(f"❌ Smoke test failed: {e}")
        return False

    return True

if __name__ == "__main__":
    asyncio.run(smoke_test())
