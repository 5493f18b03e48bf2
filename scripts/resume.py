#!/usr/bin/env python3
"""
Resume check against a running server: join, drop the connection, then
reconnect with resume and confirm the name comes back unchanged.
"""

import asyncio
import json
import os

import websockets

SERVER_URL = os.environ.get("SERVER_URL", "ws://localhost:8000/ws")
PLAYER_NAME = "Resumer"


async def receive_event(websocket, event):
    while True:
        frame = json.loads(await websocket.recv())
        if frame["event"] == event:
            return frame["data"]


async def resume_test():
    print(f"Resume test against {SERVER_URL}")

    async with websockets.connect(SERVER_URL) as first:
        await first.send(json.dumps({"event": "join-game", "data": PLAYER_NAME}))
        print(f"client1 join-accepted {await receive_event(first, 'join-accepted')}")
    print("client1 disconnected")

    await asyncio.sleep(0.8)

    async with websockets.connect(SERVER_URL) as second:
        await second.send(json.dumps({"event": "join-game", "data": {"name": PLAYER_NAME, "resume": True}}))
        name = await receive_event(second, "join-accepted")
        print(f"client2 join-accepted {name}")
        if name != PLAYER_NAME:
            print(f"❌ Expected {PLAYER_NAME}, got {name}")
            return False

    print("✅ Resume kept the original name")
    return True

if __name__ == "__main__":
    asyncio.run(resume_test())
