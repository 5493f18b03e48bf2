#!/usr/bin/env python3
"""Startup script for the bingo backend"""

import uvicorn

from .config import ServerConfig


def main():
    config = ServerConfig.from_env()

    print(f"🚀 Starting Music Bingo backend on {config.host}:{config.port}")
    print(f"📍 Health check available at: http://{config.host}:{config.port}/health")
    print(f"🔌 WebSocket endpoint: ws://{config.host}:{config.port}/ws")
    print(f"💾 Snapshot file: {config.snapshot_path or '(memory only)'}")

    uvicorn.run(
        "bingo_engine.ws.server:app",
        host=config.host,
        port=config.port,
        reload=config.reload,
        log_level=config.log_level
    )

if __name__ == "__main__":
    main()
