"""
WebSocket server and event handling for the bingo session.
"""

from .events import *
from .server import app

__all__ = ["app"]
