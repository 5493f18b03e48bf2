"""
Music bingo session engine: shared call sequence, per-player cards and
realtime fan-out to every connected screen.
"""

__version__ = "1.0.0"
