"""
Shuffling and card drawing utilities.
"""

import random
from typing import List, Optional, Sequence

from .constants import CARD_SIZE
from .models import PlayerCardSet


def shuffle(items: Sequence[str], rng: Optional[random.Random] = None) -> List[str]:
    """
    Return a uniformly shuffled copy of a sequence.

    Uses the Fisher-Yates walk of ``random.shuffle`` (last index down to 1,
    each slot swapped with a random slot at or before it). The input is
    never mutated.

    Args:
        items: Items to shuffle
        rng: Optional random source (tests pass a seeded random.Random)

    Returns:
        Shuffled copy of the items
    """
    rng = rng or random
    result = list(items)
    rng.shuffle(result)
    return result


def draw_card(pool: Sequence[str], rng: Optional[random.Random] = None,
              size: int = CARD_SIZE) -> List[str]:
    """
    Draw a single card from a theme pool.

    A pool shorter than the card size yields a shorter card; nothing is padded.
    """
    return shuffle(pool, rng)[:size]


def deal_card_set(pool: Sequence[str], rng: Optional[random.Random] = None) -> PlayerCardSet:
    """Draw two independent cards for one player. The cards may overlap."""
    card1 = draw_card(pool, rng)
    card2 = draw_card(pool, rng)
    return PlayerCardSet(card1=tuple(card1), card2=tuple(card2))
