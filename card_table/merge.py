from __future__ import annotations
import math

from card_table.models import Deck, Table_State
from card_table.config import tweak


def distance(ax: float, ay: float, bx: float, by: float) -> float:
    return math.hypot(ax - bx, ay - by)


def find_merge_target(state: Table_State, x: float, y: float, threshold: float | None = None) -> Deck | None:
    """Return the first deck (in table order) strictly closer than the threshold, or None."""
    if threshold is None:
        threshold = tweak["merge_threshold"]
    for deck in state.decks.values():
        if distance(x, y, deck.x, deck.y) < threshold:
            return deck
    return None
