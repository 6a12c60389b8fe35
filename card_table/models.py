from __future__ import annotations
from dataclasses import dataclass, field


@dataclass
class Card:
    """A card lying loose on the table."""
    id: str
    image: str
    x: float = 0.0
    y: float = 0.0
    rotation: int = 0  # Degrees, grows by 90 per rotation and is never wrapped
    face_up: bool = False
    owner: str | None = None  # Client holding the card privately, None means public
    deck_id: str | None = None  # Deck the card came from, only used to pick a back image


@dataclass
class Deck:
    id: str
    cards: list[str] = field(default_factory=list)  # Image references, last one is the top
    x: float = 0.0
    y: float = 0.0
    kind: str = "deck"  # "deck" or "pile"


@dataclass
class Table_State:
    decks: dict[str, Deck] = field(default_factory=dict)  # Iteration order is the merge scan order
    cards: dict[str, Card] = field(default_factory=dict)


@dataclass(frozen=True)
class In_Deck:
    deck_id: str
    index: int


@dataclass(frozen=True)
class Loose:
    card: Card


Card_Location = In_Deck | Loose


def serialize_deck(deck: Deck) -> dict:
    return {
        "id": deck.id,
        "kind": deck.kind,
        "cards": list(deck.cards),
        "x": deck.x,
        "y": deck.y,
    }


def serialize_card(card: Card, image: str | None = None) -> dict:
    return {
        "id": card.id,
        "image": card.image if image is None else image,
        "x": card.x,
        "y": card.y,
        "rotation": card.rotation,
        "face_up": card.face_up,
        "owner": card.owner,
        "deck_id": card.deck_id,
    }
