from __future__ import annotations
import random
import uuid

from card_table.models import Card, Deck, Table_State, Card_Location, In_Deck, Loose
from card_table.config import tweak


def new_card_id() -> str:
    return f"card-{uuid.uuid4()}"


def new_pile_id() -> str:
    return f"pile-{uuid.uuid4()}"


def create_deck(state: Table_State, deck_id: str, cards: list[str], x: float, y: float, kind: str = "deck") -> Deck:
    """Place a deck on the table. An existing deck with the same id is replaced."""
    deck = Deck(id=deck_id, cards=list(cards), x=x, y=y, kind=kind)
    state.decks[deck_id] = deck
    return deck


def create_pile(state: Table_State, x: float, y: float) -> Deck:
    return create_deck(state, new_pile_id(), [], x, y, kind="pile")


def delete_deck(state: Table_State, deck_id: str) -> Deck | None:
    return state.decks.pop(deck_id, None)


def delete_card(state: Table_State, card_id: str) -> Card | None:
    return state.cards.pop(card_id, None)


def _wrap_loose_card(state: Table_State, deck: Deck, image: str, face_up: bool, owner: str | None) -> Card:
    card = Card(
        id=new_card_id(),
        image=image,
        x=deck.x + tweak["draw_offset_x"],
        y=deck.y + tweak["draw_offset_y"],
        rotation=0,
        face_up=face_up,
        owner=owner,
        deck_id=deck.id,
    )
    state.cards[card.id] = card
    return card


def draw_top(state: Table_State, deck_id: str, owner: str | None) -> Card | None:
    """Take the top (last) image of a deck and lay it face down next to the deck."""
    deck = state.decks.get(deck_id)
    if deck is None or not deck.cards:
        return None
    image = deck.cards.pop()
    return _wrap_loose_card(state, deck, image, face_up=False, owner=owner)


def pick_at(state: Table_State, deck_id: str, index: int) -> Card | None:
    """Take the image at any position of a deck. Picked cards are face up and public."""
    deck = state.decks.get(deck_id)
    if deck is None or not (0 <= index < len(deck.cards)):
        return None
    image = deck.cards.pop(index)
    return _wrap_loose_card(state, deck, image, face_up=True, owner=None)


def shuffle_cards(cards: list[str], rng: random.Random | None = None) -> None:
    """Fisher-Yates, in place: walk from the last index down, swapping with a slot at or before it."""
    rng = rng or random
    for i in range(len(cards) - 1, 0, -1):
        j = rng.randint(0, i)
        cards[i], cards[j] = cards[j], cards[i]


def shuffle(state: Table_State, deck_id: str, rng: random.Random | None = None) -> Deck | None:
    deck = state.decks.get(deck_id)
    if deck is None:
        return None
    shuffle_cards(deck.cards, rng)
    return deck


def move_card(state: Table_State, card_id: str, x: float, y: float) -> Card | None:
    card = state.cards.get(card_id)
    if card is None:
        return None
    card.x = x
    card.y = y
    return card


def move_deck(state: Table_State, deck_id: str, x: float, y: float) -> Deck | None:
    deck = state.decks.get(deck_id)
    if deck is None:
        return None
    deck.x = x
    deck.y = y
    return deck


def set_face_up(state: Table_State, card_id: str, face_up: bool) -> Card | None:
    card = state.cards.get(card_id)
    if card is None:
        return None
    card.face_up = face_up
    return card


def rotate(state: Table_State, card_id: str) -> Card | None:
    card = state.cards.get(card_id)
    if card is None:
        return None
    card.rotation += tweak["rotation_step"]
    return card


def set_owner(state: Table_State, card_id: str, owner: str | None) -> Card | None:
    card = state.cards.get(card_id)
    if card is None:
        return None
    card.owner = owner
    return card


def merge_card_into_deck(state: Table_State, card_id: str, deck_id: str, mode: str) -> Deck | None:
    """Put a loose card back into a deck: on top for "top", underneath otherwise."""
    card = state.cards.get(card_id)
    deck = state.decks.get(deck_id)
    if card is None or deck is None:
        return None
    if mode == "top":
        deck.cards.append(card.image)
    else:
        deck.cards.insert(0, card.image)
    del state.cards[card_id]
    return deck


def locate(state: Table_State, image: str) -> Card_Location | None:
    """Find where an image currently lives: inside a deck or as a loose card."""
    for deck in state.decks.values():
        if image in deck.cards:
            return In_Deck(deck_id=deck.id, index=deck.cards.index(image))
    for card in state.cards.values():
        if card.image == image:
            return Loose(card=card)
    return None
