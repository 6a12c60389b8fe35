from __future__ import annotations
from typing import Callable

from card_table.models import Card, Table_State, serialize_card, serialize_deck
from card_table.messages import Envelope, To_All, To_Client, current_game_state

# deck_id (or None) -> image reference of that deck's card back
Back_Resolver = Callable[[str | None], str]


def is_visible_to(card: Card, viewer: str | None) -> bool:
    """
    Whether `viewer` may see the card's face.
    A viewer of None stands for any client that does not own the card.
    Public face-down cards (owner None) are known to everyone.
    """
    if card.face_up or card.owner is None:
        return True
    return viewer is not None and card.owner == viewer


def visible_image(card: Card, viewer: str | None, resolve_back: Back_Resolver) -> str:
    if is_visible_to(card, viewer):
        return card.image
    return resolve_back(card.deck_id)


def card_view(card: Card, viewer: str | None, resolve_back: Back_Resolver) -> dict:
    return serialize_card(card, visible_image(card, viewer, resolve_back))


def card_envelopes(
    card: Card,
    build: Callable[[Card, str], dict],
    resolve_back: Back_Resolver,
    build_masked: Callable[[Card, str], dict] | None = None,
) -> list[Envelope]:
    """
    Fan a card notification out so each recipient gets the view it is allowed:
    one broadcast when everybody sees the same face, otherwise the true image
    to the owner and the back image to everyone else.
    `build_masked` builds the message for non-owners and defaults to `build`.
    """
    build_masked = build_masked or build
    if is_visible_to(card, None):
        return [Envelope(To_All(), build(card, card.image))]
    return [
        Envelope(To_Client(card.owner), build(card, card.image)),
        Envelope(To_All(exclude=card.owner), build_masked(card, resolve_back(card.deck_id))),
    ]


def snapshot_for(state: Table_State, viewer: str, resolve_back: Back_Resolver) -> dict:
    """Full table as `viewer` is allowed to see it."""
    decks = [serialize_deck(d) for d in state.decks.values()]
    cards = [card_view(c, viewer, resolve_back) for c in state.cards.values()]
    return current_game_state(decks, cards)
