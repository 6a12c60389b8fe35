from __future__ import annotations
import random
from dataclasses import dataclass, field
from typing import Any, Callable

import card_table.table_state as ts
import card_table.messages as msg
from card_table.config import tweak
from card_table.library import Deck_Library
from card_table.logging_utils import get_logger
from card_table.merge import find_merge_target
from card_table.messages import Envelope, To_All, To_Client, Protocol_Error
from card_table.models import Card, Deck, In_Deck, Table_State
from card_table.visibility import Back_Resolver, card_envelopes, snapshot_for

log = get_logger("table.handlers")


@dataclass
class Table_Context:
    """Everything a handler needs: the table itself plus its collaborators."""
    state: Table_State = field(default_factory=Table_State)
    library: Deck_Library = field(default_factory=Deck_Library)
    rng: random.Random = field(default_factory=random.Random)
    back_resolver: Back_Resolver | None = None  # Defaults to the library's card backs

    def resolve_back(self, deck_id: str | None) -> str:
        if self.back_resolver is not None:
            return self.back_resolver(deck_id)
        return self.library.card_back(deck_id)


def _to_all(message: dict, exclude: str | None = None) -> Envelope:
    return Envelope(To_All(exclude=exclude), message)


def _deck_changed(deck: Deck) -> list[Envelope]:
    return [_to_all(msg.deck_updated(deck)), _to_all(msg.deck_created(deck))]


def _drawn(card: Card, image: str) -> dict:
    return msg.card_message("card_drawn", card, image)


def _opponent_drawn(card: Card, image: str) -> dict:
    return msg.card_message("opponent_card_drawn", card, image)


def _missing(kind: str, ref: Any) -> list[Envelope]:
    log.debug(f"Ignoring event for unknown {kind} {ref!r}")
    return []


# --- Connection lifecycle ---

def handle_connect(ctx: Table_Context, client_id: str) -> list[Envelope]:
    return [
        Envelope(To_Client(client_id), msg.welcome(client_id)),
        Envelope(To_Client(client_id), snapshot_for(ctx.state, client_id, ctx.resolve_back)),
    ]


def handle_disconnect(ctx: Table_Context, client_id: str) -> list[Envelope]:
    # Cards held by the client keep their owner.
    owned = sum(1 for c in ctx.state.cards.values() if c.owner == client_id)
    if owned:
        log.info(f"{client_id} left holding {owned} card(s)")
    return []


# --- Card events ---

def handle_move_card(ctx: Table_Context, sender: str, event: msg.Move_Card) -> list[Envelope]:
    if event.id not in ctx.state.cards:
        return _missing("card", event.id)

    target = find_merge_target(ctx.state, event.x, event.y)
    card = ts.move_card(ctx.state, event.id, event.x, event.y)
    if target is None:
        return [_to_all(msg.card_moved(card), exclude=sender)]

    deck = ts.merge_card_into_deck(ctx.state, card.id, target.id, event.deck_add_mode)
    log.debug(f"Card {card.id} merged into {deck.id} ({event.deck_add_mode})")
    return [_to_all(msg.card_deleted(card.id))] + _deck_changed(deck)


def handle_draw_card(ctx: Table_Context, sender: str, event: msg.Draw_Card) -> list[Envelope]:
    card = ts.draw_top(ctx.state, event.deck_id, owner=sender)
    if card is None:
        return _missing("deck (or empty deck)", event.deck_id)
    envelopes = card_envelopes(card, _drawn, ctx.resolve_back, build_masked=_opponent_drawn)
    return envelopes + _deck_changed(ctx.state.decks[event.deck_id])


def handle_draw_card_face_down(ctx: Table_Context, sender: str, event: msg.Draw_Card_Face_Down) -> list[Envelope]:
    card = ts.draw_top(ctx.state, event.deck_id, owner=None)
    if card is None:
        return _missing("deck (or empty deck)", event.deck_id)
    # Nobody owns it, so nobody is hidden from.
    return [_to_all(_opponent_drawn(card, card.image))] + _deck_changed(ctx.state.decks[event.deck_id])


def handle_pick_card_from_deck(ctx: Table_Context, sender: str, event: msg.Pick_Card_From_Deck) -> list[Envelope]:
    card = ts.pick_at(ctx.state, event.deck_id, event.card_index)
    if card is None:
        return _missing("deck card", (event.deck_id, event.card_index))
    return [_to_all(_drawn(card, card.image))] + _deck_changed(ctx.state.decks[event.deck_id])


def handle_flip_card(ctx: Table_Context, sender: str, event: msg.Flip_Card) -> list[Envelope]:
    card = ctx.state.cards.get(event.id)
    if card is None:
        return _missing("card", event.id)
    ts.set_face_up(ctx.state, card.id, not card.face_up)
    return card_envelopes(card, msg.card_flipped, ctx.resolve_back)


def handle_rotate_card(ctx: Table_Context, sender: str, event: msg.Rotate_Card) -> list[Envelope]:
    card = ts.rotate(ctx.state, event.id)
    if card is None:
        return _missing("card", event.id)
    return [_to_all(msg.card_rotated(card))]


def handle_change_layer(ctx: Table_Context, sender: str, event: msg.Change_Layer) -> list[Envelope]:
    if event.id not in ctx.state.cards:
        return _missing("card", event.id)
    return [_to_all(msg.card_change_layer(event.id, event.layer))]


def handle_take_card(ctx: Table_Context, sender: str, event: msg.Take_Card) -> list[Envelope]:
    card = ts.set_owner(ctx.state, event.id, sender)
    if card is None:
        return _missing("card", event.id)
    ts.set_face_up(ctx.state, card.id, False)
    return card_envelopes(card, _drawn, ctx.resolve_back, build_masked=_opponent_drawn)


def handle_delete_card(ctx: Table_Context, sender: str, event: msg.Delete_Card) -> list[Envelope]:
    if ts.delete_card(ctx.state, event.id) is None:
        return _missing("card", event.id)
    return [_to_all(msg.card_deleted(event.id))]


# --- Deck events ---

def handle_move_deck(ctx: Table_Context, sender: str, event: msg.Move_Deck) -> list[Envelope]:
    deck = ts.move_deck(ctx.state, event.id, event.x, event.y)
    if deck is None:
        return _missing("deck", event.id)
    return [_to_all(msg.deck_moved(deck), exclude=sender)]


def handle_delete_deck(ctx: Table_Context, sender: str, event: msg.Delete_Deck) -> list[Envelope]:
    if ts.delete_deck(ctx.state, event.id) is None:
        return _missing("deck", event.id)
    return [_to_all(msg.deck_deleted(event.id))]


def handle_shuffle_deck(ctx: Table_Context, sender: str, event: msg.Shuffle_Deck) -> list[Envelope]:
    deck = ts.shuffle(ctx.state, event.deck_id, ctx.rng)
    if deck is None:
        return _missing("deck", event.deck_id)
    return [_to_all(msg.deck_shuffled(deck))]


def handle_highlight_deck(ctx: Table_Context, sender: str, event: msg.Highlight_Deck) -> list[Envelope]:
    return [_to_all(msg.deck_highlight(event.id, event.color, event.add))]


def handle_create_pile(ctx: Table_Context, sender: str, event: msg.Create_Pile) -> list[Envelope]:
    pile = ts.create_pile(ctx.state, event.x, event.y)
    return [_to_all(msg.deck_created(pile))]


def _free_images(state: Table_State, deck_id: str, images: list[str]) -> list[str]:
    """Drop images that already live somewhere else on the table."""
    free = []
    for image in images:
        location = ts.locate(state, image)
        if location is None or (isinstance(location, In_Deck) and location.deck_id == deck_id):
            free.append(image)
    return free


def handle_add_existing_deck(ctx: Table_Context, sender: str, event: msg.Add_Existing_Deck) -> list[Envelope]:
    images = ctx.library.card_images(event.deck_id)
    if images is None:
        return _missing("library deck", event.deck_id)

    images = _free_images(ctx.state, event.deck_id, images)
    ts.shuffle_cards(images, ctx.rng)
    spread = tweak["library_deck_spread"]
    x = tweak["library_deck_x"] + ctx.rng.randint(0, spread - 1)
    y = tweak["library_deck_y"] + ctx.rng.randint(0, spread - 1)
    deck = ts.create_deck(ctx.state, event.deck_id, images, x, y)
    return [_to_all(msg.deck_created(deck))]


Handler = Callable[[Table_Context, str, Any], list[Envelope]]

handlers: dict[type, Handler] = {
    msg.Move_Card: handle_move_card,
    msg.Move_Deck: handle_move_deck,
    msg.Draw_Card: handle_draw_card,
    msg.Draw_Card_Face_Down: handle_draw_card_face_down,
    msg.Pick_Card_From_Deck: handle_pick_card_from_deck,
    msg.Flip_Card: handle_flip_card,
    msg.Rotate_Card: handle_rotate_card,
    msg.Change_Layer: handle_change_layer,
    msg.Take_Card: handle_take_card,
    msg.Delete_Card: handle_delete_card,
    msg.Delete_Deck: handle_delete_deck,
    msg.Shuffle_Deck: handle_shuffle_deck,
    msg.Highlight_Deck: handle_highlight_deck,
    msg.Create_Pile: handle_create_pile,
    msg.Add_Existing_Deck: handle_add_existing_deck,
}


def handle_event(ctx: Table_Context, sender: str, event: msg.Event) -> list[Envelope]:
    return handlers[type(event)](ctx, sender, event)


def dispatch(ctx: Table_Context, sender: str, data: Any) -> list[Envelope]:
    """Decode one raw inbound message and run it. Malformed messages are dropped."""
    try:
        event = msg.parse_event(data)
    except Protocol_Error as e:
        log.warning(f"Dropping message from {sender}: {e}")
        return []
    return handle_event(ctx, sender, event)
