from __future__ import annotations
import socket
from dataclasses import dataclass, field

from card_table.models import Card, Deck, Table_State
from card_table.messages import Protocol_Error
from card_table_online.protocol import recv_message


@dataclass
class Replica:
    """A client's copy of the table, rebuilt from the server's notifications."""
    client_id: str | None = None
    table: Table_State = field(default_factory=Table_State)
    layers: dict[str, int] = field(default_factory=dict)
    highlights: dict[str, set[str]] = field(default_factory=dict)


def deck_from_dict(data: dict) -> Deck:
    return Deck(id=data["id"], cards=list(data["cards"]), x=data["x"], y=data["y"], kind=data.get("kind", "deck"))


def card_from_dict(data: dict) -> Card:
    return Card(
        id=data["id"],
        image=data["image"],
        x=data["x"],
        y=data["y"],
        rotation=data["rotation"],
        face_up=data["face_up"],
        owner=data["owner"],
        deck_id=data["deck_id"],
    )


def apply_message(replica: Replica, msg: dict) -> bool:
    """Apply one server message to the replica. Returns True if the table changed."""
    table = replica.table
    msg_type = msg.get("type")

    if msg_type == "welcome":
        replica.client_id = msg["client_id"]
        return False

    if msg_type == "current_game_state":
        table.decks = {d["id"]: deck_from_dict(d) for d in msg["decks"]}
        table.cards = {c["id"]: card_from_dict(c) for c in msg["cards"]}
        replica.layers.clear()
        return True

    if msg_type in ("deck_created", "deck_shuffled"):
        deck = deck_from_dict(msg["deck"])
        table.decks[deck.id] = deck
        return True

    if msg_type == "deck_moved":
        deck = table.decks.get(msg["id"])
        if deck is None:
            return False
        deck.x, deck.y = msg["x"], msg["y"]
        return True

    if msg_type == "deck_deleted":
        replica.highlights.pop(msg["id"], None)
        return table.decks.pop(msg["id"], None) is not None

    if msg_type == "deck_highlight":
        colors = replica.highlights.setdefault(msg["id"], set())
        if msg["add"]:
            colors.add(msg["color"])
        else:
            colors.discard(msg["color"])
        return False

    if msg_type in ("card_drawn", "opponent_card_drawn"):
        card = card_from_dict(msg["card"])
        table.cards[card.id] = card
        return True

    if msg_type == "card_deleted":
        replica.layers.pop(msg["id"], None)
        return table.cards.pop(msg["id"], None) is not None

    card = table.cards.get(msg.get("id"))
    if card is None:
        return False

    if msg_type == "card_moved":
        card.x, card.y = msg["x"], msg["y"]
    elif msg_type == "card_flipped":
        card.face_up = msg["face_up"]
        card.image = msg["image"]
    elif msg_type == "card_rotated":
        card.rotation = msg["rotation"]
    elif msg_type == "card_change_layer":
        replica.layers[card.id] = msg["layer"]
        return False
    else:
        return False
    return True


def render_table_text(replica: Replica) -> str:
    table = replica.table
    lines = []
    lines.append("=" * 60)
    lines.append(f"--- Decks ({len(table.decks)}) ---")
    for deck in table.decks.values():
        top = deck.cards[-1] if deck.cards else "-"
        lines.append(f"  {deck.id} [{deck.kind}] at ({deck.x:g}, {deck.y:g}): {len(deck.cards)} cards, top {top}")

    lines.append(f"--- Loose cards ({len(table.cards)}) ---")
    for card in table.cards.values():
        face = "up" if card.face_up else "down"
        if card.owner is None:
            holder = "public"
        elif card.owner == replica.client_id:
            holder = "yours"
        else:
            holder = f"held by {card.owner}"
        lines.append(f"  {card.image} at ({card.x:g}, {card.y:g}), face {face}, rotated {card.rotation}, {holder}")
    lines.append("=" * 60)
    return "\n".join(lines)


def run_client(host: str = "localhost", port: int = 3000):
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.connect((host, port))
    print(f"Connected to {host}:{port}")

    replica = Replica()
    try:
        while True:
            try:
                msg = recv_message(sock)
            except Protocol_Error as e:
                print(f"Ignoring bad message: {e}")
                continue
            if apply_message(replica, msg):
                print(render_table_text(replica))
            elif msg.get("type") == "welcome":
                print(f"You are {replica.client_id}")
    except ConnectionError:
        print("Disconnected from server.")
    finally:
        sock.close()
