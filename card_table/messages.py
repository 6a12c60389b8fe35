from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Any, Callable, Union

from card_table.config import tweak
from card_table.models import Card, Deck, serialize_card, serialize_deck


class Protocol_Error(ValueError):
    """Raised when an inbound message is malformed or of an unknown type."""
    pass


# --- Inbound events (client -> server) ---

@dataclass(frozen=True)
class Move_Card:
    id: str
    x: float
    y: float
    deck_add_mode: str = tweak["default_deck_add_mode"]

@dataclass(frozen=True)
class Move_Deck:
    id: str
    x: float
    y: float

@dataclass(frozen=True)
class Draw_Card:
    deck_id: str

@dataclass(frozen=True)
class Draw_Card_Face_Down:
    deck_id: str

@dataclass(frozen=True)
class Pick_Card_From_Deck:
    deck_id: str
    card_index: int

@dataclass(frozen=True)
class Flip_Card:
    id: str

@dataclass(frozen=True)
class Rotate_Card:
    id: str

@dataclass(frozen=True)
class Change_Layer:
    id: str
    layer: int

@dataclass(frozen=True)
class Take_Card:
    id: str

@dataclass(frozen=True)
class Delete_Card:
    id: str

@dataclass(frozen=True)
class Delete_Deck:
    id: str

@dataclass(frozen=True)
class Shuffle_Deck:
    deck_id: str

@dataclass(frozen=True)
class Highlight_Deck:
    id: str
    color: str
    add: bool

@dataclass(frozen=True)
class Create_Pile:
    x: float
    y: float

@dataclass(frozen=True)
class Add_Existing_Deck:
    deck_id: str


Event = Union[
    Move_Card, Move_Deck, Draw_Card, Draw_Card_Face_Down, Pick_Card_From_Deck,
    Flip_Card, Rotate_Card, Change_Layer, Take_Card, Delete_Card, Delete_Deck,
    Shuffle_Deck, Highlight_Deck, Create_Pile, Add_Existing_Deck,
]


def _require(condition: bool, msg: str) -> None:
    if not condition:
        raise Protocol_Error(msg)


def _str(data: dict, key: str) -> str:
    value = data.get(key)
    _require(isinstance(value, str) and value != "", f"'{key}' must be a non-empty string")
    return value


def _as_coordinate(value: Any) -> float | None:
    # bool is an int subclass, but never a coordinate
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return None
    try:
        value = float(value)
    except OverflowError:
        return None
    # json.loads accepts NaN and Infinity
    return value if math.isfinite(value) else None


def _number(data: dict, key: str) -> float:
    value = _as_coordinate(data.get(key))
    _require(value is not None, f"'{key}' must be a finite number")
    return value


def _int(data: dict, key: str) -> int:
    value = data.get(key)
    _require(isinstance(value, int) and not isinstance(value, bool), f"'{key}' must be an integer")
    return value


def _bool(data: dict, key: str) -> bool:
    value = data.get(key)
    _require(isinstance(value, bool), f"'{key}' must be a boolean")
    return value


def _number_or(data: dict, key: str, default: float) -> float:
    value = _as_coordinate(data.get(key))
    return default if value is None else value


def _deck_add_mode(data: dict) -> str:
    mode = data.get("deck_add_mode")
    if mode in ("top", "bottom"):
        return mode
    return tweak["default_deck_add_mode"]


_parsers: dict[str, Callable[[dict], Event]] = {
    "move_card": lambda d: Move_Card(_str(d, "id"), _number(d, "x"), _number(d, "y"), _deck_add_mode(d)),
    "move_deck": lambda d: Move_Deck(_str(d, "id"), _number(d, "x"), _number(d, "y")),
    "draw_card": lambda d: Draw_Card(_str(d, "deck_id")),
    "draw_card_face_down": lambda d: Draw_Card_Face_Down(_str(d, "deck_id")),
    "pick_card_from_deck": lambda d: Pick_Card_From_Deck(_str(d, "deck_id"), _int(d, "card_index")),
    "flip_card": lambda d: Flip_Card(_str(d, "id")),
    "rotate_card": lambda d: Rotate_Card(_str(d, "id")),
    "change_layer": lambda d: Change_Layer(_str(d, "id"), _int(d, "layer")),
    "take_card": lambda d: Take_Card(_str(d, "id")),
    "delete_card": lambda d: Delete_Card(_str(d, "id")),
    "delete_deck": lambda d: Delete_Deck(_str(d, "id")),
    "shuffle_deck": lambda d: Shuffle_Deck(_str(d, "deck_id")),
    "highlight_deck": lambda d: Highlight_Deck(_str(d, "id"), _str(d, "color"), _bool(d, "add")),
    "create_pile": lambda d: Create_Pile(_number_or(d, "x", tweak["pile_x"]), _number_or(d, "y", tweak["pile_y"])),
    "add_existing_deck": lambda d: Add_Existing_Deck(_str(d, "deck_id")),
}

EVENT_TYPES = frozenset(_parsers)


def parse_event(data: Any) -> Event:
    """Decode a JSON object into one of the inbound event kinds."""
    _require(isinstance(data, dict), "message must be a JSON object")
    msg_type = data.get("type")
    parser = _parsers.get(msg_type) if isinstance(msg_type, str) else None
    _require(parser is not None, f"Unknown message type: {msg_type!r}")
    return parser(data)


# --- Outbound messages (server -> clients) ---

@dataclass(frozen=True)
class To_Client:
    client_id: str

@dataclass(frozen=True)
class To_All:
    exclude: str | None = None  # Skip this client, usually the sender

    def includes(self, client_id: str) -> bool:
        return client_id != self.exclude


Recipients = Union[To_Client, To_All]


@dataclass(frozen=True)
class Envelope:
    recipients: Recipients
    message: dict


def welcome(client_id: str) -> dict:
    return {"type": "welcome", "client_id": client_id}


def current_game_state(decks: list[dict], cards: list[dict]) -> dict:
    return {"type": "current_game_state", "decks": decks, "cards": cards}


def card_message(msg_type: str, card: Card, image: str) -> dict:
    return {"type": msg_type, "card": serialize_card(card, image)}


def card_moved(card: Card) -> dict:
    return {"type": "card_moved", "id": card.id, "x": card.x, "y": card.y}


def card_flipped(card: Card, image: str) -> dict:
    return {"type": "card_flipped", "id": card.id, "face_up": card.face_up, "image": image, "deck_id": card.deck_id}


def card_rotated(card: Card) -> dict:
    return {"type": "card_rotated", "id": card.id, "rotation": card.rotation}


def card_change_layer(card_id: str, layer: int) -> dict:
    return {"type": "card_change_layer", "id": card_id, "layer": layer}


def card_deleted(card_id: str) -> dict:
    return {"type": "card_deleted", "id": card_id}


def deck_created(deck: Deck) -> dict:
    return {"type": "deck_created", "deck": serialize_deck(deck)}


def deck_updated(deck: Deck) -> dict:
    return {"type": "deck_updated", "id": deck.id, "card_count": len(deck.cards)}


def deck_moved(deck: Deck) -> dict:
    return {"type": "deck_moved", "id": deck.id, "x": deck.x, "y": deck.y}


def deck_shuffled(deck: Deck) -> dict:
    return {"type": "deck_shuffled", "deck": serialize_deck(deck)}


def deck_deleted(deck_id: str) -> dict:
    return {"type": "deck_deleted", "id": deck_id}


def deck_highlight(deck_id: str, color: str, add: bool) -> dict:
    return {"type": "deck_highlight", "id": deck_id, "color": color, "add": add}
