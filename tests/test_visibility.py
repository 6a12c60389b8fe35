from __future__ import annotations

from card_table.messages import To_All, To_Client, card_flipped
from card_table.models import Card, Table_State
from card_table.visibility import (
    is_visible_to, visible_image, card_envelopes, snapshot_for,
)
from conftest import fake_back, messages_for


def make_card(face_up=False, owner=None) -> Card:
    return Card(id="card-1", image="/uploads/D1/ace.png", face_up=face_up, owner=owner, deck_id="D1")


def test_face_up_is_visible_to_everyone():
    card = make_card(face_up=True, owner="alice")
    assert is_visible_to(card, "bob")
    assert is_visible_to(card, None)


def test_public_face_down_is_visible_to_everyone():
    card = make_card(face_up=False, owner=None)
    assert visible_image(card, "bob", fake_back) == card.image


def test_owner_sees_own_face_down_card():
    card = make_card(face_up=False, owner="alice")
    assert visible_image(card, "alice", fake_back) == card.image


def test_others_get_the_origin_deck_back():
    card = make_card(face_up=False, owner="alice")
    assert visible_image(card, "bob", fake_back) == "/uploads/D1/card-back.png"
    assert visible_image(card, None, fake_back) == "/uploads/D1/card-back.png"


def test_envelopes_split_between_owner_and_others():
    card = make_card(face_up=False, owner="alice")

    envelopes = card_envelopes(card, card_flipped, fake_back)

    assert envelopes[0].recipients == To_Client("alice")
    assert envelopes[0].message["image"] == card.image
    assert envelopes[1].recipients == To_All(exclude="alice")
    assert envelopes[1].message["image"] == "/uploads/D1/card-back.png"
    for client in ("bob", "carol"):
        assert all(m["image"] != card.image for m in messages_for(envelopes, client))


def test_envelopes_single_broadcast_when_nothing_to_hide():
    card = make_card(face_up=True, owner="alice")

    envelopes = card_envelopes(card, card_flipped, fake_back)

    assert len(envelopes) == 1
    assert envelopes[0].recipients == To_All()
    assert envelopes[0].message["image"] == card.image


def test_snapshot_is_filtered_per_viewer():
    state = Table_State()
    hidden = make_card(face_up=False, owner="alice")
    state.cards[hidden.id] = hidden

    for_alice = snapshot_for(state, "alice", fake_back)
    for_bob = snapshot_for(state, "bob", fake_back)

    assert for_alice["type"] == "current_game_state"
    assert for_alice["cards"][0]["image"] == hidden.image
    assert for_bob["cards"][0]["image"] == "/uploads/D1/card-back.png"
    assert hidden.image not in str(for_bob)
