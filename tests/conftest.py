from __future__ import annotations
import random

import pytest

from card_table.handlers import Table_Context
from card_table.messages import Envelope, To_All, To_Client
import card_table.table_state as ts

DEFAULT_BACK = "/assets/card-back.png"


def fake_back(deck_id: str | None) -> str:
    return f"/uploads/{deck_id}/card-back.png" if deck_id else DEFAULT_BACK


def messages_for(envelopes: list[Envelope], client_id: str) -> list[dict]:
    """What a given client would receive from a list of envelopes."""
    received = []
    for envelope in envelopes:
        target = envelope.recipients
        if isinstance(target, To_Client) and target.client_id == client_id:
            received.append(envelope.message)
        elif isinstance(target, To_All) and target.includes(client_id):
            received.append(envelope.message)
    return received


@pytest.fixture
def ctx():
    return Table_Context(rng=random.Random(1234), back_resolver=fake_back)


@pytest.fixture
def d1(ctx):
    return ts.create_deck(ctx.state, "D1", ["a", "b", "c"], 100, 100)
