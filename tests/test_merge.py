from __future__ import annotations

import card_table.table_state as ts
from card_table.merge import distance, find_merge_target
from card_table.models import Table_State


def test_distance():
    assert distance(108, 100, 100, 100) == 8
    assert distance(0, 0, 3, 4) == 5


def test_card_within_threshold_merges():
    state = Table_State()
    ts.create_deck(state, "D1", [], 100, 100)
    assert find_merge_target(state, 108, 100).id == "D1"


def test_threshold_is_strict():
    state = Table_State()
    ts.create_deck(state, "D1", [], 100, 100)
    assert find_merge_target(state, 120, 100) is None
    assert find_merge_target(state, 119.9, 100).id == "D1"


def test_first_deck_in_table_order_wins():
    state = Table_State()
    ts.create_deck(state, "far", [], 110, 100)
    ts.create_deck(state, "near", [], 101, 100)
    assert find_merge_target(state, 100, 100).id == "far"


def test_custom_threshold():
    state = Table_State()
    ts.create_deck(state, "D1", [], 0, 0)
    assert find_merge_target(state, 30, 0, threshold=50).id == "D1"
    assert find_merge_target(state, 30, 0, threshold=10) is None


def test_distance_between_far_apart_points_does_not_raise():
    state = Table_State()
    ts.create_deck(state, "D1", [], 1.7e308, 1.7e308)
    assert find_merge_target(state, -1.7e308, -1.7e308) is None
