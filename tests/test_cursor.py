"""Tests for cursor serialization, legacy migration and versioning."""

import json

import pytest

from poll_core.cursor import CURSOR_VERSION, Cursor, cursor_from_dict, cursor_to_dict
from poll_core.errors import CursorVersionError


def _full_cursor() -> Cursor:
    return Cursor(
        known_order_ids=frozenset({"3", "1", "2"}),
        terminal_ids={"filled": frozenset({"A"}), "canceled": frozenset()},
        positions_fingerprint="abc123",
        last_equity=10500.5,
        last_price=101.25,
        last_market_state="open",
    )


def test_round_trip_preserves_every_field():
    cursor = _full_cursor()
    restored = cursor_from_dict(json.loads(json.dumps(cursor_to_dict(cursor))))
    assert restored == cursor


def test_round_trip_keeps_absent_distinct_from_empty():
    cursor = Cursor(known_order_ids=frozenset())
    restored = cursor_from_dict(cursor_to_dict(cursor))
    assert restored.known_order_ids == frozenset()
    assert restored.terminal("filled") is None
    assert restored.last_price is None


def test_serialized_ids_are_sorted():
    data = cursor_to_dict(_full_cursor())
    assert data["version"] == CURSOR_VERSION
    assert data["known_order_ids"] == ["1", "2", "3"]
    assert data["terminal_ids"] == {"canceled": [], "filled": ["A"]}


@pytest.mark.parametrize("data", [None, {}])
def test_empty_document_is_empty_cursor(data):
    assert cursor_from_dict(data).is_empty()


def test_legacy_document_migrates():
    legacy = {
        "knownOrderIds": [101, 102],
        "filledOrderIds": [101],
        "canceledOrderIds": [],
        "totalEquity": 25000,
        "lastPrice": 99.5,
        "marketState": "closed",
        "positionsHash": '[{"symbol":"SPY"}]',
    }
    cursor = cursor_from_dict(legacy)
    assert cursor.known_order_ids == frozenset({"101", "102"})
    assert cursor.terminal("filled") == frozenset({"101"})
    assert cursor.terminal("canceled") == frozenset()
    assert cursor.last_equity == 25000.0
    assert cursor.last_price == 99.5
    assert cursor.last_market_state == "closed"
    # Not comparable with the sha256 fingerprint, so it re-seeds.
    assert cursor.positions_fingerprint is None


def test_legacy_partial_document():
    cursor = cursor_from_dict({"lastPrice": 10})
    assert cursor.last_price == 10.0
    assert cursor.known_order_ids is None
    assert cursor.terminal_ids == {}


def test_unknown_version_raises():
    with pytest.raises(CursorVersionError, match="version 2"):
        cursor_from_dict({"version": 2, "last_price": 1.0})


def test_with_terminal_does_not_mutate():
    base = Cursor()
    updated = base.with_terminal("filled", ["A"])
    assert base.terminal("filled") is None
    assert updated.terminal("filled") == frozenset({"A"})
    assert not updated.is_empty()
