"""Tests for cursor persistence."""

import tempfile
from pathlib import Path

import pytest

from data.cursor_store import MemoryCursorStore, SqliteCursorStore
from poll_core.cursor import Cursor


@pytest.fixture
def db_path():
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp) / "state" / "cursors.db"


def test_sqlite_missing_key_is_empty_cursor(db_path):
    store = SqliteCursorStore(db_path)
    assert store.load("new_order|account=VA0001").is_empty()
    assert db_path.exists()


def test_sqlite_survives_reopen(db_path):
    cursor = Cursor(known_order_ids=frozenset({"1", "2"}), last_price=101.5).with_terminal("filled", {"1"})
    SqliteCursorStore(db_path).save("k", cursor)
    assert SqliteCursorStore(db_path).load("k") == cursor


def test_sqlite_save_replaces_whole_cursor(db_path):
    store = SqliteCursorStore(db_path)
    store.save("k", Cursor(last_price=1.0, last_equity=2.0))
    store.save("k", Cursor(last_price=3.0))
    loaded = store.load("k")
    assert loaded.last_price == 3.0
    assert loaded.last_equity is None
    assert store.keys() == ["k"]


def test_sqlite_delete_and_keys(db_path):
    store = SqliteCursorStore(db_path)
    store.save("b", Cursor(last_price=1.0))
    store.save("a", Cursor(last_price=2.0))
    assert store.keys() == ["a", "b"]
    assert store.delete("a") is True
    assert store.delete("a") is False
    assert store.keys() == ["b"]


def test_memory_store_round_trip():
    store = MemoryCursorStore()
    assert store.load("k").is_empty()
    cursor = Cursor(last_market_state="open")
    store.save("k", cursor)
    assert store.load("k") == cursor
    assert store.keys() == ["k"]
    assert store.delete("k") is True
    assert store.load("k").is_empty()
