"""
Data layer: fetch brokerage snapshots and persist trigger cursors.

Depends on poll_core for records and cursors; no dependency from poll_core back to data.
"""

from data.cursor_store import CursorStore, MemoryCursorStore, SqliteCursorStore
from data.fetcher import SnapshotFetcher, StaticSnapshotFetcher

__all__ = [
    "CursorStore",
    "MemoryCursorStore",
    "SnapshotFetcher",
    "SqliteCursorStore",
    "StaticSnapshotFetcher",
]


def get_tradier_fetcher(access_token: str, environment: str = "sandbox", timeout: float = 10.0):
    """Lazy import so requests is only loaded when talking to Tradier."""
    from data.tradier_fetcher import TradierSnapshotFetcher

    return TradierSnapshotFetcher(access_token, environment=environment, timeout=timeout)
