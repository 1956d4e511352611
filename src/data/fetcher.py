"""
Fetch snapshots from a brokerage. Configurable adapter; sync.
"""

from typing import Any, Callable, Mapping, Protocol

from poll_core.contracts import SnapshotKind


class SnapshotFetcher(Protocol):
    """Protocol for snapshot fetchers. Implement per brokerage (Tradier, etc.)."""

    def fetch(self, kind: SnapshotKind, scope: str | None = None) -> Any:
        """Return the typed snapshot for *kind*; raise FetchError on failure.

        Orders and positions come back as tuples of records, balances as a
        Balance, quotes as a Quote (or None when nothing matched), the clock
        as a Clock.
        """
        ...


class StaticSnapshotFetcher:
    """Serves pre-built snapshots; for tests and dry runs.

    *snapshots* maps a kind to either a snapshot or a callable taking the
    scope. Every call is recorded in ``calls``.
    """

    def __init__(self, snapshots: Mapping[SnapshotKind, Any] | None = None) -> None:
        self._snapshots = dict(snapshots or {})
        self.calls: list[tuple[SnapshotKind, str | None]] = []

    def set(self, kind: SnapshotKind, snapshot: Any | Callable[[str | None], Any]) -> None:
        self._snapshots[kind] = snapshot

    def fetch(self, kind: SnapshotKind, scope: str | None = None) -> Any:
        self.calls.append((kind, scope))
        value = self._snapshots.get(kind)
        if callable(value):
            return value(scope)
        return value
