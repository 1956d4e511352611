"""
Cursor: the minimal durable state carried between polls of one trigger.

Every field is absent-capable; ``None`` (or a missing ``terminal_ids`` key)
means "never observed". Cursors are immutable: strategies return a new one
via ``dataclasses.replace`` and the driver persists it as a single unit.

Persisted form is a JSON-compatible dict with a ``version`` key. Unversioned
documents written with camelCase static-data keys (``knownOrderIds``,
``filledOrderIds`` ...) are migrated on load.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping

from poll_core.errors import CursorVersionError

logger = logging.getLogger("triggers.cursor")

CURSOR_VERSION = 1

_LEGACY_TERMINAL_KEYS = {
    "filledOrderIds": "filled",
    "canceledOrderIds": "canceled",
}


@dataclass(frozen=True)
class Cursor:
    known_order_ids: frozenset[str] | None = None
    terminal_ids: Mapping[str, frozenset[str]] = field(default_factory=dict)
    positions_fingerprint: str | None = None
    last_equity: float | None = None
    last_price: float | None = None
    last_market_state: str | None = None

    def terminal(self, status: str) -> frozenset[str] | None:
        """IDs already reported for *status*, or None if never observed."""
        return self.terminal_ids.get(status)

    def with_terminal(self, status: str, ids: Iterable[str]) -> Cursor:
        """Return a copy with ``terminal_ids[status]`` replaced."""
        updated = dict(self.terminal_ids)
        updated[status] = frozenset(ids)
        return replace(self, terminal_ids=updated)

    def is_empty(self) -> bool:
        return self == Cursor()


def _id_list(ids: frozenset[str] | None) -> list[str] | None:
    return None if ids is None else sorted(ids)


def _id_set(value: Any) -> frozenset[str] | None:
    if value is None:
        return None
    return frozenset(str(v) for v in value)


def _float_or_none(value: Any) -> float | None:
    if value is None:
        return None
    return float(value)


def cursor_to_dict(cursor: Cursor) -> dict[str, Any]:
    """Serialize to a JSON-compatible dict. ID sets are written sorted."""
    return {
        "version": CURSOR_VERSION,
        "known_order_ids": _id_list(cursor.known_order_ids),
        "terminal_ids": {status: sorted(ids) for status, ids in sorted(cursor.terminal_ids.items())},
        "positions_fingerprint": cursor.positions_fingerprint,
        "last_equity": cursor.last_equity,
        "last_price": cursor.last_price,
        "last_market_state": cursor.last_market_state,
    }


def _from_legacy(data: Mapping[str, Any]) -> Cursor:
    terminal = {
        status: frozenset(str(v) for v in data[key])
        for key, status in _LEGACY_TERMINAL_KEYS.items()
        if data.get(key) is not None
    }
    if data.get("positionsHash") is not None:
        # Legacy hash is a raw JSON string, not comparable with our fingerprint.
        logger.info("Dropping legacy positionsHash; next poll re-seeds it")
    return Cursor(
        known_order_ids=_id_set(data.get("knownOrderIds")),
        terminal_ids=terminal,
        last_equity=_float_or_none(data.get("totalEquity")),
        last_price=_float_or_none(data.get("lastPrice")),
        last_market_state=data.get("marketState"),
    )


def cursor_from_dict(data: Mapping[str, Any] | None) -> Cursor:
    """Deserialize a persisted cursor, migrating legacy documents."""
    if not data:
        return Cursor()
    version = data.get("version")
    if version is None:
        return _from_legacy(data)
    if version != CURSOR_VERSION:
        raise CursorVersionError(
            f"Unsupported cursor version {version!r} (this build reads version {CURSOR_VERSION})"
        )
    return Cursor(
        known_order_ids=_id_set(data.get("known_order_ids")),
        terminal_ids={
            str(status): frozenset(str(v) for v in ids)
            for status, ids in (data.get("terminal_ids") or {}).items()
            if ids is not None
        },
        positions_fingerprint=data.get("positions_fingerprint"),
        last_equity=_float_or_none(data.get("last_equity")),
        last_price=_float_or_none(data.get("last_price")),
        last_market_state=data.get("last_market_state"),
    )
