"""
Data contracts for poll-core: snapshot records, trigger events, diff results.

Snapshot records are built from raw Tradier JSON records and keep the raw
mapping so event payloads carry every field the API returned.
No I/O; these are plain dataclasses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Sequence

from poll_core.cursor import Cursor
from poll_core.errors import MalformedSnapshotError

logger = logging.getLogger("triggers.contracts")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class OrderStatus(str, Enum):
    """Order status as reported by the brokerage. UNKNOWN absorbs anything new."""

    OPEN = "open"
    PENDING = "pending"
    FILLED = "filled"
    CANCELED = "canceled"
    EXPIRED = "expired"
    REJECTED = "rejected"
    PARTIALLY_FILLED = "partially_filled"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> OrderStatus:
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.UNKNOWN


class MarketState(str, Enum):
    """Market clock states."""

    OPEN = "open"
    CLOSED = "closed"
    PRE = "premarket"
    POST = "postmarket"


class SnapshotKind(str, Enum):
    """What a fetcher is asked for. ACCOUNT kinds are scoped by account id."""

    ORDERS = "orders"
    POSITIONS = "positions"
    BALANCES = "balances"
    QUOTE = "quote"
    CLOCK = "clock"

    @property
    def account_scoped(self) -> bool:
        return self in (SnapshotKind.ORDERS, SnapshotKind.POSITIONS, SnapshotKind.BALANCES)


# ---------------------------------------------------------------------------
# Normalization helpers
# ---------------------------------------------------------------------------


def normalize_collection(value: Any) -> list[Mapping[str, Any]]:
    """Turn an upstream collection into a list of records.

    Tradier returns ``null``, the string ``"null"``, a single object, or a
    list depending on how many items exist. All of them become a list.
    """
    if value is None or value == "null" or value == "":
        return []
    if isinstance(value, Mapping):
        return [value]
    if isinstance(value, (list, tuple)):
        out = []
        for item in value:
            if not isinstance(item, Mapping):
                raise MalformedSnapshotError(f"Expected object in collection, got {type(item).__name__}")
            out.append(item)
        return out
    raise MalformedSnapshotError(f"Expected collection, got {type(value).__name__}")


def _required_float(raw: Mapping[str, Any], key: str, what: str) -> float:
    value = raw.get(key)
    if value is None or isinstance(value, bool):
        raise MalformedSnapshotError(f"{what} is missing '{key}'")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise MalformedSnapshotError(f"{what} has non-numeric '{key}': {value!r}") from None


def _optional_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# ---------------------------------------------------------------------------
# Snapshot records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Order:
    id: str
    status: OrderStatus
    symbol: str
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_record(cls, raw: Mapping[str, Any]) -> Order:
        order_id = raw.get("id")
        if order_id is None or order_id == "":
            raise MalformedSnapshotError("Order record is missing 'id'")
        return cls(
            id=str(order_id),
            status=OrderStatus.parse(raw.get("status")),
            symbol=str(raw.get("symbol") or ""),
            raw=dict(raw),
        )


@dataclass(frozen=True)
class Position:
    symbol: str
    quantity: float | None
    cost_basis: float | None
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_record(cls, raw: Mapping[str, Any]) -> Position:
        return cls(
            symbol=str(raw.get("symbol") or ""),
            quantity=_optional_float(raw.get("quantity")),
            cost_basis=_optional_float(raw.get("cost_basis")),
            raw=dict(raw),
        )


@dataclass(frozen=True)
class Balance:
    total_equity: float
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_record(cls, raw: Mapping[str, Any]) -> Balance:
        return cls(total_equity=_required_float(raw, "total_equity", "Balance"), raw=dict(raw))


@dataclass(frozen=True)
class Quote:
    symbol: str
    last_price: float
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_record(cls, raw: Mapping[str, Any]) -> Quote:
        return cls(
            symbol=str(raw.get("symbol") or ""),
            last_price=_required_float(raw, "last", "Quote"),
            raw=dict(raw),
        )


@dataclass(frozen=True)
class Clock:
    state: str
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_record(cls, raw: Mapping[str, Any]) -> Clock:
        state = raw.get("state")
        if not isinstance(state, str) or not state:
            raise MalformedSnapshotError("Clock record is missing 'state'")
        return cls(state=state.lower(), raw=dict(raw))


def parse_orders(records: Any) -> tuple[Order, ...]:
    return tuple(Order.from_record(r) for r in normalize_collection(records))


def parse_positions(records: Any) -> tuple[Position, ...]:
    return tuple(Position.from_record(r) for r in normalize_collection(records))


def select_quote(records: Any, symbol: str) -> Quote | None:
    """Pick the quote for *symbol*; fall back to the first quote returned.

    The fallback quote may be for another symbol, and its price then
    becomes the price alert's last price.
    """
    quotes = normalize_collection(records)
    if not quotes:
        return None
    for raw in quotes:
        if str(raw.get("symbol", "")).upper() == symbol.upper():
            return Quote.from_record(raw)
    logger.debug("No quote for %s; using first quote returned (%s)", symbol, quotes[0].get("symbol"))
    return Quote.from_record(quotes[0])


# ---------------------------------------------------------------------------
# Engine output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TriggerEvent:
    """One emitted event. ``payload`` becomes the ``json`` of the output item."""

    category: str
    payload: Mapping[str, Any]

    def to_item(self) -> dict[str, Any]:
        return {"json": dict(self.payload)}


@dataclass(frozen=True)
class DiffResult:
    """Events emitted by one evaluation and the cursor to persist next."""

    events: Sequence[TriggerEvent]
    cursor: Cursor

    @property
    def emitted(self) -> bool:
        return len(self.events) > 0
