"""
Per-category edge detectors.

Every strategy implements the same pure contract:
    diff(spec, cursor, snapshot, now) -> DiffResult

The cursor field a strategy owns is always read before it is replaced, and
the replacement happens whether or not an event is emitted. A field that is
absent (never observed) only seeds the cursor; it never produces an event,
except for the price-alert ``above``/``below`` conditions, which treat a
first reading already past the threshold as a hit.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Sequence

from poll_core.contracts import (
    Balance,
    Clock,
    DiffResult,
    MarketState,
    Order,
    OrderStatus,
    Position,
    Quote,
    TriggerEvent,
)
from poll_core.cursor import Cursor
from poll_core.errors import MalformedSnapshotError
from poll_core.primitives import crossed, fell_to, fingerprint, new_items, rose_to
from poll_core.triggers import IdPolicy, PriceCondition, TriggerCategory, TriggerSpec


def _iso(now: datetime) -> str:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).isoformat()


def _as_sequence(snapshot: Any, item_type: type, what: str) -> Sequence[Any]:
    if snapshot is None:
        return ()
    items = tuple(snapshot)
    for item in items:
        if not isinstance(item, item_type):
            raise MalformedSnapshotError(f"{what} snapshot contains {type(item).__name__}")
    return items


def _next_ids(policy: IdPolicy, previous: frozenset[str] | None, current: frozenset[str]) -> frozenset[str]:
    if policy is IdPolicy.ACCUMULATE and previous is not None:
        return previous | current
    return current


class Strategy:
    """Base class. Subclasses set ``category`` and implement ``diff``."""

    category: TriggerCategory

    def diff(self, spec: TriggerSpec, cursor: Cursor, snapshot: Any, now: datetime) -> DiffResult:
        raise NotImplementedError

    def _event(self, payload: dict[str, Any]) -> TriggerEvent:
        return TriggerEvent(category=self.category.value, payload=payload)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


class NewOrderStrategy(Strategy):
    category = TriggerCategory.NEW_ORDER

    def diff(self, spec: TriggerSpec, cursor: Cursor, snapshot: Any, now: datetime) -> DiffResult:
        orders = _as_sequence(snapshot, Order, "Orders")
        known = cursor.known_order_ids
        current_ids = frozenset(o.id for o in orders)
        next_cursor = replace(cursor, known_order_ids=_next_ids(spec.id_policy, known, current_ids))
        if known is None:
            return DiffResult(events=(), cursor=next_cursor)
        fresh = new_items(orders, lambda o: o.id, known)
        return DiffResult(events=tuple(self._event(dict(o.raw)) for o in fresh), cursor=next_cursor)


class TerminalStatusStrategy(Strategy):
    """Reports each order the first time it is seen in one terminal status."""

    def __init__(self, category: TriggerCategory, status: OrderStatus) -> None:
        self.category = category
        self.status = status

    def diff(self, spec: TriggerSpec, cursor: Cursor, snapshot: Any, now: datetime) -> DiffResult:
        orders = _as_sequence(snapshot, Order, "Orders")
        reported = cursor.terminal(self.status.value)
        matching = [o for o in orders if o.status is self.status]
        candidates = frozenset(o.id for o in matching)
        next_cursor = cursor.with_terminal(
            self.status.value, _next_ids(spec.id_policy, reported, candidates)
        )
        if reported is None:
            return DiffResult(events=(), cursor=next_cursor)
        fresh = new_items(matching, lambda o: o.id, reported)
        return DiffResult(events=tuple(self._event(dict(o.raw)) for o in fresh), cursor=next_cursor)


# ---------------------------------------------------------------------------
# Account state
# ---------------------------------------------------------------------------


def positions_fingerprint(positions: Sequence[Position]) -> str:
    """Fingerprint of the ordered (symbol, quantity, cost_basis) projection."""
    return fingerprint(
        [{"symbol": p.symbol, "quantity": p.quantity, "cost_basis": p.cost_basis} for p in positions]
    )


class PositionChangeStrategy(Strategy):
    category = TriggerCategory.POSITION_CHANGE

    def diff(self, spec: TriggerSpec, cursor: Cursor, snapshot: Any, now: datetime) -> DiffResult:
        positions = _as_sequence(snapshot, Position, "Positions")
        previous = cursor.positions_fingerprint
        current = positions_fingerprint(positions)
        next_cursor = replace(cursor, positions_fingerprint=current)
        if previous is None or previous == current:
            return DiffResult(events=(), cursor=next_cursor)
        event = self._event({"positions": [dict(p.raw) for p in positions]})
        return DiffResult(events=(event,), cursor=next_cursor)


class BalanceChangeStrategy(Strategy):
    category = TriggerCategory.BALANCE_CHANGE

    def diff(self, spec: TriggerSpec, cursor: Cursor, snapshot: Any, now: datetime) -> DiffResult:
        if not isinstance(snapshot, Balance):
            raise MalformedSnapshotError("Balance snapshot is missing")
        previous = cursor.last_equity
        current = snapshot.total_equity
        next_cursor = replace(cursor, last_equity=current)
        # Exact match, no epsilon.
        if previous is None or previous == current:
            return DiffResult(events=(), cursor=next_cursor)
        payload = {
            **snapshot.raw,
            "previous_equity": previous,
            "equity_change": current - previous,
        }
        return DiffResult(events=(self._event(payload),), cursor=next_cursor)


# ---------------------------------------------------------------------------
# Market data
# ---------------------------------------------------------------------------

_PRICE_TESTS = {
    PriceCondition.ABOVE: rose_to,
    PriceCondition.BELOW: fell_to,
    PriceCondition.CROSS: crossed,
}


class PriceAlertStrategy(Strategy):
    category = TriggerCategory.PRICE_ALERT

    def diff(self, spec: TriggerSpec, cursor: Cursor, snapshot: Any, now: datetime) -> DiffResult:
        if snapshot is None:
            # No quote this poll: a fetch gap, not a state change.
            return DiffResult(events=(), cursor=cursor)
        if not isinstance(snapshot, Quote):
            raise MalformedSnapshotError(f"Quote snapshot has type {type(snapshot).__name__}")
        previous = cursor.last_price
        current = snapshot.last_price
        target = float(spec.target_price)
        triggered = _PRICE_TESTS[spec.condition](previous, current, target)
        next_cursor = replace(cursor, last_price=current)
        if not triggered:
            return DiffResult(events=(), cursor=next_cursor)
        payload = {
            **snapshot.raw,
            "target_price": target,
            "condition": spec.condition.value,
            "triggered_at": _iso(now),
        }
        return DiffResult(events=(self._event(payload),), cursor=next_cursor)


class MarketEdgeStrategy(Strategy):
    """Single-edge detector on the market clock state."""

    def __init__(self, category: TriggerCategory, event_name: str, from_open: bool, to_state: str) -> None:
        self.category = category
        self.event_name = event_name
        self.from_open = from_open
        self.to_state = to_state

    def fires(self, previous: str | None, current: str) -> bool:
        if previous is None or current != self.to_state:
            return False
        was_open = previous == MarketState.OPEN.value
        return was_open if self.from_open else not was_open

    def diff(self, spec: TriggerSpec, cursor: Cursor, snapshot: Any, now: datetime) -> DiffResult:
        if not isinstance(snapshot, Clock):
            raise MalformedSnapshotError("Clock snapshot is missing")
        previous = cursor.last_market_state
        next_cursor = replace(cursor, last_market_state=snapshot.state)
        if not self.fires(previous, snapshot.state):
            return DiffResult(events=(), cursor=next_cursor)
        payload = {**snapshot.raw, "event": self.event_name, "triggered_at": _iso(now)}
        return DiffResult(events=(self._event(payload),), cursor=next_cursor)


STRATEGIES: dict[TriggerCategory, Strategy] = {
    TriggerCategory.NEW_ORDER: NewOrderStrategy(),
    TriggerCategory.ORDER_FILLED: TerminalStatusStrategy(TriggerCategory.ORDER_FILLED, OrderStatus.FILLED),
    TriggerCategory.ORDER_CANCELED: TerminalStatusStrategy(TriggerCategory.ORDER_CANCELED, OrderStatus.CANCELED),
    TriggerCategory.POSITION_CHANGE: PositionChangeStrategy(),
    TriggerCategory.BALANCE_CHANGE: BalanceChangeStrategy(),
    TriggerCategory.PRICE_ALERT: PriceAlertStrategy(),
    TriggerCategory.MARKET_OPEN: MarketEdgeStrategy(
        TriggerCategory.MARKET_OPEN, "market_open", from_open=False, to_state=MarketState.OPEN.value
    ),
    TriggerCategory.MARKET_CLOSE: MarketEdgeStrategy(
        TriggerCategory.MARKET_CLOSE, "market_close", from_open=True, to_state=MarketState.CLOSED.value
    ),
}
