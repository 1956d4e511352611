"""Pytest fixtures: snapshot builders and trigger specs for deterministic tests."""

from datetime import datetime, timezone

import pytest

from poll_core.contracts import Balance, Clock, Order, Position, Quote
from poll_core.triggers import PriceCondition, TriggerCategory, TriggerSpec

NOW = datetime(2026, 2, 17, 14, 30, 0, tzinfo=timezone.utc)


def order(order_id, status: str = "open", symbol: str = "SPY", **extra) -> Order:
    raw = {"id": order_id, "status": status, "symbol": symbol, "side": "buy", "quantity": 10.0, **extra}
    return Order.from_record(raw)


def position(symbol: str, quantity: float, cost_basis: float) -> Position:
    return Position.from_record({"symbol": symbol, "quantity": quantity, "cost_basis": cost_basis, "id": 1})


def balance(total_equity: float, **extra) -> Balance:
    return Balance.from_record({"total_equity": total_equity, "account_number": "VA0001", **extra})


def quote(last: float, symbol: str = "SPY") -> Quote:
    return Quote.from_record({"symbol": symbol, "last": last, "bid": last - 0.01, "ask": last + 0.01})


def clock(state: str) -> Clock:
    return Clock.from_record({"state": state, "description": f"Market is {state}", "date": "2026-02-17"})


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def account_spec():
    def make(category: TriggerCategory, **kwargs) -> TriggerSpec:
        return TriggerSpec(category=category, account_id="VA0001", **kwargs)

    return make


@pytest.fixture
def price_spec():
    def make(condition: str, target: float = 100.0, symbol: str = "SPY") -> TriggerSpec:
        return TriggerSpec(
            category=TriggerCategory.PRICE_ALERT,
            symbol=symbol,
            condition=PriceCondition(condition),
            target_price=target,
        )

    return make
