"""
Trigger configuration: category, scope, parameters, and the cursor key.

A TriggerSpec fully identifies one configured trigger. Its key encodes the
category, the scope and every parameter that affects edge detection, so two
differently configured triggers never share a cursor.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from poll_core.contracts import SnapshotKind
from poll_core.errors import PreconditionError


class TriggerCategory(str, Enum):
    NEW_ORDER = "new_order"
    ORDER_FILLED = "order_filled"
    ORDER_CANCELED = "order_canceled"
    POSITION_CHANGE = "position_change"
    BALANCE_CHANGE = "balance_change"
    PRICE_ALERT = "price_alert"
    MARKET_OPEN = "market_open"
    MARKET_CLOSE = "market_close"

    @property
    def snapshot_kind(self) -> SnapshotKind:
        return _SNAPSHOT_KINDS[self]


_SNAPSHOT_KINDS = {
    TriggerCategory.NEW_ORDER: SnapshotKind.ORDERS,
    TriggerCategory.ORDER_FILLED: SnapshotKind.ORDERS,
    TriggerCategory.ORDER_CANCELED: SnapshotKind.ORDERS,
    TriggerCategory.POSITION_CHANGE: SnapshotKind.POSITIONS,
    TriggerCategory.BALANCE_CHANGE: SnapshotKind.BALANCES,
    TriggerCategory.PRICE_ALERT: SnapshotKind.QUOTE,
    TriggerCategory.MARKET_OPEN: SnapshotKind.CLOCK,
    TriggerCategory.MARKET_CLOSE: SnapshotKind.CLOCK,
}


class PriceCondition(str, Enum):
    ABOVE = "above"
    BELOW = "below"
    CROSS = "cross"


class IdPolicy(str, Enum):
    """How order-ID sets are carried forward.

    REPLACE: next set is exactly the current snapshot's IDs, so an ID that
    vanishes and later reappears is reported again.
    ACCUMULATE: next set is the union with everything seen before.
    """

    REPLACE = "replace"
    ACCUMULATE = "accumulate"


@dataclass(frozen=True)
class TriggerSpec:
    category: TriggerCategory
    account_id: str | None = None
    symbol: str | None = None
    condition: PriceCondition | None = None
    target_price: float | None = None
    id_policy: IdPolicy = IdPolicy.REPLACE
    name: str | None = None

    @property
    def scope(self) -> str | None:
        """Fetch scope: account id, symbol, or None for the market clock."""
        kind = self.category.snapshot_kind
        if kind.account_scoped:
            return self.account_id
        if kind is SnapshotKind.QUOTE:
            return self.symbol
        return None

    @property
    def label(self) -> str:
        return self.name or trigger_key(self)


def resolve_scope(spec: TriggerSpec, default_account_id: str | None = None) -> TriggerSpec:
    """Fill in the default account and check required parameters.

    Raises PreconditionError before anything is fetched.
    """
    kind = spec.category.snapshot_kind
    if kind.account_scoped:
        account_id = (spec.account_id or "").strip() or (default_account_id or "").strip()
        if not account_id:
            raise PreconditionError("Account ID is required")
        return replace(spec, account_id=account_id)
    if spec.category is TriggerCategory.PRICE_ALERT:
        symbol = (spec.symbol or "").strip().upper()
        if not symbol:
            raise PreconditionError("Symbol is required for price alerts")
        if spec.condition is None:
            raise PreconditionError("Condition is required for price alerts")
        if spec.target_price is None:
            raise PreconditionError("Target price is required for price alerts")
        return replace(spec, symbol=symbol)
    return spec


def trigger_key(spec: TriggerSpec) -> str:
    """Stable cursor key: ``category|scope|params``.

    Order categories also encode the ID policy.
    """
    parts = [spec.category.value]
    kind = spec.category.snapshot_kind
    if kind.account_scoped:
        parts.append(f"account={spec.account_id or ''}")
        if kind is SnapshotKind.ORDERS:
            parts.append(f"policy={spec.id_policy.value}")
    elif spec.category is TriggerCategory.PRICE_ALERT:
        condition = spec.condition.value if spec.condition else ""
        target = "" if spec.target_price is None else repr(float(spec.target_price))
        parts.extend([f"symbol={(spec.symbol or '').upper()}", f"condition={condition}", f"target={target}"])
    else:
        parts.append("market")
    return "|".join(parts)
