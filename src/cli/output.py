"""
Human-readable trigger output for the terminal.

Every CLI command uses these formatters. Journal receives the raw payloads.
"""

from __future__ import annotations

from typing import Any, Sequence

from poll_core.contracts import TriggerEvent
from poll_core.cursor import Cursor
from poll_core.triggers import TriggerSpec, trigger_key
from poller.driver import CycleResult


def _fmt_money(value: Any) -> str:
    try:
        return f"${float(value):,.2f}"
    except (TypeError, ValueError):
        return str(value)


def format_event(event: TriggerEvent) -> str:
    """One-line summary of an emitted event."""
    p = event.payload
    cat = event.category
    if cat in ("new_order", "order_filled", "order_canceled"):
        parts = [f"order {p.get('id')}", str(p.get("symbol", "")), str(p.get("side", "")),
                 str(p.get("quantity", "")), f"[{p.get('status', '')}]"]
        return "  ".join(x for x in parts if x)
    if cat == "position_change":
        positions = p.get("positions", [])
        symbols = ", ".join(str(x.get("symbol", "?")) for x in positions) or "(flat)"
        return f"{len(positions)} position(s): {symbols}"
    if cat == "balance_change":
        change = float(p.get("equity_change", 0.0))
        sign = "+" if change >= 0 else "-"
        return (f"equity {_fmt_money(p.get('previous_equity'))} -> {_fmt_money(p.get('total_equity'))} "
                f"({sign}{_fmt_money(abs(change))})")
    if cat == "price_alert":
        return (f"{p.get('symbol')} last {p.get('last')} {p.get('condition')} "
                f"{p.get('target_price')} at {p.get('triggered_at')}")
    if cat in ("market_open", "market_close"):
        return f"{p.get('event')} at {p.get('triggered_at')} ({p.get('description', p.get('state', ''))})"
    return str(dict(p))


def format_cycle_result(result: CycleResult) -> str:
    """Status line for one trigger, followed by one line per event."""
    label = result.spec.label
    if not result.ok:
        lines = [f"  [{result.status.value.upper()}] {label}: {result.error or 'skipped'}"]
    elif not result.events:
        return f"  [OK] {label}: no change"
    else:
        lines = [f"  [EVENT] {label}: {len(result.events)} event(s)"]
    lines.extend(f"      {format_event(e)}" for e in result.events)
    return "\n".join(lines)


def format_trigger_list(specs: Sequence[TriggerSpec], keys: Sequence[str | None]) -> str:
    if not specs:
        return "No triggers configured."
    lines = [f"{len(specs)} trigger(s):"]
    for spec, key in zip(specs, keys):
        lines.append(f"  {spec.name or '-':20s} {spec.category.value:16s} {key or '(unresolved: ' + trigger_key(spec) + ')'}")
    return "\n".join(lines)


def format_cursor(key: str, cursor: Cursor) -> str:
    """Show only the fields that have been observed."""
    lines = [f"--- Cursor: {key} ---"]
    if cursor.is_empty():
        lines.append("  (empty: no poll recorded yet)")
        return "\n".join(lines)
    if cursor.known_order_ids is not None:
        lines.append(f"  known_order_ids    : {len(cursor.known_order_ids)} id(s)")
    for status, ids in sorted(cursor.terminal_ids.items()):
        lines.append(f"  terminal[{status}]{' ' * max(0, 9 - len(status))}: {len(ids)} id(s)")
    if cursor.positions_fingerprint is not None:
        lines.append(f"  positions_fp       : {cursor.positions_fingerprint[:16]}...")
    if cursor.last_equity is not None:
        lines.append(f"  last_equity        : {_fmt_money(cursor.last_equity)}")
    if cursor.last_price is not None:
        lines.append(f"  last_price         : {cursor.last_price}")
    if cursor.last_market_state is not None:
        lines.append(f"  last_market_state  : {cursor.last_market_state}")
    return "\n".join(lines)
