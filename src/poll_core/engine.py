"""
Diff engine entry point: dispatch one evaluation to its category strategy.

Pure: (spec, previous cursor, snapshot, now) -> DiffResult. The previous
cursor is never mutated; the caller persists DiffResult.cursor as a unit.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from poll_core.contracts import DiffResult
from poll_core.cursor import Cursor
from poll_core.strategies import STRATEGIES, Strategy
from poll_core.triggers import TriggerSpec, resolve_scope


def strategy_for(spec: TriggerSpec) -> Strategy:
    return STRATEGIES[spec.category]


def evaluate(
    spec: TriggerSpec,
    cursor: Cursor | None,
    snapshot: Any,
    *,
    now: datetime,
) -> DiffResult:
    """Evaluate one snapshot against the previous cursor.

    Parameters
    ----------
    spec:
        Trigger configuration. Must already carry its scope (account id or
        symbol); a missing scope raises PreconditionError.
    cursor:
        Cursor from the previous poll, or None on the first poll.
    snapshot:
        Typed snapshot for the category: a sequence of Order or Position,
        a Balance, a Quote (or None when no quote came back), or a Clock.
    now:
        Emission timestamp for payloads that carry ``triggered_at``.

    Returns
    -------
    DiffResult
        Events in snapshot order (possibly none) and the next cursor.
    """
    spec = resolve_scope(spec)
    return strategy_for(spec).diff(spec, cursor or Cursor(), snapshot, now)
