"""
poll-core: pure snapshot-diffing engine for brokerage triggers.

No I/O, no network, no side effects. Consumes a trigger spec, the previous
cursor and the current snapshot; produces events and the next cursor.
Fully deterministic and unit-testable.
"""

from poll_core.contracts import (
    Balance,
    Clock,
    DiffResult,
    Order,
    OrderStatus,
    Position,
    Quote,
    SnapshotKind,
    TriggerEvent,
)
from poll_core.cursor import Cursor, cursor_from_dict, cursor_to_dict
from poll_core.engine import evaluate
from poll_core.errors import (
    CursorVersionError,
    FetchError,
    MalformedSnapshotError,
    PreconditionError,
    TriggerError,
)
from poll_core.triggers import (
    IdPolicy,
    PriceCondition,
    TriggerCategory,
    TriggerSpec,
    resolve_scope,
    trigger_key,
)

__all__ = [
    "Balance",
    "Clock",
    "Cursor",
    "CursorVersionError",
    "DiffResult",
    "evaluate",
    "FetchError",
    "IdPolicy",
    "MalformedSnapshotError",
    "Order",
    "OrderStatus",
    "Position",
    "PreconditionError",
    "PriceCondition",
    "Quote",
    "SnapshotKind",
    "TriggerCategory",
    "TriggerError",
    "TriggerEvent",
    "TriggerSpec",
    "cursor_from_dict",
    "cursor_to_dict",
    "resolve_scope",
    "trigger_key",
]
