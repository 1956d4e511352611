"""
Poll driver: fetch snapshot -> load cursor -> diff -> save cursor -> forward events.

Owns everything the pure engine does not: scope resolution, fetch retry
with exponential backoff (tenacity), atomic cursor writes, and the
one-cycle-at-a-time guarantee per trigger key. A cursor is written only
after a successful evaluation; every failure leaves it untouched.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Iterable

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from data.cursor_store import CursorStore
from data.fetcher import SnapshotFetcher
from poll_core.contracts import TriggerEvent
from poll_core.engine import evaluate
from poll_core.errors import (
    CursorVersionError,
    FetchError,
    MalformedSnapshotError,
    PreconditionError,
)
from poll_core.triggers import TriggerSpec, resolve_scope, trigger_key

logger = logging.getLogger("triggers.driver")


class CycleStatus(str, Enum):
    OK = "ok"
    BUSY = "busy"
    PRECONDITION_FAILED = "precondition_failed"
    FETCH_FAILED = "fetch_failed"
    MALFORMED = "malformed"
    CURSOR_INVALID = "cursor_invalid"
    SINK_FAILED = "sink_failed"


@dataclass(frozen=True)
class CycleResult:
    """Outcome of one poll cycle for one trigger."""

    spec: TriggerSpec
    key: str | None
    status: CycleStatus
    events: tuple[TriggerEvent, ...] = field(default_factory=tuple)
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status is CycleStatus.OK

    def output(self) -> list[dict[str, Any]] | None:
        """``None`` means no event; otherwise one ``{"json": ...}`` item per event."""
        if not self.events:
            return None
        return [e.to_item() for e in self.events]


EventCallback = Callable[[CycleResult], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PollDriver:
    """
    Run poll cycles for configured triggers.

    Parameters
    ----------
    fetcher:
        SnapshotFetcher used for every trigger.
    store:
        CursorStore; cursors are keyed by ``trigger_key`` of the resolved spec.
    default_account_id:
        Used by account-scoped triggers that do not name an account.
    fetch_attempts, backoff_seconds, max_backoff_seconds:
        Retry policy for FetchError (exponential backoff between attempts).
    on_events:
        Called with the CycleResult after the cursor is saved, only when
        at least one event was emitted. If it raises, the cycle reports
        SINK_FAILED and polling continues with the next trigger.
    """

    def __init__(
        self,
        fetcher: SnapshotFetcher,
        store: CursorStore,
        *,
        default_account_id: str | None = None,
        fetch_attempts: int = 3,
        backoff_seconds: float = 1.0,
        max_backoff_seconds: float = 30.0,
        on_events: EventCallback | None = None,
        now: Callable[[], datetime] = _utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._default_account_id = default_account_id
        self._fetch_attempts = max(1, fetch_attempts)
        self._backoff_seconds = backoff_seconds
        self._max_backoff_seconds = max_backoff_seconds
        self._on_events = on_events
        self._now = now
        self._sleep = sleep
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(key, threading.Lock())

    def _fetch(self, spec: TriggerSpec) -> Any:
        retrying = Retrying(
            stop=stop_after_attempt(self._fetch_attempts),
            wait=wait_exponential(multiplier=self._backoff_seconds, max=self._max_backoff_seconds),
            retry=retry_if_exception_type(FetchError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )
        return retrying(self._fetcher.fetch, spec.category.snapshot_kind, spec.scope)

    def run_cycle(self, spec: TriggerSpec) -> CycleResult:
        """Run one cycle. Raises PreconditionError, FetchError or MalformedSnapshotError.

        If another cycle for the same key is in flight, returns a BUSY
        result without fetching.
        """
        resolved = resolve_scope(spec, self._default_account_id)
        key = trigger_key(resolved)
        lock = self._lock_for(key)
        if not lock.acquire(blocking=False):
            logger.info("Skipping %s: previous cycle still running", key)
            return CycleResult(spec=resolved, key=key, status=CycleStatus.BUSY)
        try:
            snapshot = self._fetch(resolved)
            previous = self._store.load(key)
            result = evaluate(resolved, previous, snapshot, now=self._now())
            self._store.save(key, result.cursor)
        finally:
            lock.release()

        cycle = CycleResult(spec=resolved, key=key, status=CycleStatus.OK, events=tuple(result.events))
        if cycle.events:
            logger.info("%s emitted %d event(s)", key, len(cycle.events))
            if self._on_events is not None:
                try:
                    self._on_events(cycle)
                except Exception as exc:
                    # Cursor is already saved; these events will not be re-emitted.
                    logger.exception("Event sink failed for %s", key)
                    return replace(cycle, status=CycleStatus.SINK_FAILED, error=f"event sink failed: {exc}")
        return cycle

    def poll(self, spec: TriggerSpec) -> CycleResult:
        """Like run_cycle, but failures become a CycleResult status instead of raising."""
        try:
            return self.run_cycle(spec)
        except PreconditionError as exc:
            logger.error("Trigger %s misconfigured: %s", spec.label, exc)
            return CycleResult(spec=spec, key=None, status=CycleStatus.PRECONDITION_FAILED, error=str(exc))
        except FetchError as exc:
            logger.warning("Fetch failed for %s after %d attempt(s): %s", spec.label, self._fetch_attempts, exc)
            return CycleResult(spec=spec, key=None, status=CycleStatus.FETCH_FAILED, error=str(exc))
        except MalformedSnapshotError as exc:
            logger.warning("Malformed snapshot for %s: %s", spec.label, exc)
            return CycleResult(spec=spec, key=None, status=CycleStatus.MALFORMED, error=str(exc))
        except CursorVersionError as exc:
            logger.error("Stored cursor for %s is unreadable: %s", spec.label, exc)
            return CycleResult(spec=spec, key=None, status=CycleStatus.CURSOR_INVALID, error=str(exc))

    def poll_all(self, specs: Iterable[TriggerSpec], *, max_workers: int = 1) -> list[CycleResult]:
        """Poll every trigger once. Results keep the order of *specs*."""
        specs = list(specs)
        if max_workers <= 1 or len(specs) <= 1:
            return [self.poll(s) for s in specs]
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            return list(pool.map(self.poll, specs))
