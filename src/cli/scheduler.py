"""
Fixed-cadence poll loop: run every configured trigger once per interval.

The interval is measured from the start of one cycle to the start of the
next; a cycle that overruns the interval is followed immediately by the
next one. Ctrl+C stops the loop between cycles.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from datetime import datetime
from typing import Callable, Sequence

import click

from cli.output import format_cycle_result
from cli.structured_log import StructuredEventLogger
from journal import EventJournal
from poll_core.triggers import TriggerSpec
from poller.driver import CycleResult, PollDriver

logger = logging.getLogger("triggers.scheduler")


def make_event_sink(
    journal: EventJournal | None,
    slog: StructuredEventLogger | None,
) -> Callable[[CycleResult], None]:
    """Build the driver callback that forwards emitted events downstream."""

    def sink(cycle: CycleResult) -> None:
        if journal is not None:
            journal.record_cycle(cycle)
        if slog is not None:
            slog.events_emitted(
                trigger=cycle.spec.label,
                key=cycle.key or "",
                category=cycle.spec.category.value,
                events=cycle.output() or [],
            )

    return sink


def run_cycle_once(
    driver: PollDriver,
    specs: Sequence[TriggerSpec],
    *,
    cycle: int = 1,
    max_workers: int = 1,
    slog: StructuredEventLogger | None = None,
) -> list[CycleResult]:
    """Poll all triggers once, echo a line per trigger, log failures."""
    if slog is not None:
        slog.cycle_start(cycle=cycle, triggers=len(specs))
    results = driver.poll_all(specs, max_workers=max_workers)
    failures = 0
    for result in results:
        click.echo(format_cycle_result(result))
        if not result.ok:
            failures += 1
            if slog is not None:
                slog.trigger_failed(
                    trigger=result.spec.label, status=result.status.value, reason=result.error
                )
    if slog is not None:
        slog.cycle_complete(
            cycle=cycle, events=sum(len(r.events) for r in results), failures=failures
        )
    return results


def run_poll_loop(
    driver: PollDriver,
    specs: Sequence[TriggerSpec],
    *,
    interval: float,
    max_workers: int = 1,
    slog: StructuredEventLogger | None = None,
    max_cycles: int | None = None,
    sleep: Callable[[float], None] = time.sleep,
    monotonic: Callable[[], float] = time.monotonic,
) -> int:
    """
    Main loop: poll, sleep out the rest of the interval, repeat.
    Returns the number of completed cycles.
    """
    cycles = 0
    click.echo(f"Polling {len(specs)} trigger(s) every {interval:g}s  |  Ctrl+C to stop\n")

    try:
        while max_cycles is None or cycles < max_cycles:
            started = monotonic()
            click.echo(f"[{datetime.now():%H:%M:%S}] Cycle {cycles + 1}")
            try:
                run_cycle_once(
                    driver, specs, cycle=cycles + 1, max_workers=max_workers, slog=slog
                )
            except (OSError, sqlite3.Error) as exc:
                logger.exception("Cycle %d failed", cycles + 1)
                if slog is not None:
                    slog.error(message="cycle failed", detail=str(exc))
            cycles += 1

            if max_cycles is not None and cycles >= max_cycles:
                break
            wait = max(0.0, interval - (monotonic() - started))
            if wait > 0:
                sleep(wait)

    except KeyboardInterrupt:
        click.echo(f"\n\nShutting down after {cycles} cycle(s). Goodbye.")

    if slog is not None:
        slog.shutdown(cycles=cycles)
    return cycles
