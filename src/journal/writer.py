"""
Event journal: append-only JSON lines, one line per emitted trigger event.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from poller.driver import CycleResult


def _serialize(obj: Any) -> Any:
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {k: _serialize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [_serialize(x) for x in obj]
    return obj


class EventJournal:
    """Append-only journal. Each line carries the trigger, its key and the event's json payload."""

    def __init__(self, path: str | Path, *, echo_stdout: bool = False) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._echo = echo_stdout

    @property
    def path(self) -> Path:
        return self._path

    def _write(self, record: dict) -> None:
        line = json.dumps(_serialize(record)) + "\n"
        with open(self._path, "a") as f:
            f.write(line)
        if self._echo:
            print(line.rstrip())

    def record_cycle(self, cycle: CycleResult) -> int:
        """Write every event of *cycle*. Returns the number of lines written."""
        ts = datetime.now(timezone.utc).isoformat()
        for event in cycle.events:
            self._write(
                {
                    "ts_utc": ts,
                    "trigger": cycle.spec.label,
                    "key": cycle.key,
                    "category": event.category,
                    "json": dict(event.payload),
                }
            )
        return len(cycle.events)

    def read(self) -> list[dict]:
        """All journal records, oldest first. Empty if the journal does not exist yet."""
        if not self._path.exists():
            return []
        with open(self._path) as f:
            return [json.loads(line) for line in f if line.strip()]
