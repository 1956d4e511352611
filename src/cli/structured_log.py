"""
Structured JSON event logger for container observability.

Emits one JSON object per line to stderr. Records are designed to be
parsed by log aggregators (Grafana Loki, CloudWatch, ELK).

Optional webhook: when configured, alert-level records (events_emitted,
trigger_failed, error) are POSTed to the URL.
"""

from __future__ import annotations

import json
import logging
import sys
import urllib.request
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger("triggers.events")


class StructuredEventLogger:
    """Emit structured JSON records to stderr and optional webhook."""

    def __init__(
        self,
        *,
        enabled: bool = True,
        webhook_url: str = "",
        stream: Any = None,
    ) -> None:
        self._enabled = enabled
        self._webhook_url = webhook_url.strip()
        self._stream = stream or sys.stderr
        self._ALERT_EVENTS = {
            "events_emitted",
            "trigger_failed",
            "error",
        }

    def _emit(self, event_type: str, **fields: Any) -> dict:
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "event": event_type,
            **fields,
        }
        if self._enabled:
            self._stream.write(json.dumps(record, default=str) + "\n")
            self._stream.flush()

        if self._webhook_url and event_type in self._ALERT_EVENTS:
            self._post_webhook(record)

        return record

    def _post_webhook(self, record: dict) -> None:
        try:
            data = json.dumps(record, default=str).encode("utf-8")
            req = urllib.request.Request(
                self._webhook_url,
                data=data,
                headers={"Content-Type": "application/json"},
                method="POST",
            )
            urllib.request.urlopen(req, timeout=5)
        except Exception as exc:
            logger.warning("Webhook POST failed: %s", exc)

    def cycle_start(self, cycle: int, triggers: int) -> dict:
        return self._emit("cycle_start", cycle=cycle, triggers=triggers)

    def events_emitted(self, trigger: str, key: str, category: str, events: list[dict]) -> dict:
        return self._emit(
            "events_emitted",
            trigger=trigger,
            key=key,
            category=category,
            count=len(events),
            events=events,
        )

    def trigger_failed(self, trigger: str, status: str, reason: str) -> dict:
        return self._emit("trigger_failed", trigger=trigger, status=status, reason=reason)

    def cycle_complete(self, cycle: int, events: int, failures: int) -> dict:
        return self._emit("cycle_complete", cycle=cycle, events=events, failures=failures)

    def error(self, message: str, detail: str = "") -> dict:
        return self._emit("error", message=message, detail=detail)

    def shutdown(self, cycles: int) -> dict:
        return self._emit("shutdown", cycles=cycles)
