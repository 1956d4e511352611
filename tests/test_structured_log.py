"""Tests for structured JSON event logger."""

import io
import json
from unittest.mock import patch

import pytest

from cli.structured_log import StructuredEventLogger


@pytest.fixture
def buf() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def logger(buf: io.StringIO) -> StructuredEventLogger:
    return StructuredEventLogger(enabled=True, stream=buf)


class TestEmit:
    """Basic event emission and format."""

    def test_cycle_start_json(self, logger: StructuredEventLogger, buf: io.StringIO) -> None:
        logger.cycle_start(cycle=1, triggers=4)
        record = json.loads(buf.getvalue().strip())
        assert record["event"] == "cycle_start"
        assert record["cycle"] == 1
        assert record["triggers"] == 4
        assert "ts" in record

    def test_events_emitted(self, logger: StructuredEventLogger, buf: io.StringIO) -> None:
        logger.events_emitted(
            trigger="fills",
            key="order_filled|account=VA0001|policy=replace",
            category="order_filled",
            events=[{"json": {"id": 7}}, {"json": {"id": 8}}],
        )
        record = json.loads(buf.getvalue().strip())
        assert record["event"] == "events_emitted"
        assert record["trigger"] == "fills"
        assert record["key"] == "order_filled|account=VA0001|policy=replace"
        assert record["count"] == 2
        assert record["events"][1]["json"]["id"] == 8

    def test_trigger_failed(self, logger: StructuredEventLogger, buf: io.StringIO) -> None:
        logger.trigger_failed(trigger="equity", status="fetch_failed", reason="HTTP 503")
        record = json.loads(buf.getvalue().strip())
        assert record["event"] == "trigger_failed"
        assert record["status"] == "fetch_failed"
        assert record["reason"] == "HTTP 503"

    def test_cycle_complete(self, logger: StructuredEventLogger, buf: io.StringIO) -> None:
        logger.cycle_complete(cycle=3, events=2, failures=1)
        record = json.loads(buf.getvalue().strip())
        assert record["event"] == "cycle_complete"
        assert record["events"] == 2
        assert record["failures"] == 1

    def test_error_event(self, logger: StructuredEventLogger, buf: io.StringIO) -> None:
        logger.error(message="DB locked", detail="OperationalError")
        record = json.loads(buf.getvalue().strip())
        assert record["event"] == "error"
        assert record["message"] == "DB locked"
        assert record["detail"] == "OperationalError"

    def test_shutdown(self, logger: StructuredEventLogger, buf: io.StringIO) -> None:
        logger.shutdown(cycles=42)
        record = json.loads(buf.getvalue().strip())
        assert record["event"] == "shutdown"
        assert record["cycles"] == 42


class TestDisabled:
    """When structured_logs=False, nothing is written to stream."""

    def test_no_output_when_disabled(self, buf: io.StringIO) -> None:
        logger = StructuredEventLogger(enabled=False, stream=buf)
        logger.cycle_start(cycle=1, triggers=1)
        logger.trigger_failed(trigger="x", status="malformed", reason="bad")
        logger.shutdown(cycles=1)
        assert buf.getvalue() == ""


class TestMultipleEvents:
    """Multiple events produce multiple JSON lines."""

    def test_newline_delimited(self, logger: StructuredEventLogger, buf: io.StringIO) -> None:
        logger.cycle_start(cycle=1, triggers=0)
        logger.cycle_complete(cycle=1, events=0, failures=0)
        lines = buf.getvalue().strip().split("\n")
        assert len(lines) == 2
        assert json.loads(lines[0])["event"] == "cycle_start"
        assert json.loads(lines[1])["event"] == "cycle_complete"


class TestWebhook:
    """Alert-level records are POSTed; routine ones are not."""

    def test_alert_events_posted(self, buf: io.StringIO) -> None:
        logger = StructuredEventLogger(stream=buf, webhook_url="https://hooks.example.com/x")
        with patch("cli.structured_log.urllib.request.urlopen") as urlopen:
            logger.cycle_start(cycle=1, triggers=1)
            logger.trigger_failed(trigger="x", status="fetch_failed", reason="timeout")
        assert urlopen.call_count == 1
        request = urlopen.call_args[0][0]
        assert request.full_url == "https://hooks.example.com/x"
        assert json.loads(request.data)["event"] == "trigger_failed"

    def test_webhook_failure_is_logged_not_raised(self, buf: io.StringIO) -> None:
        logger = StructuredEventLogger(stream=buf, webhook_url="https://hooks.example.com/x")
        with patch("cli.structured_log.urllib.request.urlopen", side_effect=OSError("refused")):
            record = logger.error(message="boom")
        assert record["event"] == "error"


class TestReturnValue:
    """Each method returns the record dict for testability."""

    def test_returns_record(self, logger: StructuredEventLogger) -> None:
        record = logger.cycle_start(cycle=5, triggers=3)
        assert isinstance(record, dict)
        assert record["event"] == "cycle_start"
        assert record["triggers"] == 3
