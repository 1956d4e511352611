"""Tests for config loader: YAML parsing, env var resolution, trigger validation."""

import os
import tempfile
from pathlib import Path

import pytest

from config import load_config
from config.triggers import TriggerConfigError, load_trigger_specs
from poll_core.triggers import IdPolicy, PriceCondition, TriggerCategory


def _write_config(content: str) -> str:
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        f.write(content)
        return f.name


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("TRADIER_ACCESS_TOKEN", raising=False)
    monkeypatch.delenv("TRADIER_ACCOUNT_ID", raising=False)


def test_load_config_basic() -> None:
    path = _write_config(
        """
api:
  environment: production
  account_id: VA0001
  timeout_seconds: 5
poll:
  interval_seconds: 30
  fetch_attempts: 4
  max_workers: 2
state:
  backend: memory
journal:
  path: test_events.jsonl
triggers:
  - name: fills
    category: order_filled
  - name: spy-500
    category: price_alert
    symbol: spy
    condition: cross
    target_price: 500
"""
    )
    try:
        cfg = load_config(path)
        assert cfg.api.environment == "production"
        assert cfg.api.account_id == "VA0001"
        assert cfg.api.timeout_seconds == 5.0
        assert cfg.poll.interval_seconds == 30.0
        assert cfg.poll.fetch_attempts == 4
        assert cfg.poll.max_workers == 2
        assert cfg.state.backend == "memory"
        assert cfg.journal.path == "test_events.jsonl"
        assert [t.name for t in cfg.triggers] == ["fills", "spy-500"]
        price = cfg.triggers[1]
        assert price.category is TriggerCategory.PRICE_ALERT
        assert price.symbol == "SPY"
        assert price.condition is PriceCondition.CROSS
        assert price.target_price == 500.0
    finally:
        os.unlink(path)


def test_load_config_env_vars(monkeypatch) -> None:
    path = _write_config("api:\n  account_id: FROM_YAML\n")
    try:
        monkeypatch.setenv("TRADIER_ACCESS_TOKEN", "token_123")
        monkeypatch.setenv("TRADIER_ACCOUNT_ID", "FROM_ENV")
        cfg = load_config(path)
        assert cfg.api.access_token == "token_123"
        assert cfg.api.account_id == "FROM_ENV"
    finally:
        os.unlink(path)


def test_load_config_defaults() -> None:
    path = _write_config("")
    try:
        cfg = load_config(path)
        assert cfg.api.environment == "sandbox"
        assert cfg.api.access_token == ""
        assert cfg.poll.interval_seconds == 60.0
        assert cfg.poll.fetch_attempts == 3
        assert cfg.state.backend == "sqlite"
        assert cfg.state.path == "data/cursors.db"
        assert cfg.journal.echo_stdout is False
        assert cfg.alerting.structured_logs is True
        assert cfg.triggers == ()
    finally:
        os.unlink(path)


def test_load_config_missing_file() -> None:
    with pytest.raises(FileNotFoundError):
        load_config("/nonexistent/path.yaml")


@pytest.mark.parametrize(
    "content, message",
    [
        ("- just\n- a list\n", "YAML mapping"),
        ("poll: 5\n", "section 'poll'"),
        ("poll:\n  fetch_attempts: 0\n", "fetch_attempts"),
        ("state:\n  backend: redis\n", "Unknown state backend"),
    ],
)
def test_load_config_invalid(content: str, message: str) -> None:
    path = _write_config(content)
    try:
        with pytest.raises(ValueError, match=message):
            load_config(path)
    finally:
        os.unlink(path)


def test_trigger_defaults() -> None:
    (spec,) = load_trigger_specs([{"category": "new_order", "account_id": "VA0001"}])
    assert spec.id_policy is IdPolicy.REPLACE
    assert spec.account_id == "VA0001"
    assert spec.name is None


def test_trigger_accumulate_policy() -> None:
    (spec,) = load_trigger_specs([{"category": "order_canceled", "id_policy": "accumulate"}])
    assert spec.id_policy is IdPolicy.ACCUMULATE


def test_trigger_unknown_category_rejected() -> None:
    with pytest.raises(TriggerConfigError, match="validation failed at 0"):
        load_trigger_specs([{"category": "dividend"}])


def test_trigger_unknown_field_rejected() -> None:
    with pytest.raises(TriggerConfigError):
        load_trigger_specs([{"category": "market_open", "symbol_typo": "SPY"}])


def test_price_alert_requires_threshold() -> None:
    with pytest.raises(TriggerConfigError, match="target_price"):
        load_trigger_specs([{"category": "price_alert", "symbol": "SPY", "condition": "above"}])


def test_duplicate_names_rejected() -> None:
    data = [
        {"name": "bell", "category": "market_open"},
        {"name": "bell", "category": "market_close"},
    ]
    with pytest.raises(TriggerConfigError, match="Duplicate trigger names: bell"):
        load_trigger_specs(data)


def test_missing_schema_file() -> None:
    with pytest.raises(TriggerConfigError, match="Schema file not found"):
        load_trigger_specs([], schema_path=Path("/nonexistent/schema.json"))


def test_same_configuration_under_two_names_rejected() -> None:
    data = [
        {"name": "fills-a", "category": "order_filled", "account_id": "VA0001"},
        {"name": "fills-b", "category": "order_filled", "account_id": "VA0001"},
    ]
    with pytest.raises(TriggerConfigError, match="share a cursor key: order_filled"):
        load_trigger_specs(data)


def test_policies_on_same_account_are_distinct_triggers() -> None:
    data = [
        {"name": "orders-replace", "category": "new_order", "account_id": "VA0001"},
        {"name": "orders-accumulate", "category": "new_order", "account_id": "VA0001", "id_policy": "accumulate"},
    ]
    assert len(load_trigger_specs(data)) == 2
