"""
Config loader: YAML file -> frozen dataclass tree.

Tradier secrets resolved from environment variables (TRADIER_ACCESS_TOKEN,
TRADIER_ACCOUNT_ID). Config file holds only non-secret values; the
``triggers`` list is validated separately by config.triggers.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from config.triggers import load_trigger_specs
from poll_core.triggers import TriggerSpec


@dataclass(frozen=True)
class ApiConfig:
    environment: str = "sandbox"
    access_token: str = ""
    account_id: str = ""
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class PollConfig:
    interval_seconds: float = 60.0
    fetch_attempts: int = 3
    backoff_seconds: float = 1.0
    max_backoff_seconds: float = 30.0
    max_workers: int = 1


@dataclass(frozen=True)
class StateConfig:
    backend: str = "sqlite"  # "sqlite" | "memory"
    path: str = "data/cursors.db"


@dataclass(frozen=True)
class JournalConfig:
    path: str = "data/events.jsonl"
    echo_stdout: bool = False


@dataclass(frozen=True)
class AlertingConfig:
    structured_logs: bool = True
    webhook_url: str = ""


@dataclass(frozen=True)
class AppConfig:
    api: ApiConfig
    poll: PollConfig
    state: StateConfig
    journal: JournalConfig
    alerting: AlertingConfig = AlertingConfig()
    triggers: tuple[TriggerSpec, ...] = field(default_factory=tuple)


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{name}' must be a mapping, got {type(value).__name__}")
    return value


def load_config(path: str | Path = "config.yaml") -> AppConfig:
    """
    Load configuration from a YAML file.

    Secrets are resolved from environment variables:
      - TRADIER_ACCESS_TOKEN
      - TRADIER_ACCOUNT_ID  (default account for account-scoped triggers)
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must be a YAML mapping, got {type(raw).__name__}")

    api_raw = _section(raw, "api")
    api_cfg = ApiConfig(
        environment=str(api_raw.get("environment", "sandbox")),
        access_token=os.environ.get("TRADIER_ACCESS_TOKEN", ""),
        account_id=os.environ.get("TRADIER_ACCOUNT_ID", str(api_raw.get("account_id", ""))),
        timeout_seconds=float(api_raw.get("timeout_seconds", 10.0)),
    )

    poll_raw = _section(raw, "poll")
    poll_cfg = PollConfig(
        interval_seconds=float(poll_raw.get("interval_seconds", 60.0)),
        fetch_attempts=int(poll_raw.get("fetch_attempts", 3)),
        backoff_seconds=float(poll_raw.get("backoff_seconds", 1.0)),
        max_backoff_seconds=float(poll_raw.get("max_backoff_seconds", 30.0)),
        max_workers=int(poll_raw.get("max_workers", 1)),
    )
    if poll_cfg.fetch_attempts < 1:
        raise ValueError("poll.fetch_attempts must be at least 1")

    st_raw = _section(raw, "state")
    st_cfg = StateConfig(
        backend=str(st_raw.get("backend", "sqlite")),
        path=str(st_raw.get("path", "data/cursors.db")),
    )
    if st_cfg.backend not in ("sqlite", "memory"):
        raise ValueError(f"Unknown state backend '{st_cfg.backend}' (use 'sqlite' or 'memory')")

    j_raw = _section(raw, "journal")
    j_cfg = JournalConfig(
        path=str(j_raw.get("path", "data/events.jsonl")),
        echo_stdout=bool(j_raw.get("echo_stdout", False)),
    )

    a_raw = _section(raw, "alerting")
    a_cfg = AlertingConfig(
        structured_logs=bool(a_raw.get("structured_logs", True)),
        webhook_url=str(a_raw.get("webhook_url", "")),
    )

    return AppConfig(
        api=api_cfg,
        poll=poll_cfg,
        state=st_cfg,
        journal=j_cfg,
        alerting=a_cfg,
        triggers=load_trigger_specs(raw.get("triggers") or []),
    )
