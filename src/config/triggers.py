"""
Trigger definitions: raw config list -> TriggerSpec tuple, validated against JSON Schema.

Schema: docs/config/triggers.schema.json

Example (inside config.yaml):
    triggers:
      - name: fills
        category: order_filled
      - name: spy-100
        category: price_alert
        symbol: SPY
        condition: above
        target_price: 100
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import jsonschema

from poll_core.triggers import IdPolicy, PriceCondition, TriggerCategory, TriggerSpec, trigger_key

logger = logging.getLogger("triggers.config")


def _find_project_root() -> Path:
    """Walk up from this file looking for pyproject.toml; fall back to CWD."""
    candidate = Path(__file__).resolve().parent
    for _ in range(10):
        if (candidate / "pyproject.toml").exists():
            return candidate
        parent = candidate.parent
        if parent == candidate:
            break
        candidate = parent
    return Path.cwd()


DEFAULT_SCHEMA_PATH = _find_project_root() / "docs" / "config" / "triggers.schema.json"


class TriggerConfigError(Exception):
    """Raised when trigger definitions fail loading or validation."""


def _validate_schema(data: Any, schema_path: Path) -> None:
    if not schema_path.exists():
        raise TriggerConfigError(f"Schema file not found: {schema_path}")
    with open(schema_path) as f:
        schema = json.load(f)
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        where = "/".join(str(p) for p in exc.absolute_path) or "triggers"
        raise TriggerConfigError(f"Trigger config validation failed at {where}: {exc.message}") from exc


def _build_spec(raw: dict[str, Any]) -> TriggerSpec:
    category = TriggerCategory(raw["category"])
    condition = raw.get("condition")
    target = raw.get("target_price")
    return TriggerSpec(
        category=category,
        account_id=raw.get("account_id") or None,
        symbol=(raw.get("symbol") or "").upper() or None,
        condition=PriceCondition(condition) if condition else None,
        target_price=float(target) if target is not None else None,
        id_policy=IdPolicy(raw.get("id_policy", IdPolicy.REPLACE.value)),
        name=raw.get("name"),
    )


def load_trigger_specs(
    data: list[dict[str, Any]],
    schema_path: str | Path | None = None,
) -> tuple[TriggerSpec, ...]:
    """Validate and build trigger specs.

    Raises
    ------
    TriggerConfigError
        If the list fails schema validation, two triggers share a name, or
        two triggers would share a cursor key.
    """
    sch_path = Path(schema_path) if schema_path else DEFAULT_SCHEMA_PATH
    _validate_schema(data, sch_path)

    specs = tuple(_build_spec(item) for item in data)
    names = [s.name for s in specs if s.name]
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise TriggerConfigError(f"Duplicate trigger names: {', '.join(dupes)}")
    keys = [trigger_key(s) for s in specs]
    shared = sorted({k for k in keys if keys.count(k) > 1})
    if shared:
        raise TriggerConfigError(f"Triggers share a cursor key: {', '.join(shared)}")
    logger.debug("Loaded %d trigger definition(s)", len(specs))
    return specs
