"""
Configuration loaders.

App config:      reads config.yaml, resolves env vars for secrets.
Trigger config:  the ``triggers`` list, validated against JSON Schema.
"""

from config.loader import (
    AlertingConfig,
    ApiConfig,
    AppConfig,
    JournalConfig,
    PollConfig,
    StateConfig,
    load_config,
)
from config.triggers import TriggerConfigError, load_trigger_specs

__all__ = [
    # App config (YAML)
    "AlertingConfig",
    "ApiConfig",
    "AppConfig",
    "JournalConfig",
    "PollConfig",
    "StateConfig",
    "load_config",
    # Trigger config (schema)
    "TriggerConfigError",
    "load_trigger_specs",
]
