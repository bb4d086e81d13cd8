"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads YAML files, merges overrides onto the defaults and parses the
result into the frozen dataclasses of ``inventory_config.schema``.
Runtime callers go through ``inventory_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown sections and unknown keys raise ``ValueError``; a typo in a
  deployment file never silently falls back to a default.
* Values are type-checked per field; ``bool`` is never accepted where an
  ``int`` is expected.
* ``compute_checksum`` is deterministic for equal mappings.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong type, unknown key or out-of-range value  -> ``ValueError``.
"""

from __future__ import annotations

import copy
import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from inventory_config.schema import (
    DatabaseSettings,
    InventoryConfig,
    LoggingSettings,
    NumberingSettings,
    WorkflowSettings,
)

_SECTIONS = {
    "database": DatabaseSettings,
    "numbering": NumberingSettings,
    "workflow": WorkflowSettings,
    "logging": LoggingSettings,
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge ``override`` onto a copy of ``base``."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def _check_type(section: str, key: str, value: Any, expected: type) -> Any:
    if expected is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if expected is not bool and isinstance(value, bool):
        raise ValueError(f"{section}.{key}: expected {expected.__name__}, got bool")
    if not isinstance(value, expected):
        raise ValueError(
            f"{section}.{key}: expected {expected.__name__}, got {type(value).__name__}"
        )
    return value


_FIELD_TYPES = {"str": str, "bool": bool, "int": int, "float": float}


def parse_section(name: str, data: dict[str, Any] | None) -> Any:
    """Parse one section mapping into its settings dataclass."""
    cls = _SECTIONS[name]
    data = data or {}
    if not isinstance(data, dict):
        raise ValueError(f"Section '{name}' must be a mapping")

    known = {f.name: f for f in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ValueError(f"Unknown key(s) in '{name}': {', '.join(unknown)}")

    values = {
        key: _check_type(name, key, value, _FIELD_TYPES[known[key].type])
        for key, value in data.items()
    }
    return cls(**values)


def _validate(config: InventoryConfig) -> None:
    if config.numbering.width < 1:
        raise ValueError("numbering.width must be at least 1")
    if config.workflow.sequence_retry_attempts < 1:
        raise ValueError("workflow.sequence_retry_attempts must be at least 1")
    if config.logging.level.upper() not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {', '.join(_LOG_LEVELS)}")
    for prefix in (config.numbering.supply_prefix, config.numbering.distribution_prefix):
        if not prefix or "-" in prefix:
            raise ValueError(f"Invalid numbering prefix {prefix!r}")


def parse_config(data: dict[str, Any], source: str | None = None) -> InventoryConfig:
    """
    Parse a full configuration mapping.

    Postconditions:
        - Returns a validated, frozen ``InventoryConfig`` whose checksum is
          computed over ``data``.
    """
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"Unknown configuration section(s): {', '.join(unknown)}")

    config = InventoryConfig(
        database=parse_section("database", data.get("database")),
        numbering=parse_section("numbering", data.get("numbering")),
        workflow=parse_section("workflow", data.get("workflow")),
        logging=parse_section("logging", data.get("logging")),
        checksum=compute_checksum(data),
        source=source,
    )
    _validate(config)
    return config


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
