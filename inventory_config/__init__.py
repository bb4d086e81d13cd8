"""
inventory_config -- single public entrypoint for workflow configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Other components receive the returned
    ``InventoryConfig`` and never read configuration files themselves.

Architecture position:
    Configuration -- sits beside ``inventory_kernel``.  The kernel
    consumes the frozen types from ``inventory_config.schema`` but never
    calls the loader.

Failure modes:
    - ``FileNotFoundError`` -- configuration file missing.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``ValueError`` -- unknown keys, wrong types or invalid values.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``INVENTORY_CONFIG_TRACE`` log entry carrying the checksum, so a
    deployment's behavior can be tied back to the exact settings in use.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from inventory_config.loader import load_yaml_file, merge, parse_config
from inventory_config.schema import (
    DatabaseSettings,
    InventoryConfig,
    LoggingSettings,
    NumberingSettings,
    WorkflowSettings,
)

__all__ = [
    "DatabaseSettings",
    "InventoryConfig",
    "LoggingSettings",
    "NumberingSettings",
    "WorkflowSettings",
    "get_active_config",
]

_logger = logging.getLogger("inventory_kernel.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(
    config_path: Path | str | None = None,
    overrides: dict[str, Any] | None = None,
) -> InventoryConfig:
    """The ONLY public configuration entrypoint.

    Loads ``defaults.yaml``, merges the optional deployment file and then
    ``overrides`` on top, and parses the result.

    Args:
        config_path: Optional YAML file with a subset of the sections.
        overrides: Optional mapping merged last (tests, CLI flags).

    Returns:
        A frozen ``InventoryConfig``.
    """
    data = load_yaml_file(DEFAULTS_PATH)
    source = str(DEFAULTS_PATH)
    if config_path is not None:
        data = merge(data, load_yaml_file(Path(config_path)))
        source = str(config_path)
    if overrides:
        data = merge(data, overrides)

    config = parse_config(data, source=source)

    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "trace_type": "INVENTORY_CONFIG_TRACE",
            "source": source,
            "checksum": config.checksum,
            "database_dialect": config.database.url.split(":", 1)[0],
            "require_comment_acknowledgement": config.workflow.require_comment_acknowledgement,
            "check_stock_on_create": config.workflow.check_stock_on_create,
        },
    )
    return config
