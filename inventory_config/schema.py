"""
InventoryConfig schema.

Frozen dataclasses for the workflow's runtime settings.  YAML is parsed
into these types by the loader; the defaults here mirror
``defaults.yaml`` so that ``InventoryConfig()`` is a valid configuration
for tests and embedded use.

This module has no dependency on the kernel; the kernel reads these
types but never loads configuration itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseSettings:
    """Engine settings passed to ``init_engine_from_config``."""

    url: str = "sqlite:///inventory.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    sqlite_busy_timeout: float = 30.0


@dataclass(frozen=True)
class NumberingSettings:
    """Request number format: ALI-2026-0001, OCT-MSAN-DPS-2026-0007."""

    supply_prefix: str = "ALI"
    distribution_prefix: str = "OCT"
    width: int = 4
    default_parent_abbreviation: str = "MIN"
    default_unit_abbreviation: str = "STR"


@dataclass(frozen=True)
class WorkflowSettings:
    require_comment_acknowledgement: bool = True
    check_stock_on_create: bool = True
    sequence_retry_attempts: int = 3


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class InventoryConfig:
    """
    Complete runtime configuration.

    ``checksum`` is the SHA-256 of the canonical JSON form of the source
    mapping; empty when the object was built directly in code.
    """

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    numbering: NumberingSettings = field(default_factory=NumberingSettings)
    workflow: WorkflowSettings = field(default_factory=WorkflowSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    checksum: str = ""
    source: str | None = None
