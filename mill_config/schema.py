"""
MillSettings schema.

The frozen runtime settings object produced by ``mill_config.get_settings``.
Module sections are the modules' own config schemas, so a bad value is
rejected by the same validation the modules apply.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from mill_modules.inventory.config import InventoryConfig
from mill_modules.payroll.config import PayrollConfig

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class MillSettings:
    """Everything a running mill ledger needs to start."""

    database_url: str
    log_level: str = "INFO"
    inventory: InventoryConfig = field(default_factory=InventoryConfig)
    payroll: PayrollConfig = field(default_factory=PayrollConfig)

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database_url is required")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}"
            )
