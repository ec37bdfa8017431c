"""
Payroll Configuration Schema.

Defines the structure and sensible defaults for employee ledger settings.
Actual values are loaded from ``mill_config`` settings at runtime.
"""

from dataclasses import dataclass
from typing import Self

from mill_kernel.logging_config import get_logger
from mill_modules.payroll.models import DEFAULT_CURRENCY_SYMBOL

logger = get_logger("modules.payroll.config")


@dataclass
class PayrollConfig:
    """
    Configuration schema for the employee ledger.

        config = PayrollConfig(currency_symbol="TRY")
    """

    # Appended to salary transaction descriptions
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL

    # Optimistic-lock retries for record_transaction / mark_attendance
    max_retries: int = 3

    def __post_init__(self):
        if not self.currency_symbol or not self.currency_symbol.strip():
            raise ValueError("currency_symbol is required")
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        logger.info(
            "payroll_config_initialized",
            extra={
                "currency_symbol": self.currency_symbol,
                "max_retries": self.max_retries,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the mill's standard defaults."""
        logger.info("payroll_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary (e.g., loaded from YAML)."""
        logger.info(
            "payroll_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
