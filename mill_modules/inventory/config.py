"""
Inventory Configuration Schema.

Defines the structure and sensible defaults for stock ledger settings.
Actual values are loaded from ``mill_config`` settings at runtime.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Self

from mill_kernel.domain.values import coerce_decimal
from mill_kernel.logging_config import get_logger
from mill_modules.inventory.models import DEFAULT_MOVEMENT_USER, DEFAULT_UNIT

logger = get_logger("modules.inventory.config")


@dataclass
class InventoryConfig:
    """
    Configuration schema for the stock ledger.

        config = InventoryConfig(
            default_user="storekeeper",
            low_stock_threshold=Decimal("25"),
        )
    """

    # Recorded on a movement when the form leaves the user blank
    default_user: str = DEFAULT_MOVEMENT_USER

    # Items without their own minimumThreshold are low at or below this
    low_stock_threshold: Decimal = Decimal("10")

    default_unit: str = DEFAULT_UNIT

    # Optimistic-lock retries for record_movement
    max_retries: int = 3

    def __post_init__(self):
        if not self.default_user or not self.default_user.strip():
            raise ValueError("default_user is required")

        threshold = coerce_decimal(self.low_stock_threshold)
        if threshold is None:
            raise ValueError(
                f"low_stock_threshold must be a number, got {self.low_stock_threshold!r}"
            )
        if threshold < 0:
            raise ValueError("low_stock_threshold cannot be negative")
        self.low_stock_threshold = threshold

        if not self.default_unit or not self.default_unit.strip():
            raise ValueError("default_unit is required")
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        logger.info(
            "inventory_config_initialized",
            extra={
                "default_user": self.default_user,
                "low_stock_threshold": str(self.low_stock_threshold),
                "default_unit": self.default_unit,
                "max_retries": self.max_retries,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the mill's standard defaults."""
        logger.info("inventory_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary (e.g., loaded from YAML)."""
        logger.info(
            "inventory_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
