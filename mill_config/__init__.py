"""
mill_config -- single public entrypoint for mill ledger settings.

Responsibility:
    Provides ``get_settings()``, the one place that reads settings files and
    the ``MILL_LEDGER_CONFIG`` environment variable.  Services receive their
    ``InventoryConfig`` / ``PayrollConfig`` from the returned
    ``MillSettings``; they never read files themselves.  ``build_services()``
    wires the store and both services from those settings.

Architecture position:
    Configuration -- sits above ``mill_kernel`` and ``mill_modules``.  The
    kernel and the modules MUST NEVER import from ``mill_config``.

Failure modes:
    - ``FileNotFoundError`` -- the override path does not exist.
    - ``ValueError`` -- unknown keys or invalid values.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from mill_config.bridges import MillServices, build_services
from mill_config.loader import DEFAULTS_PATH, load_settings, parse_settings
from mill_config.schema import MillSettings

_logger = logging.getLogger("mill_kernel.config")

CONFIG_ENV_VAR = "MILL_LEDGER_CONFIG"


def get_settings(path: Path | str | None = None) -> MillSettings:
    """Load settings.

    Args:
        path: Override file merged over the shipped defaults.  When omitted,
            ``$MILL_LEDGER_CONFIG`` is used if set, else defaults alone.

    Returns:
        Frozen ``MillSettings``.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or None
    resolved = Path(path) if path is not None else None

    settings = load_settings(resolved)
    _logger.info(
        "mill_settings_loaded",
        extra={
            "source": str(resolved) if resolved else str(DEFAULTS_PATH),
            "log_level": settings.log_level,
        },
    )
    return settings


__all__ = [
    "CONFIG_ENV_VAR",
    "MillServices",
    "MillSettings",
    "build_services",
    "get_settings",
    "parse_settings",
]
