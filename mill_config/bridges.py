"""
Config -> Kernel/Modules Bridges.

Builds the running ledger services from ``MillSettings``.  This lives in
mill_config (the producer) because the kernel and the modules must NEVER
import mill_config.

Usage:
    from mill_config import build_services, get_settings

    services = build_services(get_settings())
    services.inventory.record_movement("INV-001", "out", 30, user="amina")
"""

from __future__ import annotations

from dataclasses import dataclass

from mill_config.schema import MillSettings
from mill_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from mill_kernel.domain.clock import Clock, SystemClock
from mill_kernel.logging_config import configure_logging, get_logger, set_log_level
from mill_kernel.store.sql import SqlRecordStore
from mill_modules.inventory.service import StockLedgerService
from mill_modules.payroll.service import EmployeeLedgerService

logger = get_logger("config.bridges")


@dataclass(frozen=True)
class MillServices:
    """The wired services sharing one store and one clock."""

    store: SqlRecordStore
    inventory: StockLedgerService
    payroll: EmployeeLedgerService


def build_services(settings: MillSettings, clock: Clock | None = None) -> MillServices:
    """Configure logging and the database, then wire both ledger services.

    Postconditions:
        - The mill_kernel loggers run at ``settings.log_level``.
        - The engine points at ``settings.database_url`` and the ``records``
          table exists.
        - Each service carries its own section of ``settings``.
    """
    configure_logging(level=settings.log_level)
    set_log_level(settings.log_level)

    engine = init_engine_from_url(settings.database_url)
    create_tables(engine)

    clock = clock or SystemClock()
    store = SqlRecordStore(get_session_factory(), clock)
    services = MillServices(
        store=store,
        inventory=StockLedgerService(store, clock, settings.inventory),
        payroll=EmployeeLedgerService(store, clock, settings.payroll),
    )
    logger.info(
        "mill_services_built",
        extra={"dialect": engine.dialect.name, "log_level": settings.log_level},
    )
    return services
