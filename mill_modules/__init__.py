"""
Mill Modules.

Thin orchestration layers over the Mill Kernel.
Each module contains:
- Domain models (the nouns)
- Pure ledger functions (event + record -> new record + history entry)
- Configuration schemas (policy and settings)
- A service that loads, computes and commits through a ``RecordStore``

Modules:
- Inventory: Fabric stock items, inbound/outbound movements
- Payroll: Employees, salary transactions, attendance, performance score
"""

from mill_modules import inventory, payroll

__all__ = ["inventory", "payroll"]
