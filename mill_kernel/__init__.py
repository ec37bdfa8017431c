"""
Mill Kernel

Shared primitives for the textile mill ledgers:
- Injectable clock for deterministic ledger computations
- Typed, coded error hierarchy and the LedgerResult carrier
- Structured JSON logging
- Record store abstraction (in-memory and SQLAlchemy-backed)
"""

__version__ = "0.1.0"
