"""Kernel services - imperative shell around the pure ledger functions."""

from mill_kernel.services.ledger_runner import LedgerPlan, LedgerRunner

__all__ = ["LedgerPlan", "LedgerRunner"]
