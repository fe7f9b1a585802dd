"""Daily token budget enforcement."""

from .ledger import BudgetLedger

__all__ = ["BudgetLedger"]
