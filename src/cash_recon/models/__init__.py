"""Data models for reconciliation."""

from .records import (
    Order,
    CashReport,
    ReconciliationRecord,
    ReconciliationStatus,
    ReconciliationSummary,
    ReconciliationResult,
)

__all__ = [
    "Order",
    "CashReport",
    "ReconciliationRecord",
    "ReconciliationStatus",
    "ReconciliationSummary",
    "ReconciliationResult",
]
