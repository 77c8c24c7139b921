"""Persistence for orders, cash reports and the reconciliation ledger."""

from .database import Database
from .tables import Base, OrderRow, CashReportRow, ReconciliationRow
from .repositories import (
    OrderRepository,
    CashReportRepository,
    ReconciliationLedger,
    ScopeLocks,
)

__all__ = [
    "Database",
    "Base",
    "OrderRow",
    "CashReportRow",
    "ReconciliationRow",
    "OrderRepository",
    "CashReportRepository",
    "ReconciliationLedger",
    "ScopeLocks",
]
