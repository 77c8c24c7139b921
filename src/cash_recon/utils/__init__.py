"""Utility modules."""

from .exceptions import (
    ReconciliationError,
    OrderParseError,
    CashReportParseError,
    ConfigurationError,
    ValidationError,
    InvalidDateRangeError,
    MalformedClaimError,
    AmbiguousClaimError,
    LedgerWriteError,
    ReportGenerationError,
)
from .logging_config import setup_logging

__all__ = [
    "ReconciliationError",
    "OrderParseError",
    "CashReportParseError",
    "ConfigurationError",
    "ValidationError",
    "InvalidDateRangeError",
    "MalformedClaimError",
    "AmbiguousClaimError",
    "LedgerWriteError",
    "ReportGenerationError",
    "setup_logging",
]
