"""Parsers for order and cash report CSV files."""

from .order_parser import OrderCsvParser
from .cash_report_parser import CashReportCsvParser

__all__ = ["OrderCsvParser", "CashReportCsvParser"]
