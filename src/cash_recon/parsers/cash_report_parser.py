"""
Cash reports CSV parser.
Parses store-submitted report files into CashReport models.
"""

from pathlib import Path
import json
import logging

import pandas as pd

from ..config import ReconConfig
from ..models.records import CashReport
from ..utils.exceptions import CashReportParseError
from .csv_utils import CsvSource, parse_amount, parse_date, read_csv_frame

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = [
    "report_id",
    "store_id",
    "report_date",
    "total_collected",
    "order_ids",
    "submitted_by",
]


class CashReportCsvParser:
    """Parser for cash report files."""

    def __init__(self, config: ReconConfig):
        self.config = config

    def parse_file(self, source: CsvSource) -> list[CashReport]:
        """
        Parse a cash reports CSV and return CashReport models.

        The order_ids column holds either a JSON array or a comma-separated
        list of order ids.

        Args:
            source: Path to the CSV file, or its raw bytes

        Returns:
            List of cash reports in file order

        Raises:
            CashReportParseError: If the file is unreadable, misses columns
                or holds an invalid row
        """
        if isinstance(source, (str, Path)):
            logger.info(f"Parsing cash reports CSV file: {source}")

        df = read_csv_frame(
            source, self.config.input, REQUIRED_COLUMNS, CashReportParseError
        )
        reports = [self._normalize_row(row, int(idx)) for idx, row in df.iterrows()]

        logger.info(f"Extracted {len(reports)} cash reports")
        return reports

    def _normalize_row(self, row: pd.Series, idx: int) -> CashReport:
        line = idx + 2

        report_id = row["report_id"]
        if not report_id:
            raise CashReportParseError(f"Row {line}: report_id is required")

        total = parse_amount(row["total_collected"])
        if total is None:
            raise CashReportParseError(
                f"Row {line}: invalid total_collected \"{row['total_collected']}\""
            )

        report_date = parse_date(row["report_date"])
        if report_date is None:
            raise CashReportParseError(
                f"Row {line}: invalid report_date \"{row['report_date']}\""
            )

        return CashReport(
            report_id=report_id,
            store_id=row["store_id"],
            report_date=report_date,
            total_collected=total,
            order_ids=self._parse_order_ids(row["order_ids"], line),
            submitted_by=row["submitted_by"],
        )

    def _parse_order_ids(self, raw: str, line: int) -> tuple[str, ...]:
        if raw.startswith("["):
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                raise CashReportParseError(
                    f"Row {line}: order_ids is not a valid JSON array: {e.msg}"
                ) from e
            if not isinstance(data, list):
                raise CashReportParseError(f"Row {line}: order_ids must be a list")
            for item in data:
                if not isinstance(item, str) or not item.strip():
                    raise CashReportParseError(
                        f"Row {line}: invalid order id {item!r} in order_ids"
                    )
            return tuple(item.strip() for item in data)

        return tuple(part.strip() for part in raw.split(",") if part.strip())
