"""
Orders CSV parser.
Parses exported order files into Order models for the order store.
"""

from pathlib import Path
import logging

import pandas as pd

from ..config import ReconConfig
from ..models.records import Order
from ..utils.exceptions import OrderParseError
from .csv_utils import CsvSource, parse_amount, parse_date, read_csv_frame

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = [
    "order_id",
    "store_id",
    "region",
    "customer_id",
    "customer_name",
    "order_date",
    "pickup_date",
    "expected_amount",
    "currency",
    "payment_method",
]


class OrderCsvParser:
    """Parser for order export files."""

    def __init__(self, config: ReconConfig):
        """
        Initialize the parser with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config

    def parse_file(self, source: CsvSource) -> list[Order]:
        """
        Parse an orders CSV and return Order models.

        Args:
            source: Path to the CSV file, or its raw bytes

        Returns:
            List of orders in file order

        Raises:
            OrderParseError: If the file is unreadable, misses columns or
                holds an invalid row
        """
        if isinstance(source, (str, Path)):
            logger.info(f"Parsing orders CSV file: {source}")

        df = read_csv_frame(source, self.config.input, REQUIRED_COLUMNS, OrderParseError)
        orders = [self._normalize_row(row, int(idx)) for idx, row in df.iterrows()]

        logger.info(f"Extracted {len(orders)} orders")
        return orders

    def _normalize_row(self, row: pd.Series, idx: int) -> Order:
        # Header is line 1, so data row idx sits on line idx + 2
        line = idx + 2

        order_id = row["order_id"]
        if not order_id:
            raise OrderParseError(f"Row {line}: order_id is required")

        amount = parse_amount(row["expected_amount"])
        if amount is None:
            raise OrderParseError(
                f"Row {line}: invalid expected_amount \"{row['expected_amount']}\""
            )

        pickup_date = parse_date(row["pickup_date"])
        if pickup_date is None:
            raise OrderParseError(f"Row {line}: invalid pickup_date \"{row['pickup_date']}\"")

        return Order(
            order_id=order_id,
            store_id=row["store_id"],
            pickup_date=pickup_date,
            expected_amount=amount,
            region=row["region"].lower(),
            customer_id=row["customer_id"],
            customer_name=row["customer_name"],
            order_date=parse_date(row["order_date"]),
            currency=(row["currency"] or self.config.input.default_currency).upper(),
            payment_method=row["payment_method"],
        )
