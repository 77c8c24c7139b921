"""Shared helpers for the pandas-based CSV parsers."""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Union
import io

import pandas as pd

from ..config import InputConfig

CsvSource = Union[Path, str, bytes]


def read_csv_frame(
    source: CsvSource,
    input_config: InputConfig,
    required_columns: list[str],
    error_cls: type[Exception],
) -> pd.DataFrame:
    """
    Read a CSV into a string-typed DataFrame and check its header.

    Args:
        source: File path, or raw file content as bytes
        input_config: Encoding and delimiter settings
        required_columns: Columns that must be present
        error_cls: Exception raised on failure

    Returns:
        DataFrame with every cell as a stripped string
    """
    if isinstance(source, bytes):
        handle = io.BytesIO(source)
    else:
        handle = source

    try:
        df = pd.read_csv(
            handle,
            encoding=input_config.encoding,
            delimiter=input_config.delimiter,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            skipinitialspace=True,
        )
    except pd.errors.EmptyDataError as e:
        raise error_cls("CSV file is empty") from e
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
        raise error_cls(f"Failed to read CSV file: {e}") from e

    df.columns = [str(c).strip() for c in df.columns]
    if df.empty:
        raise error_cls("CSV file is empty")

    missing = [c for c in required_columns if c not in df.columns]
    if missing:
        raise error_cls(f"Missing required columns: {', '.join(missing)}")

    return df.apply(lambda col: col.str.strip())


def parse_amount(value: str) -> Optional[Decimal]:
    """Parse a non-negative amount, tolerating currency symbols and commas."""
    cleaned = value.replace("$", "").replace(",", "").strip()
    if not cleaned:
        return None
    try:
        amount = Decimal(cleaned)
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount


def parse_date(value: str) -> Optional[date]:
    """Parse an ISO date (a timestamp is truncated to its date)."""
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        try:
            return datetime.fromisoformat(value).date()
        except ValueError:
            return None
