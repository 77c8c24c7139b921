"""Builders for orders and cash reports used across the test suite."""

from datetime import date
from decimal import Decimal
from typing import Sequence, Union

from cash_recon.models.records import CashReport, Order

DAY = date(2024, 1, 15)
STORE = "STORE-001"


def make_order(
    order_id: str,
    expected: Union[str, Decimal] = "500.00",
    store_id: str = STORE,
    pickup_date: date = DAY,
) -> Order:
    return Order(
        order_id=order_id,
        store_id=store_id,
        pickup_date=pickup_date,
        expected_amount=Decimal(str(expected)),
        region="cdmx",
        customer_id="CUST-001",
        customer_name="Test User",
        order_date=pickup_date,
    )


def make_report(
    report_id: str,
    total: Union[str, Decimal],
    order_ids: Union[Sequence[str], str],
    store_id: str = STORE,
    report_date: date = DAY,
) -> CashReport:
    return CashReport(
        report_id=report_id,
        store_id=store_id,
        report_date=report_date,
        total_collected=Decimal(str(total)),
        order_ids=order_ids if isinstance(order_ids, str) else tuple(order_ids),
        submitted_by="Manager",
    )
