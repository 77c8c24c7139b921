"""ORM tables for orders, cash reports and the reconciliation ledger."""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class OrderRow(Base):
    __tablename__ = "orders"

    # Surrogate key, also the ingestion order
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    store_id: Mapped[str] = mapped_column(String(64), nullable=False)
    region: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    order_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    pickup_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MXN")
    payment_method: Mapped[str] = mapped_column(
        String(32), nullable=False, default="cash_on_pickup"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (Index("idx_orders_store_date", "store_id", "pickup_date"),)


class CashReportRow(Base):
    __tablename__ = "cash_reports"

    # Surrogate key, also the arrival order used for claim tie-breaks
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    report_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    store_id: Mapped[str] = mapped_column(String(64), nullable=False)
    report_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_collected: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    # JSON array of claimed order ids, stored as received
    order_ids: Mapped[str] = mapped_column(Text, nullable=False)
    submitted_by: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (Index("idx_cash_reports_store_date", "store_id", "report_date"),)


class ReconciliationRow(Base):
    __tablename__ = "reconciliations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    report_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    store_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reconciliation_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    actual_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    variance_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    variance_pct: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    is_high_priority: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reconciled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "order_id", "reconciliation_date", name="uq_reconciliations_order_date"
        ),
        Index("idx_reconciliations_date", "reconciliation_date"),
        Index("idx_reconciliations_store", "store_id"),
        Index("idx_reconciliations_status", "status"),
    )
