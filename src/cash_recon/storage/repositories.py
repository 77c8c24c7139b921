"""
Read and write access to orders, cash reports and the reconciliation ledger.
"""

from datetime import date, datetime, timezone
from typing import Iterable, Optional, Sequence
import json
import logging
import threading

from sqlalchemy import delete, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.records import (
    CashReport,
    Order,
    ReconciliationRecord,
    ReconciliationStatus,
)
from ..utils.exceptions import LedgerWriteError
from .database import Database
from .tables import CashReportRow, OrderRow, ReconciliationRow

logger = logging.getLogger(__name__)


class OrderRepository:
    """Order store: expected collections by store and pickup date."""

    def __init__(self, database: Database):
        self.database = database

    def add_all(self, orders: Iterable[Order]) -> int:
        """
        Insert orders, skipping any whose order_id is already stored.

        Returns:
            Number of orders inserted
        """
        pending = _dedupe(orders, key=lambda o: o.order_id)
        if not pending:
            return 0

        with self.database.session_scope() as session:
            existing = set(
                session.scalars(
                    select(OrderRow.order_id).where(OrderRow.order_id.in_(list(pending)))
                )
            )
            rows = [_order_to_row(o) for oid, o in pending.items() if oid not in existing]
            session.add_all(rows)

        logger.info(f"Stored {len(rows)} orders ({len(existing)} already present)")
        return len(rows)

    def for_date(self, target_date: date, store_id: Optional[str] = None) -> list[Order]:
        stmt = select(OrderRow).where(OrderRow.pickup_date == target_date)
        if store_id:
            stmt = stmt.where(OrderRow.store_id == store_id)
        stmt = stmt.order_by(OrderRow.store_id, OrderRow.id)

        with self.database.session_scope() as session:
            return [_row_to_order(row) for row in session.scalars(stmt)]

    def distinct_pickup_dates(self, store_id: Optional[str] = None) -> list[date]:
        stmt = select(OrderRow.pickup_date).distinct()
        if store_id:
            stmt = stmt.where(OrderRow.store_id == store_id)
        stmt = stmt.order_by(OrderRow.pickup_date)

        with self.database.session_scope() as session:
            return list(session.scalars(stmt))


class CashReportRepository:
    """Report store: store-submitted collection summaries."""

    def __init__(self, database: Database):
        self.database = database

    def add_all(self, reports: Iterable[CashReport]) -> int:
        """
        Insert reports, skipping any whose report_id is already stored.

        Returns:
            Number of reports inserted
        """
        pending = _dedupe(reports, key=lambda r: r.report_id)
        if not pending:
            return 0

        with self.database.session_scope() as session:
            existing = set(
                session.scalars(
                    select(CashReportRow.report_id).where(
                        CashReportRow.report_id.in_(list(pending))
                    )
                )
            )
            rows = [_report_to_row(r) for rid, r in pending.items() if rid not in existing]
            session.add_all(rows)

        logger.info(f"Stored {len(rows)} cash reports ({len(existing)} already present)")
        return len(rows)

    def for_date(
        self, target_date: date, store_id: Optional[str] = None
    ) -> list[CashReport]:
        """Reports for a date in arrival order."""
        stmt = select(CashReportRow).where(CashReportRow.report_date == target_date)
        if store_id:
            stmt = stmt.where(CashReportRow.store_id == store_id)
        stmt = stmt.order_by(CashReportRow.id)

        with self.database.session_scope() as session:
            return [_row_to_report(row) for row in session.scalars(stmt)]


class ScopeLocks:
    """
    Process-local locks, one per reconciliation date.

    A store-filtered run and an unfiltered run of the same date overlap, so
    locking is per date rather than per (date, store).
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[date, threading.Lock] = {}

    def for_date(self, target_date: date) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(target_date)
            if lock is None:
                lock = self._locks[target_date] = threading.Lock()
            return lock


_DEFAULT_LOCKS = ScopeLocks()


class ReconciliationLedger:
    """The reconciliation ledger: one live record per order per date."""

    def __init__(self, database: Database, locks: Optional[ScopeLocks] = None):
        self.database = database
        self.locks = locks or _DEFAULT_LOCKS

    def replace(
        self,
        target_date: date,
        store_id: Optional[str],
        records: Sequence[ReconciliationRecord],
    ) -> None:
        """
        Atomically swap the ledger rows of a date/store scope for new ones.

        Deletes every record of the date (and store, when given) and inserts
        the new records in the same transaction.

        Raises:
            LedgerWriteError: If the transaction fails; the prior rows of the
                scope are left untouched
        """
        with self.locks.for_date(target_date):
            try:
                with self.database.session_scope() as session:
                    self._lock_scope(session, target_date)

                    stmt = delete(ReconciliationRow).where(
                        ReconciliationRow.reconciliation_date == target_date
                    )
                    if store_id:
                        stmt = stmt.where(ReconciliationRow.store_id == store_id)
                    deleted = session.execute(stmt).rowcount

                    session.add_all([_record_to_row(r) for r in records])
                    session.flush()
            except SQLAlchemyError as e:
                logger.error(
                    f"Ledger replace failed for {target_date.isoformat()} "
                    f"(store={store_id or 'all'}), rolled back: {e}"
                )
                raise LedgerWriteError(
                    f"Could not replace reconciliation records for "
                    f"{target_date.isoformat()}: {e}"
                ) from e

        logger.debug(
            f"Ledger {target_date.isoformat()} (store={store_id or 'all'}): "
            f"removed {deleted}, inserted {len(records)}"
        )

    def records_for(
        self,
        target_date: Optional[date] = None,
        store_id: Optional[str] = None,
        status: Optional[ReconciliationStatus] = None,
    ) -> list[ReconciliationRecord]:
        """Live ledger records, ordered by date, store and order id."""
        stmt = select(ReconciliationRow)
        if target_date is not None:
            stmt = stmt.where(ReconciliationRow.reconciliation_date == target_date)
        if store_id:
            stmt = stmt.where(ReconciliationRow.store_id == store_id)
        if status is not None:
            stmt = stmt.where(ReconciliationRow.status == status.value)
        stmt = stmt.order_by(
            ReconciliationRow.reconciliation_date,
            ReconciliationRow.store_id,
            ReconciliationRow.order_id,
        )

        with self.database.session_scope() as session:
            return [_row_to_record(row) for row in session.scalars(stmt)]

    def _lock_scope(self, session: Session, target_date: date) -> None:
        # Serialise same-date writers across processes
        if self.database.dialect_name == "postgresql":
            session.execute(
                text("SELECT pg_advisory_xact_lock(:key)"),
                {"key": target_date.toordinal()},
            )


def _dedupe(items: Iterable, key) -> dict:
    result: dict = {}
    for item in items:
        result.setdefault(key(item), item)
    return result


def _order_to_row(order: Order) -> OrderRow:
    return OrderRow(
        order_id=order.order_id,
        store_id=order.store_id,
        region=order.region,
        customer_id=order.customer_id,
        customer_name=order.customer_name,
        order_date=order.order_date,
        pickup_date=order.pickup_date,
        expected_amount=order.expected_amount,
        currency=order.currency,
        payment_method=order.payment_method,
    )


def _row_to_order(row: OrderRow) -> Order:
    return Order(
        order_id=row.order_id,
        store_id=row.store_id,
        pickup_date=row.pickup_date,
        expected_amount=row.expected_amount,
        region=row.region,
        customer_id=row.customer_id,
        customer_name=row.customer_name,
        order_date=row.order_date,
        currency=row.currency,
        payment_method=row.payment_method,
    )


def _report_to_row(report: CashReport) -> CashReportRow:
    order_ids = report.order_ids
    if not isinstance(order_ids, str):
        order_ids = json.dumps(list(order_ids))
    return CashReportRow(
        report_id=report.report_id,
        store_id=report.store_id,
        report_date=report.report_date,
        total_collected=report.total_collected,
        order_ids=order_ids,
        submitted_by=report.submitted_by,
    )


def _row_to_report(row: CashReportRow) -> CashReport:
    # Claimed ids stay as raw JSON; the matcher parses them
    return CashReport(
        report_id=row.report_id,
        store_id=row.store_id,
        report_date=row.report_date,
        total_collected=row.total_collected,
        order_ids=row.order_ids,
        submitted_by=row.submitted_by,
    )


def _record_to_row(record: ReconciliationRecord) -> ReconciliationRow:
    return ReconciliationRow(
        id=record.id,
        order_id=record.order_id,
        report_id=record.report_id,
        store_id=record.store_id,
        reconciliation_date=record.reconciliation_date,
        expected_amount=record.expected_amount,
        actual_amount=record.actual_amount,
        variance_amount=record.variance_amount,
        variance_pct=record.variance_pct,
        status=record.status.value,
        is_high_priority=record.is_high_priority,
        reconciled_at=record.reconciled_at,
    )


def _row_to_record(row: ReconciliationRow) -> ReconciliationRecord:
    return ReconciliationRecord(
        id=row.id,
        order_id=row.order_id,
        report_id=row.report_id,
        store_id=row.store_id,
        reconciliation_date=row.reconciliation_date,
        expected_amount=row.expected_amount,
        actual_amount=row.actual_amount,
        variance_amount=row.variance_amount,
        variance_pct=row.variance_pct,
        status=ReconciliationStatus(row.status),
        is_high_priority=bool(row.is_high_priority),
        reconciled_at=_as_utc(row.reconciled_at),
    )


def _as_utc(value: datetime) -> datetime:
    # SQLite drops the offset; stored timestamps are always UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
