"""
Reconciliation engine for store cash collections.
Runs matching, allocation and classification for a date, then replaces the
ledger rows for that date/store scope.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Callable, Iterator, Optional, Protocol, Sequence, Union
import logging
import uuid

from ..config import ReconConfig
from ..models.records import (
    ReconciliationRecord,
    ReconciliationResult,
    ReconciliationSummary,
)
from ..utils.exceptions import InvalidDateRangeError, ValidationError
from .allocation import allocate_share, round_currency
from .classifier import Classifier
from .matcher import Matcher, MatchPlan, OrderSource, ReportSource

logger = logging.getLogger(__name__)

DateLike = Union[date, str]


class LedgerSink(Protocol):
    def replace(
        self,
        target_date: date,
        store_id: Optional[str],
        records: Sequence[ReconciliationRecord],
    ) -> None:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def coerce_date(value: DateLike) -> date:
    """Accept a date or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as e:
        raise ValidationError(f"Invalid date {value!r}, expected YYYY-MM-DD") from e


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


class ReconciliationEngine:
    """
    Main reconciliation engine that orchestrates a run.

    Each date is reconciled from scratch: orders are matched to the
    reports claiming them, each report total is split across its orders in
    proportion to expected amounts, and the classified records replace the
    ledger rows of the scope in one transaction.
    """

    def __init__(
        self,
        config: ReconConfig,
        orders: OrderSource,
        reports: ReportSource,
        ledger: LedgerSink,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the reconciliation engine.

        Args:
            config: Application configuration
            orders: Order store to read expected collections from
            reports: Report store to read cash reports from
            ledger: Ledger that receives the reconciliation records
            clock: Source of computation timestamps
        """
        self.config = config
        self.orders = orders
        self.ledger = ledger
        self.clock = clock
        self.matcher = Matcher(orders, reports, config.matching)
        self.classifier = Classifier.from_config(config.thresholds)

    def reconcile_date(
        self, target_date: DateLike, store_id: Optional[str] = None
    ) -> ReconciliationResult:
        """
        Reconcile one date, optionally limited to one store.

        Args:
            target_date: Date to reconcile
            store_id: Optional store filter

        Returns:
            Records written for the scope and the run summary
        """
        day = coerce_date(target_date)
        start_time = datetime.now()
        logger.info(f"Starting reconciliation for {day.isoformat()} (store={store_id or 'all'})")

        plan = self.matcher.match(day, store_id)
        records = self.build_records(plan, self.clock())

        if not plan.orders:
            logger.info(f"No orders found for {day.isoformat()} (store={store_id or 'all'})")

        # Replace even when empty so no stale rows survive for the scope
        self.ledger.replace(day, store_id, records)

        summary = ReconciliationSummary(
            start_date=day,
            end_date=day,
            store_id=store_id,
            ambiguous_order_ids=list(plan.ambiguous_order_ids),
            dates_processed=1,
            config_file_used=self.config.config_file_path,
        )
        for record in records:
            summary.add_record(record)
        summary.processing_time_seconds = (datetime.now() - start_time).total_seconds()

        logger.info(
            f"Reconciliation complete for {day.isoformat()}: {summary.reconciled} orders, "
            f"{summary.matched} matched, {summary.over_collection} over, "
            f"{summary.under_collection} under, {summary.unaccounted} unaccounted, "
            f"{summary.high_priority} high priority"
        )
        return ReconciliationResult(records=records, summary=summary)

    def reconcile_range(
        self,
        start_date: DateLike,
        end_date: DateLike,
        store_id: Optional[str] = None,
    ) -> ReconciliationResult:
        """
        Reconcile every date in an inclusive range.

        Dates are committed one at a time. A failure on a later date leaves
        the earlier dates reconciled.

        Raises:
            InvalidDateRangeError: If start_date is after end_date
        """
        start = coerce_date(start_date)
        end = coerce_date(end_date)
        if start > end:
            raise InvalidDateRangeError(
                f"Start date {start.isoformat()} is after end date {end.isoformat()}"
            )

        summary = ReconciliationSummary(
            start_date=start,
            end_date=end,
            store_id=store_id,
            config_file_used=self.config.config_file_path,
        )
        records: list[ReconciliationRecord] = []
        for day in iter_dates(start, end):
            result = self.reconcile_date(day, store_id)
            records.extend(result.records)
            summary.merge(result.summary)

        return ReconciliationResult(records=records, summary=summary)

    def reconcile_all(self, store_id: Optional[str] = None) -> ReconciliationResult:
        """Reconcile every pickup date present in the order store."""
        dates = self.orders.distinct_pickup_dates(store_id)
        if not dates:
            today = self.clock().date()
            return ReconciliationResult(
                records=[],
                summary=ReconciliationSummary(start_date=today, end_date=today, store_id=store_id),
            )

        summary = ReconciliationSummary(
            start_date=dates[0],
            end_date=dates[-1],
            store_id=store_id,
            config_file_used=self.config.config_file_path,
        )
        records: list[ReconciliationRecord] = []
        for day in dates:
            result = self.reconcile_date(day, store_id)
            records.extend(result.records)
            summary.merge(result.summary)

        return ReconciliationResult(records=records, summary=summary)

    def build_records(
        self, plan: MatchPlan, computed_at: datetime
    ) -> list[ReconciliationRecord]:
        """
        Allocate and classify every order of a match plan.

        Args:
            plan: Match plan for one date/store scope
            computed_at: Timestamp stamped on every record

        Returns:
            One fresh record per order in the plan
        """
        records: list[ReconciliationRecord] = []

        for order in plan.orders:
            report = plan.claiming_report(order.order_id)

            if report is None:
                allocated = None
            else:
                allocated = allocate_share(
                    order.expected_amount,
                    plan.claimed_expected[report.report_id],
                    report.total_collected,
                )

            outcome = self.classifier.classify(order.expected_amount, allocated)

            records.append(
                ReconciliationRecord(
                    id=str(uuid.uuid4()),
                    order_id=order.order_id,
                    report_id=report.report_id if report is not None else None,
                    store_id=order.store_id,
                    reconciliation_date=plan.target_date,
                    expected_amount=round_currency(order.expected_amount),
                    actual_amount=allocated,
                    variance_amount=outcome.variance_amount,
                    variance_pct=outcome.variance_pct,
                    status=outcome.status,
                    is_high_priority=outcome.is_high_priority,
                    reconciled_at=computed_at,
                )
            )

        return records
