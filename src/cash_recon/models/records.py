"""Data models for orders, cash reports and reconciliation results."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Sequence, Union


class ReconciliationStatus(Enum):
    """Outcome of reconciling a single order."""

    MATCHED = "matched"
    OVER_COLLECTION = "over_collection"  # Store collected more than expected
    UNDER_COLLECTION = "under_collection"  # Store collected less than expected
    UNACCOUNTED = "unaccounted"  # No cash report claims the order


@dataclass(frozen=True)
class Order:
    """
    Expected cash collection for a single customer pickup.

    Orders are the system of record. The engine only reads them.
    """

    # Business identifier (unique across the chain)
    order_id: str

    store_id: str

    # Collection date, the date the order is reconciled on
    pickup_date: date

    # Amount the store should have collected
    expected_amount: Decimal

    region: str = ""
    customer_id: str = ""
    customer_name: str = ""
    order_date: Optional[date] = None
    currency: str = "MXN"
    payment_method: str = "cash_on_pickup"


@dataclass(frozen=True)
class CashReport:
    """
    Store-submitted summary of cash collected on a day.

    A report only asserts a lump total and the orders it covers. The
    claimed ids are kept exactly as received: either a sequence of ids or
    the JSON text stored by the report store. They are parsed by the
    matcher so a malformed list can be handled per configuration.
    """

    report_id: str
    store_id: str
    report_date: date
    total_collected: Decimal
    order_ids: Union[Sequence[str], str] = field(default_factory=tuple)
    submitted_by: str = ""


@dataclass
class ReconciliationRecord:
    """One ledger row: the outcome for one order on one reconciliation date."""

    id: str
    order_id: str
    report_id: Optional[str]
    store_id: str
    reconciliation_date: date
    expected_amount: Decimal
    actual_amount: Optional[Decimal]
    variance_amount: Optional[Decimal]
    variance_pct: Optional[Decimal]
    status: ReconciliationStatus
    is_high_priority: bool
    reconciled_at: datetime

    @property
    def is_discrepancy(self) -> bool:
        """Anything other than a clean match."""
        return self.status != ReconciliationStatus.MATCHED

    @property
    def discrepancy_magnitude(self) -> Decimal:
        """Absolute variance, or the full expected amount when unaccounted."""
        if self.variance_amount is None:
            return abs(self.expected_amount)
        return abs(self.variance_amount)


@dataclass
class ReconciliationSummary:
    """Summary of a reconciliation run over a date or a date range."""

    # Scope of the run
    start_date: date
    end_date: date
    store_id: Optional[str] = None

    # Status counts
    matched: int = 0
    over_collection: int = 0
    under_collection: int = 0
    unaccounted: int = 0
    high_priority: int = 0

    # Orders claimed by more than one report
    ambiguous_order_ids: list[str] = field(default_factory=list)

    dates_processed: int = 0
    processing_time_seconds: float = 0.0
    config_file_used: Optional[str] = None

    @property
    def reconciled(self) -> int:
        """Number of ledger records produced."""
        return self.matched + self.over_collection + self.under_collection + self.unaccounted

    @property
    def discrepancies(self) -> int:
        return self.reconciled - self.matched

    @property
    def match_rate(self) -> float:
        """Percentage of orders that reconciled cleanly."""
        if self.reconciled == 0:
            return 0.0
        return (self.matched / self.reconciled) * 100

    @property
    def scope_label(self) -> str:
        if self.start_date == self.end_date:
            label = f"date {self.start_date.isoformat()}"
        else:
            label = f"{self.start_date.isoformat()} to {self.end_date.isoformat()}"
        if self.store_id:
            label += f" / store {self.store_id}"
        return label

    @property
    def message(self) -> str:
        if self.reconciled == 0:
            return "No orders found for the given filters"
        return f"Reconciled {self.reconciled} orders for {self.scope_label}"

    def add_record(self, record: ReconciliationRecord) -> None:
        """Count a record into the status totals."""
        name = record.status.value
        setattr(self, name, getattr(self, name) + 1)
        if record.is_high_priority:
            self.high_priority += 1

    def merge(self, other: "ReconciliationSummary") -> None:
        """Fold another run's counts into this one."""
        self.matched += other.matched
        self.over_collection += other.over_collection
        self.under_collection += other.under_collection
        self.unaccounted += other.unaccounted
        self.high_priority += other.high_priority
        self.ambiguous_order_ids.extend(other.ambiguous_order_ids)
        self.dates_processed += other.dates_processed
        self.processing_time_seconds += other.processing_time_seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "reconciled": self.reconciled,
            "matched": self.matched,
            "over_collection": self.over_collection,
            "under_collection": self.under_collection,
            "unaccounted": self.unaccounted,
            "high_priority": self.high_priority,
            "from": self.start_date.isoformat(),
            "to": self.end_date.isoformat(),
            "store_id": self.store_id or "all",
            "ambiguous_order_ids": list(self.ambiguous_order_ids),
            "message": self.message,
        }


@dataclass
class ReconciliationResult:
    """Records written by a run together with its summary."""

    records: list[ReconciliationRecord]
    summary: ReconciliationSummary
