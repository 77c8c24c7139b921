"""
Order-to-report matching for a single reconciliation date.

Builds the lookup from order id to the report that claims it, and the
per-report claimed expected sum used as the allocation denominator.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional, Protocol
import json
import logging

from ..config import MalformedClaimsMode, MatchingConfig
from ..models.records import CashReport, Order
from ..utils.exceptions import MalformedClaimError
from .allocation import ZERO
from .policies import ClaimPolicy, build_claim_policy

logger = logging.getLogger(__name__)


class OrderSource(Protocol):
    def for_date(self, target_date: date, store_id: Optional[str] = None) -> list[Order]:
        ...

    def distinct_pickup_dates(self, store_id: Optional[str] = None) -> list[date]:
        ...


class ReportSource(Protocol):
    def for_date(
        self, target_date: date, store_id: Optional[str] = None
    ) -> list[CashReport]:
        ...


@dataclass
class MatchPlan:
    """Matching result for one date/store scope, discarded after the run."""

    target_date: date
    store_id: Optional[str]
    orders: list[Order]
    reports: list[CashReport]

    # Order id to the report that owns it
    claims: dict[str, CashReport] = field(default_factory=dict)

    # Report id to the sum of expected amounts over the orders it claims
    claimed_expected: dict[str, Decimal] = field(default_factory=dict)

    # Orders claimed by more than one report
    ambiguous_order_ids: list[str] = field(default_factory=list)

    def claiming_report(self, order_id: str) -> Optional[CashReport]:
        return self.claims.get(order_id)


def parse_claimed_ids(report: CashReport) -> list[str]:
    """
    Parse a report's claimed order ids.

    Args:
        report: Cash report holding a JSON array or a sequence of ids

    Returns:
        Distinct order ids in claim order

    Raises:
        MalformedClaimError: If the list is not valid JSON, not a list, or
            holds something other than non-empty strings
    """
    raw = report.order_ids
    if isinstance(raw, str):
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedClaimError(report.report_id, f"invalid JSON: {e.msg}") from e
    else:
        data = raw

    if not isinstance(data, (list, tuple)):
        raise MalformedClaimError(
            report.report_id, f"expected a list, got {type(data).__name__}"
        )

    order_ids: list[str] = []
    for item in data:
        if not isinstance(item, str) or not item.strip():
            raise MalformedClaimError(report.report_id, f"invalid order id {item!r}")
        order_ids.append(item.strip())

    # A report claiming the same order twice claims it once
    return list(dict.fromkeys(order_ids))


class Matcher:
    """Associates the orders of a date/store scope with their claiming reports."""

    def __init__(
        self,
        order_source: OrderSource,
        report_source: ReportSource,
        config: Optional[MatchingConfig] = None,
        policy: Optional[ClaimPolicy] = None,
    ):
        self.order_source = order_source
        self.report_source = report_source
        self.config = config or MatchingConfig()
        self.policy = policy or build_claim_policy(self.config.multi_claim_policy)

    def match(self, target_date: date, store_id: Optional[str] = None) -> MatchPlan:
        """
        Read the scope's orders and reports and match them.

        Args:
            target_date: Pickup/report date to reconcile
            store_id: Optional store filter

        Returns:
            Match plan for the scope
        """
        orders = self.order_source.for_date(target_date, store_id)
        reports = self.report_source.for_date(target_date, store_id)
        logger.debug(
            f"Matching {len(orders)} orders against {len(reports)} reports "
            f"for {target_date.isoformat()} (store={store_id or 'all'})"
        )
        return self.build_plan(target_date, store_id, orders, reports)

    def build_plan(
        self,
        target_date: date,
        store_id: Optional[str],
        orders: list[Order],
        reports: list[CashReport],
    ) -> MatchPlan:
        """Match already loaded orders and reports."""
        orders_by_id = {order.order_id: order for order in orders}
        claimants: dict[str, list[CashReport]] = {}
        claimed_expected: dict[str, Decimal] = {}

        for report in reports:
            total = ZERO
            for order_id in self._claimed_ids(report):
                order = orders_by_id.get(order_id)
                if order is None:
                    logger.debug(
                        f"Report {report.report_id} claims {order_id}, "
                        "which is not in the reconciled scope"
                    )
                    continue
                total += order.expected_amount
                claimants.setdefault(order_id, []).append(report)
            claimed_expected[report.report_id] = total

        claims = {order_id: reports[-1] for order_id, reports in claimants.items()}
        conflicts = {
            order_id: reports for order_id, reports in claimants.items() if len(reports) > 1
        }
        if conflicts:
            claims.update(self.policy.resolve_conflicts(conflicts))

        return MatchPlan(
            target_date=target_date,
            store_id=store_id,
            orders=orders,
            reports=reports,
            claims=claims,
            claimed_expected=claimed_expected,
            ambiguous_order_ids=list(conflicts),
        )

    def _claimed_ids(self, report: CashReport) -> list[str]:
        try:
            return parse_claimed_ids(report)
        except MalformedClaimError as e:
            if self.config.malformed_claims == MalformedClaimsMode.ERROR:
                raise
            logger.warning(f"{e}; treating report as claiming no orders")
            return []
