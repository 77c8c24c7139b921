"""
Claim policies for orders claimed by more than one cash report.

Each policy decides which report owns a contested order.
"""

from abc import ABC, abstractmethod
import logging

from ..config import MultiClaimPolicy
from ..models.records import CashReport
from ..utils.exceptions import AmbiguousClaimError

logger = logging.getLogger(__name__)


class ClaimPolicy(ABC):
    """Abstract base class for claim policies."""

    name: str = ""

    @abstractmethod
    def resolve_conflicts(
        self, conflicts: dict[str, list[CashReport]]
    ) -> dict[str, CashReport]:
        """
        Pick the owning report for each contested order.

        Args:
            conflicts: Order id to the reports claiming it, in the order
                the reports were processed

        Returns:
            Order id to winning report
        """
        pass


class LastClaimWinsPolicy(ClaimPolicy):
    """
    The report processed last owns the order.

    Reports are processed in arrival order, so a store's latest report for
    the day takes precedence.
    """

    name = MultiClaimPolicy.LAST_WINS.value

    def resolve_conflicts(
        self, conflicts: dict[str, list[CashReport]]
    ) -> dict[str, CashReport]:
        return {order_id: reports[-1] for order_id, reports in conflicts.items()}


class FlagAmbiguousPolicy(LastClaimWinsPolicy):
    """Last report wins, and every contested order is logged."""

    name = MultiClaimPolicy.FLAG.value

    def resolve_conflicts(
        self, conflicts: dict[str, list[CashReport]]
    ) -> dict[str, CashReport]:
        for order_id, reports in conflicts.items():
            logger.warning(
                f"Order {order_id} claimed by {len(reports)} reports "
                f"({', '.join(r.report_id for r in reports)}); "
                f"using {reports[-1].report_id}"
            )
        return super().resolve_conflicts(conflicts)


class RejectAmbiguousPolicy(ClaimPolicy):
    """Contested orders abort the run for the date."""

    name = MultiClaimPolicy.REJECT.value

    def resolve_conflicts(
        self, conflicts: dict[str, list[CashReport]]
    ) -> dict[str, CashReport]:
        if conflicts:
            raise AmbiguousClaimError(
                {
                    order_id: [r.report_id for r in reports]
                    for order_id, reports in conflicts.items()
                }
            )
        return {}


_POLICIES: dict[MultiClaimPolicy, type[ClaimPolicy]] = {
    MultiClaimPolicy.LAST_WINS: LastClaimWinsPolicy,
    MultiClaimPolicy.FLAG: FlagAmbiguousPolicy,
    MultiClaimPolicy.REJECT: RejectAmbiguousPolicy,
}


def build_claim_policy(policy: MultiClaimPolicy) -> ClaimPolicy:
    """Instantiate the claim policy configured for the matcher."""
    return _POLICIES[MultiClaimPolicy(policy)]()
