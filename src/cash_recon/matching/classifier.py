"""Per-order status, variance and priority classification."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..config import ThresholdsConfig
from ..models.records import ReconciliationStatus
from .allocation import ZERO, round_currency

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class Classification:
    """Outcome of comparing an allocated amount to an expected amount."""

    status: ReconciliationStatus
    variance_amount: Optional[Decimal]
    variance_pct: Optional[Decimal]
    is_high_priority: bool


UNACCOUNTED = Classification(
    status=ReconciliationStatus.UNACCOUNTED,
    variance_amount=None,
    variance_pct=None,
    is_high_priority=False,
)


class Classifier:
    """
    Classifies an order from its expected and allocated amounts.

    A variance smaller than the noise threshold is clamped to zero and the
    order counts as matched. Priority is evaluated on the clamped values.
    """

    def __init__(
        self,
        high_priority_amount: Decimal = Decimal("100"),
        high_priority_percent: Decimal = Decimal("10"),
        noise_threshold: Decimal = Decimal("0.005"),
    ):
        self.high_priority_amount = high_priority_amount
        self.high_priority_percent = high_priority_percent
        self.noise_threshold = noise_threshold

    @classmethod
    def from_config(cls, thresholds: ThresholdsConfig) -> "Classifier":
        return cls(
            high_priority_amount=thresholds.high_priority_amount,
            high_priority_percent=thresholds.high_priority_percent,
            noise_threshold=thresholds.noise_threshold,
        )

    def classify(
        self, expected_amount: Decimal, allocated_amount: Optional[Decimal]
    ) -> Classification:
        """
        Classify one order.

        Args:
            expected_amount: Amount the order should have collected
            allocated_amount: Order's share of the claiming report's total,
                or None when no report claims the order

        Returns:
            Classification with status, variances and priority flag
        """
        if allocated_amount is None:
            return UNACCOUNTED

        variance = round_currency(allocated_amount - expected_amount)
        if expected_amount != ZERO:
            variance_pct = round_currency(variance / expected_amount * HUNDRED)
        else:
            variance_pct = round_currency(ZERO)

        if abs(variance) < self.noise_threshold:
            variance = round_currency(ZERO)
            variance_pct = round_currency(ZERO)
            status = ReconciliationStatus.MATCHED
        elif variance > ZERO:
            status = ReconciliationStatus.OVER_COLLECTION
        else:
            status = ReconciliationStatus.UNDER_COLLECTION

        return Classification(
            status=status,
            variance_amount=variance,
            variance_pct=variance_pct,
            is_high_priority=self.is_high_priority(variance, variance_pct),
        )

    def is_high_priority(
        self, variance_amount: Optional[Decimal], variance_pct: Optional[Decimal]
    ) -> bool:
        """True when either the absolute or the percentage threshold is exceeded."""
        amount = abs(variance_amount) if variance_amount is not None else ZERO
        pct = abs(variance_pct) if variance_pct is not None else ZERO
        return amount > self.high_priority_amount or pct > self.high_priority_percent
