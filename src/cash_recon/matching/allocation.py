"""
Proportional allocation of a report's collected total across its orders.

A store reports one lump sum per day. Each claimed order's share is
inferred in proportion to its expected amount.
"""

from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0")


def round_currency(value: Decimal) -> Decimal:
    """Round to cents, ties away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def allocate_share(
    expected_amount: Decimal,
    claimed_expected_sum: Decimal,
    total_collected: Decimal,
) -> Decimal:
    """
    Compute an order's share of a report total.

    Args:
        expected_amount: Expected amount of the order
        claimed_expected_sum: Sum of expected amounts over every order the
            report claims
        total_collected: Report's collected total

    Returns:
        Allocated amount, rounded to cents only once at the end
    """
    if claimed_expected_sum > ZERO:
        share = (expected_amount / claimed_expected_sum) * total_collected
    else:
        # Every claimed order expects nothing: the whole total goes to each
        share = total_collected
    return round_currency(share)
