"""Matching, allocation and classification."""

from .engine import ReconciliationEngine, coerce_date, iter_dates
from .matcher import Matcher, MatchPlan, parse_claimed_ids
from .allocation import allocate_share, round_currency
from .classifier import Classifier, Classification
from .policies import (
    ClaimPolicy,
    LastClaimWinsPolicy,
    FlagAmbiguousPolicy,
    RejectAmbiguousPolicy,
    build_claim_policy,
)

__all__ = [
    "ReconciliationEngine",
    "coerce_date",
    "iter_dates",
    "Matcher",
    "MatchPlan",
    "parse_claimed_ids",
    "allocate_share",
    "round_currency",
    "Classifier",
    "Classification",
    "ClaimPolicy",
    "LastClaimWinsPolicy",
    "FlagAmbiguousPolicy",
    "RejectAmbiguousPolicy",
    "build_claim_policy",
]
