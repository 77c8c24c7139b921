"""Tests for order-to-report matching and claim policies."""

import logging
from decimal import Decimal

import pytest

from cash_recon.config import MalformedClaimsMode, MatchingConfig, MultiClaimPolicy
from cash_recon.matching.matcher import Matcher, parse_claimed_ids
from cash_recon.utils.exceptions import AmbiguousClaimError, MalformedClaimError
from tests.factories import DAY, make_order, make_report


def _matcher(**matching) -> Matcher:
    # Sources are unused by build_plan
    return Matcher(order_source=None, report_source=None, config=MatchingConfig(**matching))


class TestParseClaimedIds:
    def test_sequence_passes_through(self):
        assert parse_claimed_ids(make_report("R1", "10", ["O1", "O2"])) == ["O1", "O2"]

    def test_json_text_is_parsed(self):
        assert parse_claimed_ids(make_report("R1", "10", '["O1", "O2"]')) == ["O1", "O2"]

    def test_duplicates_are_claimed_once(self):
        assert parse_claimed_ids(make_report("R1", "10", ["O1", "O2", "O1"])) == ["O1", "O2"]

    @pytest.mark.parametrize("raw", ["not json", '{"O1": 1}', "[1, 2]", '["O1", ""]', "null"])
    def test_malformed_lists_raise(self, raw):
        with pytest.raises(MalformedClaimError) as excinfo:
            parse_claimed_ids(make_report("R9", "10", raw))
        assert excinfo.value.report_id == "R9"


class TestBuildPlan:
    def test_claims_and_denominators(self):
        orders = [make_order("O1", "300"), make_order("O2", "200"), make_order("O3", "50")]
        reports = [make_report("R1", "550", ["O1", "O2"])]

        plan = _matcher().build_plan(DAY, None, orders, reports)

        assert plan.claiming_report("O1").report_id == "R1"
        assert plan.claiming_report("O2").report_id == "R1"
        assert plan.claiming_report("O3") is None
        # Only orders the report claims count towards its denominator
        assert plan.claimed_expected["R1"] == Decimal("500")
        assert plan.claiming_report("O2").report_id == "R1"

    def test_claims_outside_scope_are_ignored(self):
        orders = [make_order("O1", "100")]
        reports = [make_report("R1", "100", ["O1", "O-OTHER-DAY"])]

        plan = _matcher().build_plan(DAY, None, orders, reports)

        assert plan.claimed_expected["R1"] == Decimal("100")
        assert set(plan.claims) == {"O1"}

    def test_last_processed_report_wins_by_default(self):
        orders = [make_order("O1", "100")]
        reports = [
            make_report("R1", "100", ["O1"]),
            make_report("R2", "90", ["O1"]),
        ]

        plan = _matcher().build_plan(DAY, None, orders, reports)

        assert plan.claiming_report("O1").report_id == "R2"
        assert plan.ambiguous_order_ids == ["O1"]

    def test_flag_policy_logs_contested_orders(self, caplog):
        orders = [make_order("O1", "100")]
        reports = [
            make_report("R1", "100", ["O1"]),
            make_report("R2", "90", ["O1"]),
        ]

        with caplog.at_level(logging.WARNING, logger="cash_recon"):
            plan = _matcher(multi_claim_policy=MultiClaimPolicy.FLAG).build_plan(
                DAY, None, orders, reports
            )

        assert plan.claiming_report("O1").report_id == "R2"
        assert "O1 claimed by 2 reports" in caplog.text

    def test_reject_policy_raises(self):
        orders = [make_order("O1", "100"), make_order("O2", "100")]
        reports = [
            make_report("R1", "200", ["O1", "O2"]),
            make_report("R2", "100", ["O2"]),
        ]

        with pytest.raises(AmbiguousClaimError) as excinfo:
            _matcher(multi_claim_policy=MultiClaimPolicy.REJECT).build_plan(
                DAY, None, orders, reports
            )
        assert excinfo.value.claims == {"O2": ["R1", "R2"]}

    def test_malformed_claims_are_ignored_by_default(self, caplog):
        orders = [make_order("O1", "100")]
        reports = [make_report("R1", "100", "not json")]

        with caplog.at_level(logging.WARNING, logger="cash_recon"):
            plan = _matcher().build_plan(DAY, None, orders, reports)

        assert plan.claims == {}
        assert plan.claimed_expected["R1"] == Decimal("0")
        assert "malformed order_ids" in caplog.text

    def test_malformed_claims_can_be_fatal(self):
        orders = [make_order("O1", "100")]
        reports = [make_report("R1", "100", "not json")]

        with pytest.raises(MalformedClaimError):
            _matcher(malformed_claims=MalformedClaimsMode.ERROR).build_plan(
                DAY, None, orders, reports
            )


class TestMatch:
    def test_reads_scope_from_stores(self, order_repo, report_repo):
        order_repo.add_all(
            [
                make_order("O1", "100", store_id="A"),
                make_order("O2", "100", store_id="B"),
            ]
        )
        report_repo.add_all([make_report("R1", "100", ["O1", "O2"], store_id="A")])

        plan = Matcher(order_repo, report_repo).match(DAY, "A")

        assert [o.order_id for o in plan.orders] == ["O1"]
        assert [r.report_id for r in plan.reports] == ["R1"]
        assert set(plan.claims) == {"O1"}
