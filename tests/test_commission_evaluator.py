"""
Unit tests for the commission policy evaluator.

Covers individual and agency splits, clamping of out-of-range policy
values and the NoCommission outcomes.
"""

import logging
from decimal import Decimal

import pytest

from app.services.commission_diagnostics import LoggingDiagnosticsSink, ReconciliationDrift
from app.services.commission_evaluator import (
    ChargeLine,
    Computed,
    NoCommission,
    NoCommissionReason,
    fee_amount,
)
from app.services.commission_snapshot import (
    FeePolicy,
    HistoricalSettingsSnapshot,
    PropertyCommissionPolicy,
)


def percentage_property(rate="10", platform_fee="20"):
    return PropertyCommissionPolicy(
        commission_type="PERCENTAGE",
        commission_percentage=Decimal(rate),
        platform_fee_percentage=Decimal(platform_fee) if platform_fee is not None else None,
    )


def fixed_property(amount, platform_fee="20"):
    return PropertyCommissionPolicy(
        commission_type="FIXED_AMOUNT",
        commission_fixed_amount=Decimal(amount),
        platform_fee_percentage=Decimal(platform_fee),
    )


def assert_invariants(breakdown):
    total = breakdown.payment_amount
    assert abs(breakdown.agent_gross_commission + breakdown.landlord_net_amount - total) <= Decimal("0.01")
    assert Decimal("0") <= breakdown.agent_net_commission <= breakdown.agent_gross_commission
    assert Decimal("0") <= breakdown.landlord_net_amount <= total
    assert Decimal("0") <= breakdown.platform_commission <= breakdown.agent_gross_commission


class TestIndividualLease:

    def test_percentage_with_charges(self, evaluator, diagnostics):
        outcome = evaluator.evaluate(
            Decimal("1000"),
            [ChargeLine("Late fee", Decimal("50"))],
            agency_enabled=False,
            property_policy=percentage_property("10", "20"),
        )

        assert isinstance(outcome, Computed)
        b = outcome.breakdown
        assert b.payment_amount == Decimal("1050.00")
        assert b.agent_gross_commission == Decimal("105.00")
        assert b.agent_platform_fee == Decimal("21.00")
        assert b.agent_net_commission == Decimal("84.00")
        assert b.platform_commission == Decimal("21.00")
        assert b.landlord_net_amount == Decimal("945.00")
        assert b.agency_gross_commission == Decimal("0")
        assert b.agency_commission_enabled is False
        assert_invariants(b)
        assert diagnostics.events == []

    def test_charges_as_stored_dicts(self, evaluator):
        outcome = evaluator.evaluate(
            "1000.00",
            [{"label": "Water", "amount": "25.50"}],
            agency_enabled=False,
            property_policy=percentage_property("10"),
        )
        assert outcome.breakdown.payment_amount == Decimal("1025.50")
        assert outcome.breakdown.agent_gross_commission == Decimal("102.55")

    def test_fixed_commission_capped_at_total(self, evaluator):
        outcome = evaluator.evaluate(
            Decimal("50"), [], agency_enabled=False, property_policy=fixed_property("200"),
        )

        b = outcome.breakdown
        assert b.agent_gross_commission == Decimal("50.00")
        assert b.landlord_net_amount == Decimal("0")
        assert b.agent_platform_fee == Decimal("10.00")
        assert b.agent_net_commission == Decimal("40.00")
        assert_invariants(b)

    def test_missing_platform_fee_uses_default(self, evaluator):
        outcome = evaluator.evaluate(
            Decimal("1000"), [], agency_enabled=False,
            property_policy=percentage_property("10", platform_fee=None),
        )
        assert outcome.breakdown.agent_platform_fee == Decimal("20.00")

    def test_zero_platform_fee_is_respected(self, evaluator):
        outcome = evaluator.evaluate(
            Decimal("1000"), [], agency_enabled=False,
            property_policy=percentage_property("10", platform_fee="0"),
        )
        assert outcome.breakdown.agent_platform_fee == Decimal("0")
        assert outcome.breakdown.agent_net_commission == Decimal("100.00")

    @pytest.mark.parametrize("rate,expected_gross", [
        ("150", Decimal("1000.00")),
        ("-10", None),
    ])
    def test_out_of_range_rate_is_clamped(self, evaluator, rate, expected_gross):
        outcome = evaluator.evaluate(
            Decimal("1000"), [], agency_enabled=False, property_policy=percentage_property(rate),
        )
        if expected_gross is None:
            assert outcome == NoCommission(NoCommissionReason.ZERO_COMMISSION, Decimal("1000.00"))
        else:
            assert outcome.breakdown.agent_gross_commission == expected_gross
            assert outcome.breakdown.landlord_net_amount == Decimal("0")
            assert_invariants(outcome.breakdown)

    def test_platform_fee_over_100_percent_takes_whole_gross(self, evaluator):
        outcome = evaluator.evaluate(
            Decimal("1000"), [], agency_enabled=False,
            property_policy=percentage_property("10", platform_fee="250"),
        )
        assert outcome.breakdown.agent_platform_fee == Decimal("100.00")
        assert outcome.breakdown.agent_net_commission == Decimal("0")


class TestAgencyLease:

    def test_percentage_split(self, evaluator):
        outcome = evaluator.evaluate(
            Decimal("1000"), [],
            agency_enabled=True,
            property_policy=percentage_property("10"),
            agency_policy=FeePolicy("PERCENTAGE", rate=Decimal("10")),
            split_policy=FeePolicy("PERCENTAGE", rate=Decimal("50")),
        )

        b = outcome.breakdown
        assert b.agent_gross_commission == Decimal("100.00")
        assert b.platform_commission == Decimal("10.00")
        assert b.agency_platform_fee == Decimal("10.00")
        assert b.agency_gross_commission == Decimal("45.00")
        assert b.agency_net_commission == Decimal("45.00")
        assert b.agent_net_commission == Decimal("45.00")
        assert b.agent_platform_fee == Decimal("0")
        assert b.landlord_net_amount == Decimal("900.00")
        assert b.agency_commission_enabled is True
        assert_invariants(b)

    @pytest.mark.parametrize("fixed_type", ["FIXED", "FIXED_AMOUNT"])
    def test_fixed_fees_accept_both_spellings(self, evaluator, fixed_type):
        outcome = evaluator.evaluate(
            Decimal("1000"), [],
            agency_enabled=True,
            property_policy=percentage_property("10"),
            agency_policy=FeePolicy(fixed_type, fixed_amount=Decimal("15")),
            split_policy=FeePolicy(fixed_type, fixed_amount=Decimal("30")),
        )
        b = outcome.breakdown
        assert b.platform_commission == Decimal("15.00")
        assert b.agency_gross_commission == Decimal("30.00")
        assert b.agent_net_commission == Decimal("55.00")

    def test_oversized_fixed_fees_are_capped(self, evaluator):
        outcome = evaluator.evaluate(
            Decimal("1000"), [],
            agency_enabled=True,
            property_policy=percentage_property("10"),
            agency_policy=FeePolicy("FIXED", fixed_amount=Decimal("60")),
            split_policy=FeePolicy("FIXED", fixed_amount=Decimal("500")),
        )
        b = outcome.breakdown
        assert b.platform_commission == Decimal("60.00")
        assert b.agency_gross_commission == Decimal("40.00")
        assert b.agent_net_commission == Decimal("0")
        assert_invariants(b)

    def test_agency_without_policies_gives_agent_everything(self, evaluator):
        outcome = evaluator.evaluate(
            Decimal("1000"), [],
            agency_enabled=True,
            property_policy=percentage_property("10"),
        )
        b = outcome.breakdown
        assert b.platform_commission == Decimal("0")
        assert b.agency_gross_commission == Decimal("0")
        assert b.agent_net_commission == Decimal("100.00")


class TestNoCommission:

    def test_non_positive_total(self, evaluator):
        outcome = evaluator.evaluate(
            Decimal("0"), [], agency_enabled=False, property_policy=percentage_property(),
        )
        assert isinstance(outcome, NoCommission)
        assert outcome.reason == NoCommissionReason.NON_POSITIVE_TOTAL

    def test_negative_charges_can_zero_the_total(self, evaluator):
        outcome = evaluator.evaluate(
            Decimal("100"), [ChargeLine("Credit", Decimal("-100"))],
            agency_enabled=False, property_policy=percentage_property(),
        )
        assert outcome.reason == NoCommissionReason.NON_POSITIVE_TOTAL

    def test_no_property_policy(self, evaluator):
        outcome = evaluator.evaluate(
            Decimal("1000"), [], agency_enabled=False,
            property_policy=PropertyCommissionPolicy(commission_type=None),
        )
        assert outcome.reason == NoCommissionReason.NO_POLICY

    def test_unknown_commission_type(self, evaluator):
        outcome = evaluator.evaluate(
            Decimal("1000"), [], agency_enabled=False,
            property_policy=PropertyCommissionPolicy(commission_type="TIERED"),
        )
        assert outcome.reason == NoCommissionReason.NO_POLICY

    def test_zero_fixed_commission(self, evaluator):
        outcome = evaluator.evaluate(
            Decimal("1000"), [], agency_enabled=False, property_policy=fixed_property("0"),
        )
        assert outcome.reason == NoCommissionReason.ZERO_COMMISSION


class TestSnapshotEvaluation:

    def test_breakdown_carries_policy_snapshot(self, evaluator):
        policy = percentage_property("12.5")
        outcome = evaluator.evaluate(Decimal("800"), [], agency_enabled=False, property_policy=policy)

        snapshot = outcome.breakdown.snapshot
        assert snapshot.property_policy == policy
        assert snapshot.agency_commission_enabled is False
        assert snapshot.agency_policy is None

    def test_evaluate_snapshot_matches_live_evaluation(self, evaluator):
        live = evaluator.evaluate(
            Decimal("1000"), [],
            agency_enabled=True,
            property_policy=percentage_property("10"),
            agency_policy=FeePolicy("PERCENTAGE", rate=Decimal("10")),
            split_policy=FeePolicy("PERCENTAGE", rate=Decimal("50")),
        )
        stored = HistoricalSettingsSnapshot.from_dict(live.breakdown.snapshot.to_dict())

        replayed = evaluator.evaluate_snapshot(Decimal("1000"), [], stored)

        assert replayed.breakdown.amounts() == live.breakdown.amounts()


class TestFeeAmount:

    def test_none_policy(self):
        assert fee_amount(None, Decimal("100")) == Decimal("0")

    def test_percentage_without_rate(self):
        assert fee_amount(FeePolicy("PERCENTAGE"), Decimal("100")) == Decimal("0")


class TestDiagnostics:

    def test_logging_sink_writes_warning(self, caplog):
        sink = LoggingDiagnosticsSink()
        event = ReconciliationDrift(
            payment_amount=Decimal("100.00"),
            agent_gross_commission=Decimal("10.00"),
            landlord_net_amount=Decimal("90.05"),
            drift=Decimal("0.05"),
            payment_record_id="abc",
        )

        with caplog.at_level(logging.WARNING, logger="app.services.commission_diagnostics"):
            sink.reconciliation_drift(event)

        assert "drift of 0.05" in caplog.text
        assert "payment=abc" in caplog.text
