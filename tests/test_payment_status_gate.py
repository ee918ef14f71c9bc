"""Tests for the payment status -> ledger action table and the gate."""

import pytest

from app.services.payment_status_gate import LedgerAction, PaymentStatusGate, resolve_action


class TestResolveAction:

    @pytest.mark.parametrize("previous", [None, "PENDING", "SENT", "PARTIALLY_PAID", "CANCELLED"])
    def test_becoming_paid_ensures(self, previous):
        assert resolve_action(previous, "PAID") == LedgerAction.ENSURE

    @pytest.mark.parametrize("new", ["PENDING", "SENT", "PARTIALLY_PAID", "CANCELLED"])
    def test_leaving_paid_cancels(self, new):
        assert resolve_action("PAID", new) == LedgerAction.CANCEL

    def test_paid_amount_change_recomputes(self):
        assert resolve_action("PAID", "PAID", amount_changed=True) == LedgerAction.RECOMPUTE

    def test_paid_without_amount_change_is_noop(self):
        assert resolve_action("PAID", "PAID") == LedgerAction.NONE

    @pytest.mark.parametrize("previous,new", [
        (None, "PENDING"),
        ("PENDING", "SENT"),
        ("SENT", "PARTIALLY_PAID"),
        ("PENDING", "CANCELLED"),
    ])
    def test_unpaid_transitions_do_nothing(self, previous, new):
        assert resolve_action(previous, new, amount_changed=True) == LedgerAction.NONE


class TestPaymentStatusGate:

    async def test_paid_payment_gets_ledger_entry(self, db_session, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(lease, status="PAID")
        gate = PaymentStatusGate(db_session, ledger)

        entry = await gate.on_status_settled(payment, previous_status="PENDING")

        assert entry.commission.status == "PENDING"
        assert payment.commission_record_id == entry.commission.id

    async def test_unpaid_payment_is_ignored(self, db_session, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(lease, status="SENT")
        gate = PaymentStatusGate(db_session, ledger)

        assert await gate.on_status_settled(payment, previous_status="PENDING") is None
        assert payment.commission_record_id is None

    async def test_reverting_paid_cancels(self, db_session, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(lease, status="PAID")
        gate = PaymentStatusGate(db_session, ledger)
        await gate.on_status_settled(payment, previous_status=None)

        payment.status = "SENT"
        entry = await gate.on_status_settled(payment, previous_status="PAID")

        assert entry.commission.status == "CANCELLED"
        assert entry.payout.status == "CANCELLED"
