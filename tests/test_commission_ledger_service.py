"""
Integration tests for CommissionLedgerService against an in-memory database.

Covers record creation, idempotent upserts, historical recomputation,
cancel/reactivate cycles, back-link repair and settlement bookkeeping.
"""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import InvalidStatusTransitionError, LedgerError, NotFoundError
from app.models.commission import CommissionRecord, LandlordPayment
from app.models.lease_payment import LeasePaymentRecord
from app.models.leasing import Property
from app.services.commission_ledger_service import payout_net_amount


async def count_rows(db_session, model):
    result = await db_session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


class TestPayoutNetAmount:

    def test_additions_and_deductions(self):
        adjustments = [
            {"label": "Repairs", "amount": "120.00", "type": "DEDUCTION"},
            {"label": "Refund", "amount": "20.00", "type": "ADDITION"},
        ]
        assert payout_net_amount(Decimal("945.00"), adjustments) == Decimal("845.00")

    def test_floored_at_zero(self):
        adjustments = [{"label": "Damage", "amount": "500", "type": "DEDUCTION"}]
        assert payout_net_amount(Decimal("100"), adjustments) == Decimal("0")


class TestEnsureForPaidPayment:

    async def test_creates_commission_and_payout(self, db_session, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(
            lease, amount_due=Decimal("1000"), charges=[{"label": "Late fee", "amount": "50"}],
        )

        entry = await ledger.ensure_for_paid_payment(payment)

        commission, payout = entry.commission, entry.payout
        assert commission.payment_record_id == payment.id
        assert commission.lease_id == lease.id
        assert commission.agent_id == lease.agent_id
        assert commission.landlord_id == lease.landlord_id
        assert commission.status == "PENDING"
        assert commission.payment_amount == Decimal("1050.00")
        assert commission.agent_gross_commission == Decimal("105.00")
        assert commission.agent_platform_fee == Decimal("21.00")
        assert commission.agent_net_commission == Decimal("84.00")
        assert commission.landlord_net_amount == Decimal("945.00")
        assert Decimal(commission.commission_settings["property_commission_percentage"]) == Decimal("10")

        assert payout.commission_record_id == commission.id
        assert payout.payment_record_id == payment.id
        assert payout.landlord_id == lease.landlord_id
        assert payout.gross_amount == Decimal("1050.00")
        assert payout.net_amount == Decimal("945.00")
        assert payout.adjustments == []
        assert payout.status == "PENDING"

        assert payment.commission_record_id == commission.id
        assert payment.landlord_payment_id == payout.id

    async def test_is_idempotent(self, db_session, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(lease)

        first = await ledger.ensure_for_paid_payment(payment)
        second = await ledger.ensure_for_paid_payment(payment)

        assert second.commission.id == first.commission.id
        assert second.payout.id == first.payout.id
        assert await count_rows(db_session, CommissionRecord) == 1
        assert await count_rows(db_session, LandlordPayment) == 1

    async def test_no_commission_creates_nothing(self, db_session, ledger, make_lease, make_payment):
        lease = await make_lease(commission_type=None, commission_percentage=None)
        payment = await make_payment(lease)

        assert await ledger.ensure_for_paid_payment(payment) is None
        assert await count_rows(db_session, CommissionRecord) == 0
        assert payment.commission_record_id is None

    async def test_agency_lease_split(self, db_session, ledger, make_agency, make_lease, make_payment):
        agency = await make_agency(commission_type="PERCENTAGE", rate=Decimal("10"))
        lease = await make_lease(
            agency=agency,
            agency_commission_type="PERCENTAGE",
            agency_commission_rate=Decimal("50"),
        )
        payment = await make_payment(lease)

        commission = (await ledger.ensure_for_paid_payment(payment)).commission

        assert commission.agency_id == agency.id
        assert commission.agency_commission_enabled is True
        assert commission.platform_commission == Decimal("10.00")
        assert commission.agency_gross_commission == Decimal("45.00")
        assert commission.agent_net_commission == Decimal("45.00")
        assert commission.agent_platform_fee == Decimal("0")
        assert commission.landlord_net_amount == Decimal("900.00")
        assert commission.commission_settings["agency_commission_enabled"] is True
        assert Decimal(commission.commission_settings["lease_agency_commission_rate"]) == Decimal("50")

    async def test_missing_lease_raises(self, ledger):
        payment = LeasePaymentRecord(
            id=uuid.uuid4(),
            lease_id=uuid.uuid4(),
            agent_id=uuid.uuid4(),
            label="Orphan",
            amount_due=Decimal("500"),
            charges=[],
            status="PAID",
        )

        with pytest.raises(NotFoundError) as exc_info:
            await ledger.ensure_for_paid_payment(payment)
        assert exc_info.value.entity == "Lease"


class TestRecompute:

    async def test_uses_stored_settings_not_live_policy(self, db_session, ledger, make_lease, make_payment):
        lease = await make_lease(commission_percentage=Decimal("10"))
        payment = await make_payment(lease, amount_due=Decimal("1000"))
        await ledger.ensure_for_paid_payment(payment)

        prop = await db_session.get(Property, lease.property_id)
        prop.commission_percentage = Decimal("50")
        await db_session.flush()

        payment.amount_due = Decimal("2000")
        entry = await ledger.recompute(payment)

        assert entry.commission.agent_gross_commission == Decimal("200.00")
        assert entry.commission.landlord_net_amount == Decimal("1800.00")
        assert entry.payout.gross_amount == Decimal("2000.00")
        assert entry.payout.net_amount == Decimal("1800.00")

    async def test_missing_snapshot_is_filled_from_live_policy(self, db_session, ledger, make_lease, make_payment):
        lease = await make_lease(commission_percentage=Decimal("10"))
        payment = await make_payment(lease)
        commission = (await ledger.ensure_for_paid_payment(payment)).commission
        commission.commission_settings = None

        prop = await db_session.get(Property, lease.property_id)
        prop.commission_percentage = Decimal("5")
        entry = await ledger.recompute(payment)

        assert entry.commission.agent_gross_commission == Decimal("50.00")
        assert Decimal(entry.commission.commission_settings["property_commission_percentage"]) == Decimal("5")

    async def test_zero_total_cancels(self, db_session, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(lease)
        await ledger.ensure_for_paid_payment(payment)

        payment.amount_due = Decimal("0")
        entry = await ledger.recompute(payment)

        assert entry.commission.status == "CANCELLED"
        assert entry.payout.status == "CANCELLED"
        assert entry.commission.payment_amount == Decimal("0.00")

    async def test_adjustments_survive_recompute(self, db_session, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(lease, amount_due=Decimal("1000"))
        payout = (await ledger.ensure_for_paid_payment(payment)).payout
        await ledger.add_payout_adjustment(payout.id, "Repairs", Decimal("50"), "DEDUCTION")

        payment.amount_due = Decimal("2000")
        entry = await ledger.recompute(payment)

        assert entry.payout.gross_amount == Decimal("2000.00")
        assert entry.payout.net_amount == Decimal("1750.00")
        assert len(entry.payout.adjustments) == 1

    async def test_recreates_missing_payout(self, db_session, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(lease)
        entry = await ledger.ensure_for_paid_payment(payment)
        old_payout_id = entry.payout.id

        await db_session.delete(entry.payout)
        await db_session.flush()

        repaired = await ledger.recompute(payment)

        assert repaired.payout is not None
        assert repaired.payout.id != old_payout_id
        assert repaired.payout.commission_record_id == entry.commission.id
        assert payment.landlord_payment_id == repaired.payout.id

    async def test_zero_total_recreates_missing_payout_as_cancelled(
        self, db_session, ledger, make_lease, make_payment,
    ):
        lease = await make_lease()
        payment = await make_payment(lease)
        entry = await ledger.ensure_for_paid_payment(payment)

        await db_session.delete(entry.payout)
        await db_session.flush()

        payment.amount_due = Decimal("0")
        repaired = await ledger.recompute(payment)

        assert repaired.commission.status == "CANCELLED"
        assert repaired.payout is not None
        assert repaired.payout.status == "CANCELLED"
        assert repaired.payout.commission_record_id == entry.commission.id
        assert repaired.payout.gross_amount == Decimal("0.00")
        assert payment.landlord_payment_id == repaired.payout.id
        assert await count_rows(db_session, LandlordPayment) == 1

    async def test_repeated_recompute_is_stable(self, db_session, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(
            lease, amount_due=Decimal("1333.33"), charges=[{"label": "Parking", "amount": "66.67"}],
        )
        await ledger.ensure_for_paid_payment(payment)
        await db_session.commit()

        amount_columns = [
            "payment_amount",
            "agent_gross_commission",
            "agent_platform_fee",
            "agent_net_commission",
            "agency_gross_commission",
            "agency_platform_fee",
            "agency_net_commission",
            "platform_commission",
            "landlord_net_amount",
        ]

        first = await ledger.recompute(payment)
        await db_session.commit()
        await db_session.refresh(first.commission)
        await db_session.refresh(first.payout)
        first_values = [getattr(first.commission, name) for name in amount_columns]
        first_payout = (first.payout.gross_amount, first.payout.net_amount)
        first_settings = dict(first.commission.commission_settings)

        second = await ledger.recompute(payment)
        await db_session.commit()
        await db_session.refresh(second.commission)
        await db_session.refresh(second.payout)

        assert second.commission.id == first.commission.id
        assert [getattr(second.commission, name) for name in amount_columns] == first_values
        assert (second.payout.gross_amount, second.payout.net_amount) == first_payout
        assert second.commission.commission_settings == first_settings
        assert await count_rows(db_session, CommissionRecord) == 1
        assert await count_rows(db_session, LandlordPayment) == 1

    async def test_stale_back_link_falls_back_to_forward_link(self, db_session, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(lease)
        entry = await ledger.ensure_for_paid_payment(payment)

        payment.commission_record_id = uuid.uuid4()
        payment.landlord_payment_id = None

        found = await ledger.find_commission(payment)
        assert found.id == entry.commission.id

        await ledger.recompute(payment)
        assert payment.commission_record_id == entry.commission.id
        assert payment.landlord_payment_id == entry.payout.id
        assert await count_rows(db_session, CommissionRecord) == 1


class TestCancelAndReactivate:

    async def test_revert_then_repay_reactivates(self, db_session, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(lease)
        entry = await ledger.ensure_for_paid_payment(payment)
        await ledger.mark_commission_paid(entry.commission.id)
        assert entry.commission.paid_at is not None

        payment.status = "PENDING"
        cancelled = await ledger.cancel_for(payment)
        assert cancelled.commission.status == "CANCELLED"
        assert cancelled.payout.status == "CANCELLED"

        payment.status = "PAID"
        reactivated = await ledger.ensure_for_paid_payment(payment)

        assert reactivated.commission.id == entry.commission.id
        assert reactivated.commission.status == "PENDING"
        assert reactivated.commission.paid_at is None
        assert reactivated.payout.status == "PENDING"
        assert await count_rows(db_session, CommissionRecord) == 1

    async def test_cancel_without_commission_is_noop(self, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(lease, status="PENDING")
        assert await ledger.cancel_for(payment) is None

    async def test_reactivate_if_cancelled(self, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(lease)
        await ledger.ensure_for_paid_payment(payment)
        await ledger.cancel_for(payment)

        entry = await ledger.reactivate_if_cancelled(payment)

        assert entry.commission.status == "PENDING"
        assert entry.payout.status == "PENDING"


class TestSettlement:

    async def test_mark_commission_paid_twice_is_rejected(self, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(lease)
        commission = (await ledger.ensure_for_paid_payment(payment)).commission

        await ledger.mark_commission_paid(commission.id)
        assert commission.status == "PAID"

        with pytest.raises(InvalidStatusTransitionError):
            await ledger.mark_commission_paid(commission.id)

    async def test_unknown_commission(self, ledger):
        with pytest.raises(NotFoundError):
            await ledger.mark_commission_paid(uuid.uuid4())

    async def test_payout_lifecycle(self, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(lease)
        payout = (await ledger.ensure_for_paid_payment(payment)).payout

        await ledger.add_payout_adjustment(payout.id, "Cleaning", Decimal("45"), "deduction")
        await ledger.mark_payout_processed(payout.id)
        await ledger.add_payout_adjustment(payout.id, "Deposit top-up", Decimal("10"), "ADDITION")
        await ledger.mark_payout_paid(payout.id, payment_method="BANK_TRANSFER", payment_reference="TRX-991")

        assert payout.status == "PAID"
        assert payout.net_amount == Decimal("865.00")
        assert payout.payment_reference == "TRX-991"
        assert payout.paid_at is not None
        assert [a["type"] for a in payout.adjustments] == ["DEDUCTION", "ADDITION"]

        with pytest.raises(LedgerError):
            await ledger.add_payout_adjustment(payout.id, "Late", Decimal("5"), "DEDUCTION")
        with pytest.raises(InvalidStatusTransitionError):
            await ledger.mark_payout_processed(payout.id)

    async def test_adjustment_applies_to_landlord_net(self, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(
            lease, amount_due=Decimal("1000"), charges=[{"label": "Late fee", "amount": "50"}],
        )
        payout = (await ledger.ensure_for_paid_payment(payment)).payout

        await ledger.add_payout_adjustment(payout.id, "Repairs", Decimal("100"), "DEDUCTION")

        assert payout.gross_amount == Decimal("1050.00")
        assert payout.net_amount == Decimal("845.00")

    @pytest.mark.parametrize("amount,kind", [
        (Decimal("0"), "DEDUCTION"),
        (Decimal("-5"), "ADDITION"),
        (Decimal("5"), "REFUND"),
    ])
    async def test_invalid_adjustments(self, ledger, make_lease, make_payment, amount, kind):
        lease = await make_lease()
        payment = await make_payment(lease)
        payout = (await ledger.ensure_for_paid_payment(payment)).payout

        with pytest.raises(LedgerError):
            await ledger.add_payout_adjustment(payout.id, "Bad", amount, kind)
        assert payout.adjustments == []


class TestCommissionRecordConstraints:

    async def test_one_commission_per_payment(self, db_session, ledger, make_lease, make_payment):
        lease = await make_lease()
        payment = await make_payment(lease)
        existing = (await ledger.ensure_for_paid_payment(payment)).commission
        await db_session.commit()

        db_session.add(CommissionRecord(
            id=uuid.uuid4(),
            payment_record_id=payment.id,
            lease_id=existing.lease_id,
            property_id=existing.property_id,
            agent_id=existing.agent_id,
            landlord_id=existing.landlord_id,
            payment_amount=existing.payment_amount,
            status="PENDING",
        ))

        with pytest.raises(IntegrityError):
            await db_session.flush()
        await db_session.rollback()
