"""
Commission Ledger Service

Keeps the three linked records of a commissioned payment consistent:

    LeasePaymentRecord  --commission_record_id-->  CommissionRecord
            |                                            |
            +------landlord_payment_id------>  LandlordPayment

The forward links (CommissionRecord.payment_record_id,
LandlordPayment.commission_record_id / payment_record_id) are the
source of truth. The ids on the payment are a cache, refreshed on every
write and only trusted on read after checking they point back.

Callers must hold the payment row lock (SELECT ... FOR UPDATE) before
calling any write method. This service only flushes; the caller owns
the transaction.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum_utils import is_status, status_in, to_enum
from app.core.exceptions import InvalidStatusTransitionError, LedgerError, NotFoundError
from app.core.money import ZERO, clamp_non_negative, quantize_money, to_decimal
from app.models.commission import (
    AdjustmentType,
    CommissionRecord,
    CommissionStatus,
    LandlordPayment,
    LandlordPaymentStatus,
)
from app.models.lease_payment import LeasePaymentRecord, PaymentRecordStatus
from app.services.commission_evaluator import (
    CommissionPolicyEvaluator,
    NoCommission,
)
from app.services.commission_policy_source import CommissionPolicySource
from app.services.commission_snapshot import HistoricalSettingsSnapshot


logger = logging.getLogger(__name__)


# Settlement transitions: current_status -> allowed next statuses
COMMISSION_TRANSITIONS: Dict[str, List[str]] = {
    CommissionStatus.PENDING.value: [CommissionStatus.PAID.value, CommissionStatus.CANCELLED.value],
    CommissionStatus.PAID.value: [CommissionStatus.CANCELLED.value],
    CommissionStatus.CANCELLED.value: [CommissionStatus.PENDING.value],
}

PAYOUT_TRANSITIONS: Dict[str, List[str]] = {
    LandlordPaymentStatus.PENDING.value: [
        LandlordPaymentStatus.PROCESSED.value,
        LandlordPaymentStatus.PAID.value,
        LandlordPaymentStatus.CANCELLED.value,
    ],
    LandlordPaymentStatus.PROCESSED.value: [
        LandlordPaymentStatus.PAID.value,
        LandlordPaymentStatus.CANCELLED.value,
    ],
    LandlordPaymentStatus.PAID.value: [LandlordPaymentStatus.CANCELLED.value],
    LandlordPaymentStatus.CANCELLED.value: [LandlordPaymentStatus.PENDING.value],
}


def can_transition(transitions: Dict[str, List[str]], current_status: str, new_status: str) -> bool:
    return new_status in transitions.get(current_status, [])


def payout_net_amount(landlord_net_amount: Decimal, adjustments: Optional[List[dict]]) -> Decimal:
    """landlord net + additions - deductions, floored at zero."""
    net = to_decimal(landlord_net_amount)
    for adjustment in adjustments or []:
        amount = to_decimal(adjustment.get("amount"))
        if str(adjustment.get("type", "")).upper() == AdjustmentType.DEDUCTION.value:
            net -= amount
        else:
            net += amount
    return quantize_money(clamp_non_negative(net))


@dataclass
class LedgerEntry:
    """A commission record and its landlord payout."""
    commission: CommissionRecord
    payout: Optional[LandlordPayment]


class CommissionLedgerService:
    """Writes commission records and landlord payouts for lease payments."""

    def __init__(
        self,
        db: AsyncSession,
        evaluator: Optional[CommissionPolicyEvaluator] = None,
        policy_source: Optional[CommissionPolicySource] = None,
    ):
        self.db = db
        self.evaluator = evaluator or CommissionPolicyEvaluator()
        self.policy_source = policy_source or CommissionPolicySource(db)

    # ==================== Lookups ====================

    async def find_commission(self, payment: LeasePaymentRecord) -> Optional[CommissionRecord]:
        """Commission for a payment, via the back-link then the forward link."""
        if payment.commission_record_id:
            commission = await self.db.get(CommissionRecord, payment.commission_record_id)
            if commission and commission.payment_record_id == payment.id:
                return commission

        result = await self.db.execute(
            select(CommissionRecord).where(CommissionRecord.payment_record_id == payment.id)
        )
        return result.scalar_one_or_none()

    async def find_payout(
        self,
        payment: LeasePaymentRecord,
        commission: Optional[CommissionRecord] = None,
    ) -> Optional[LandlordPayment]:
        """Landlord payout for a payment, via the back-link then the forward links."""
        if payment.landlord_payment_id:
            payout = await self.db.get(LandlordPayment, payment.landlord_payment_id)
            if payout and payout.payment_record_id == payment.id:
                return payout

        if commission is not None:
            result = await self.db.execute(
                select(LandlordPayment).where(LandlordPayment.commission_record_id == commission.id)
            )
            payout = result.scalar_one_or_none()
            if payout:
                return payout

        result = await self.db.execute(
            select(LandlordPayment).where(LandlordPayment.payment_record_id == payment.id)
        )
        return result.scalar_one_or_none()

    # ==================== Ledger writes ====================

    async def ensure_for_paid_payment(self, payment: LeasePaymentRecord) -> Optional[LedgerEntry]:
        """
        Create the commission and payout for a payment that just became PAID.

        Upsert keyed by payment: when a commission already exists this
        behaves like recompute(). Returns None when the payment earns no
        commission.
        """
        commission = await self.find_commission(payment)
        if commission is not None:
            return await self._apply_recompute(payment, commission)
        return await self._create(payment)

    async def recompute(self, payment: LeasePaymentRecord) -> Optional[LedgerEntry]:
        """
        Re-evaluate an existing commission after the payment amount changed.

        Uses the settings snapshot stored on the record. Live policy is only
        read when no snapshot was stored, and is then stored.
        """
        commission = await self.find_commission(payment)
        if commission is None:
            return await self._create(payment)
        return await self._apply_recompute(payment, commission)

    async def cancel_for(self, payment: LeasePaymentRecord) -> Optional[LedgerEntry]:
        """Move the payment's commission and payout to CANCELLED."""
        commission = await self.find_commission(payment)
        if commission is None:
            return None

        payout = await self.find_payout(payment, commission)
        self._set_cancelled(commission, payout)
        self._sync_back_links(payment, commission, payout)
        await self.db.flush()

        logger.info(f"Cancelled commission {commission.id} for payment {payment.id}")
        return LedgerEntry(commission=commission, payout=payout)

    async def reactivate_if_cancelled(self, payment: LeasePaymentRecord) -> Optional[LedgerEntry]:
        """Move a CANCELLED commission and payout back to PENDING."""
        commission = await self.find_commission(payment)
        if commission is None:
            return None

        payout = await self.find_payout(payment, commission)
        if self._reactivate(commission, payout):
            logger.info(f"Reactivated commission {commission.id} for payment {payment.id}")
        self._sync_back_links(payment, commission, payout)
        await self.db.flush()
        return LedgerEntry(commission=commission, payout=payout)

    async def _create(self, payment: LeasePaymentRecord) -> Optional[LedgerEntry]:
        context = await self.policy_source.load_lease_context(payment.lease_id)
        outcome = self.evaluator.evaluate_snapshot(
            payment.amount_due,
            payment.charges,
            context.snapshot,
            payment_record_id=str(payment.id),
        )
        if isinstance(outcome, NoCommission):
            logger.debug(f"No commission for payment {payment.id}: {outcome.reason.value}")
            return None

        breakdown = outcome.breakdown
        commission = CommissionRecord(
            id=uuid.uuid4(),
            payment_record_id=payment.id,
            lease_id=payment.lease_id,
            property_id=context.property.id,
            agent_id=payment.agent_id or context.lease.agent_id,
            agency_id=payment.agency_id or context.lease.agency_id,
            landlord_id=context.lease.landlord_id or context.property.landlord_id,
            commission_settings=breakdown.snapshot.to_dict(),
            status=CommissionStatus.PENDING.value,
            **breakdown.amounts(),
        )
        self.db.add(commission)
        await self.db.flush()

        payout = self._new_payout(payment, commission)
        self.db.add(payout)
        self._sync_back_links(payment, commission, payout)
        await self.db.flush()

        logger.info(
            f"Created commission {commission.id} for payment {payment.id}: "
            f"gross={commission.agent_gross_commission}, landlord={commission.landlord_net_amount}"
        )
        return LedgerEntry(commission=commission, payout=payout)

    async def _apply_recompute(
        self,
        payment: LeasePaymentRecord,
        commission: CommissionRecord,
    ) -> LedgerEntry:
        snapshot = HistoricalSettingsSnapshot.from_dict(commission.commission_settings)
        if snapshot is None:
            context = await self.policy_source.load_lease_context(payment.lease_id)
            snapshot = context.snapshot
            commission.commission_settings = snapshot.to_dict()

        outcome = self.evaluator.evaluate_snapshot(
            payment.amount_due,
            payment.charges,
            snapshot,
            payment_record_id=str(payment.id),
        )
        payout = await self.find_payout(payment, commission)

        if isinstance(outcome, NoCommission):
            commission.payment_amount = outcome.payment_amount
            self._set_cancelled(commission, payout)
            if payout is None:
                payout = self._new_payout(payment, commission)
                self.db.add(payout)
                logger.info(f"Recreated missing landlord payout for commission {commission.id}")
            else:
                payout.gross_amount = commission.payment_amount
            self._sync_back_links(payment, commission, payout)
            await self.db.flush()
            logger.info(
                f"Commission {commission.id} cancelled on recompute: {outcome.reason.value}"
            )
            return LedgerEntry(commission=commission, payout=payout)

        for field_name, value in outcome.breakdown.amounts().items():
            setattr(commission, field_name, value)

        if payout is None:
            payout = self._new_payout(payment, commission)
            self.db.add(payout)
            logger.info(f"Recreated missing landlord payout for commission {commission.id}")
        else:
            payout.gross_amount = commission.payment_amount
            payout.net_amount = payout_net_amount(commission.landlord_net_amount, payout.adjustments)

        if is_status(payment.status, PaymentRecordStatus.PAID):
            if self._reactivate(commission, payout):
                logger.info(f"Reactivated commission {commission.id} for payment {payment.id}")

        self._sync_back_links(payment, commission, payout)
        await self.db.flush()
        return LedgerEntry(commission=commission, payout=payout)

    def _new_payout(self, payment: LeasePaymentRecord, commission: CommissionRecord) -> LandlordPayment:
        status = LandlordPaymentStatus.PENDING.value
        if is_status(commission.status, CommissionStatus.CANCELLED):
            status = LandlordPaymentStatus.CANCELLED.value
        return LandlordPayment(
            id=uuid.uuid4(),
            commission_record_id=commission.id,
            payment_record_id=payment.id,
            lease_id=payment.lease_id,
            landlord_id=commission.landlord_id,
            gross_amount=commission.payment_amount,
            net_amount=commission.landlord_net_amount,
            adjustments=[],
            status=status,
        )

    @staticmethod
    def _set_cancelled(commission: CommissionRecord, payout: Optional[LandlordPayment]) -> None:
        commission.status = CommissionStatus.CANCELLED.value
        if payout is not None:
            payout.status = LandlordPaymentStatus.CANCELLED.value

    @staticmethod
    def _reactivate(commission: CommissionRecord, payout: Optional[LandlordPayment]) -> bool:
        changed = False
        if is_status(commission.status, CommissionStatus.CANCELLED):
            commission.status = CommissionStatus.PENDING.value
            commission.paid_at = None
            changed = True
        if payout is not None and is_status(payout.status, LandlordPaymentStatus.CANCELLED):
            payout.status = LandlordPaymentStatus.PENDING.value
            payout.paid_at = None
            changed = True
        return changed

    @staticmethod
    def _sync_back_links(
        payment: LeasePaymentRecord,
        commission: CommissionRecord,
        payout: Optional[LandlordPayment],
    ) -> None:
        payment.commission_record_id = commission.id
        payment.landlord_payment_id = payout.id if payout is not None else None

    # ==================== Settlement bookkeeping ====================

    async def get_commission(self, commission_id: uuid.UUID) -> CommissionRecord:
        result = await self.db.execute(
            select(CommissionRecord)
            .where(CommissionRecord.id == commission_id)
            .with_for_update()
        )
        commission = result.scalar_one_or_none()
        if commission is None:
            raise NotFoundError("Commission record", commission_id)
        return commission

    async def get_payout(self, payout_id: uuid.UUID) -> LandlordPayment:
        result = await self.db.execute(
            select(LandlordPayment)
            .where(LandlordPayment.id == payout_id)
            .with_for_update()
        )
        payout = result.scalar_one_or_none()
        if payout is None:
            raise NotFoundError("Landlord payment", payout_id)
        return payout

    async def mark_commission_paid(
        self,
        commission_id: uuid.UUID,
        paid_at: Optional[datetime] = None,
    ) -> CommissionRecord:
        """Record that the agent commission was paid out."""
        commission = await self.get_commission(commission_id)
        new_status = CommissionStatus.PAID.value
        if not can_transition(COMMISSION_TRANSITIONS, commission.status, new_status):
            raise InvalidStatusTransitionError("commission", commission.status, new_status)

        commission.status = new_status
        commission.paid_at = paid_at or datetime.now(timezone.utc)
        await self.db.flush()
        logger.info(f"Commission {commission.id} marked PAID")
        return commission

    async def add_payout_adjustment(
        self,
        payout_id: uuid.UUID,
        label: str,
        amount: Decimal,
        adjustment_type: str,
    ) -> LandlordPayment:
        """Append a manual ADDITION or DEDUCTION and refresh the net amount."""
        payout = await self.get_payout(payout_id)

        if not status_in(payout.status, LandlordPaymentStatus.PENDING, LandlordPaymentStatus.PROCESSED):
            raise LedgerError(
                f"Cannot adjust a landlord payment in status {payout.status}",
                {"landlord_payment_id": str(payout.id), "status": payout.status},
            )

        kind = to_enum(adjustment_type, AdjustmentType)
        if kind is None:
            raise LedgerError(f"Invalid adjustment type: {adjustment_type}")

        amount = quantize_money(to_decimal(amount))
        if amount <= ZERO:
            raise LedgerError("Adjustment amount must be positive", {"amount": str(amount)})

        commission = await self.db.get(CommissionRecord, payout.commission_record_id)
        if commission is None:
            raise NotFoundError("Commission record", payout.commission_record_id)

        # Reassign so the JSON column is marked dirty
        payout.adjustments = list(payout.adjustments or []) + [
            {"label": label, "amount": str(amount), "type": kind.value}
        ]
        payout.net_amount = payout_net_amount(commission.landlord_net_amount, payout.adjustments)
        await self.db.flush()

        logger.info(f"Added {kind.value} of {amount} to landlord payment {payout.id}")
        return payout

    async def mark_payout_processed(self, payout_id: uuid.UUID) -> LandlordPayment:
        payout = await self.get_payout(payout_id)
        new_status = LandlordPaymentStatus.PROCESSED.value
        if not can_transition(PAYOUT_TRANSITIONS, payout.status, new_status):
            raise InvalidStatusTransitionError("landlord payment", payout.status, new_status)

        payout.status = new_status
        await self.db.flush()
        return payout

    async def mark_payout_paid(
        self,
        payout_id: uuid.UUID,
        payment_method: Optional[str] = None,
        payment_reference: Optional[str] = None,
        paid_at: Optional[datetime] = None,
    ) -> LandlordPayment:
        payout = await self.get_payout(payout_id)
        new_status = LandlordPaymentStatus.PAID.value
        if not can_transition(PAYOUT_TRANSITIONS, payout.status, new_status):
            raise InvalidStatusTransitionError("landlord payment", payout.status, new_status)

        payout.status = new_status
        payout.payment_method = payment_method
        payout.payment_reference = payment_reference
        payout.paid_at = paid_at or datetime.now(timezone.utc)
        await self.db.flush()

        logger.info(f"Landlord payment {payout.id} marked PAID ({payout.net_amount})")
        return payout
