"""
Payment Status Gate

This module is the SINGLE SOURCE OF TRUTH for how a lease payment's
status change affects the commission ledger.

    previous -> new                    action
    ---------------------------------  ---------
    any (not PAID) -> PAID             ENSURE
    PAID -> PENDING / SENT /
            PARTIALLY_PAID / CANCELLED CANCEL
    PAID -> PAID, amount changed       RECOMPUTE
    anything else                      NONE

Precondition: once a commission is PAID the payment amount is locked.
LeasePaymentService enforces it before calling the gate.
"""

import logging
from enum import Enum
from typing import Dict, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.lease_payment import LeasePaymentRecord, PaymentRecordStatus
from app.services.commission_ledger_service import CommissionLedgerService, LedgerEntry


logger = logging.getLogger(__name__)


class LedgerAction(str, Enum):
    ENSURE = "ENSURE"
    RECOMPUTE = "RECOMPUTE"
    CANCEL = "CANCEL"
    NONE = "NONE"


PAID = PaymentRecordStatus.PAID.value

# (previous_status, new_status) -> action. None = payment created in this status.
LEDGER_ACTIONS: Dict[Tuple[Optional[str], str], LedgerAction] = {
    (None, PAID): LedgerAction.ENSURE,
    (PaymentRecordStatus.PENDING.value, PAID): LedgerAction.ENSURE,
    (PaymentRecordStatus.SENT.value, PAID): LedgerAction.ENSURE,
    (PaymentRecordStatus.PARTIALLY_PAID.value, PAID): LedgerAction.ENSURE,
    (PaymentRecordStatus.CANCELLED.value, PAID): LedgerAction.ENSURE,
    (PAID, PaymentRecordStatus.PENDING.value): LedgerAction.CANCEL,
    (PAID, PaymentRecordStatus.SENT.value): LedgerAction.CANCEL,
    (PAID, PaymentRecordStatus.PARTIALLY_PAID.value): LedgerAction.CANCEL,
    (PAID, PaymentRecordStatus.CANCELLED.value): LedgerAction.CANCEL,
}


def resolve_action(
    previous_status: Optional[str],
    new_status: str,
    amount_changed: bool = False,
) -> LedgerAction:
    """Look up the ledger action for a payment status change."""
    if previous_status == PAID and new_status == PAID:
        return LedgerAction.RECOMPUTE if amount_changed else LedgerAction.NONE
    return LEDGER_ACTIONS.get((previous_status, new_status), LedgerAction.NONE)


class PaymentStatusGate:
    """Applies the ledger action for a settled payment status change."""

    def __init__(self, db: AsyncSession, ledger: Optional[CommissionLedgerService] = None):
        self.db = db
        self.ledger = ledger or CommissionLedgerService(db)

    async def on_status_settled(
        self,
        payment: LeasePaymentRecord,
        previous_status: Optional[str],
        amount_changed: bool = False,
    ) -> Optional[LedgerEntry]:
        action = resolve_action(previous_status, payment.status, amount_changed)
        if action == LedgerAction.NONE:
            return None

        logger.debug(f"Payment {payment.id} {previous_status} -> {payment.status}: {action.value}")

        if action == LedgerAction.ENSURE:
            return await self.ledger.ensure_for_paid_payment(payment)
        if action == LedgerAction.RECOMPUTE:
            return await self.ledger.recompute(payment)
        return await self.ledger.cancel_for(payment)
