"""
Lease Payment Service

Create and update lease payment records and keep the commission ledger
in step with their status.

Flow for every write:
1. Lock the payment row (SELECT ... FOR UPDATE)
2. Apply the supplied fields
3. Refuse an amount change once the commission has been paid out
4. Hand (payment, previous_status, amount_changed) to PaymentStatusGate
5. Commit, or roll back and re-raise
"""

import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enum_utils import get_enum_value, is_status
from app.core.exceptions import CommissionLockedError, LedgerError, NotFoundError
from app.core.money import quantize_money, to_decimal
from app.models.commission import CommissionStatus
from app.models.lease_payment import LeasePaymentRecord, PaymentRecordStatus, PaymentRecordType
from app.models.leasing import Lease
from app.services.commission_ledger_service import CommissionLedgerService
from app.services.payment_status_gate import PaymentStatusGate


logger = logging.getLogger(__name__)


UPDATABLE_FIELDS = (
    "type",
    "label",
    "due_date",
    "amount_due",
    "charges",
    "status",
    "amount_paid",
    "paid_date",
    "payment_method",
    "payment_reference",
    "notes",
)


def normalize_charges(charges: Optional[List[Any]]) -> List[Dict[str, str]]:
    """Store charges as [{label, amount}] with amounts as 2dp strings."""
    normalized = []
    for charge in charges or []:
        if not isinstance(charge, dict):
            charge = {"label": getattr(charge, "label", ""), "amount": getattr(charge, "amount", None)}
        normalized.append({
            "label": charge.get("label") or "",
            "amount": str(quantize_money(to_decimal(charge.get("amount")))),
        })
    return normalized


class LeasePaymentService:
    """Payment lifecycle for lease payment records."""

    def __init__(self, db: AsyncSession, gate: Optional[PaymentStatusGate] = None):
        self.db = db
        self.ledger = gate.ledger if gate else CommissionLedgerService(db)
        self.gate = gate or PaymentStatusGate(db, self.ledger)

    async def get_payment(self, payment_id: uuid.UUID, for_update: bool = False) -> LeasePaymentRecord:
        query = select(LeasePaymentRecord).where(LeasePaymentRecord.id == payment_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        payment = result.scalar_one_or_none()
        if payment is None:
            raise NotFoundError("Lease payment", payment_id)
        return payment

    async def list_for_lease(self, lease_id: uuid.UUID) -> List[LeasePaymentRecord]:
        result = await self.db.execute(
            select(LeasePaymentRecord)
            .where(LeasePaymentRecord.lease_id == lease_id)
            .order_by(LeasePaymentRecord.due_date.asc(), LeasePaymentRecord.created_at.asc())
        )
        return list(result.scalars().all())

    async def create_payment(self, lease_id: uuid.UUID, data: Dict[str, Any]) -> LeasePaymentRecord:
        """
        Create a payment record for a lease.

        A payment created as PAID goes through the gate with no previous
        status, so its commission is computed straight away.
        """
        result = await self.db.execute(select(Lease).where(Lease.id == lease_id))
        lease = result.scalar_one_or_none()
        if lease is None:
            raise NotFoundError("Lease", lease_id)

        try:
            payment = LeasePaymentRecord(
                id=uuid.uuid4(),
                lease_id=lease.id,
                agent_id=lease.agent_id,
                agency_id=lease.agency_id,
                type=PaymentRecordType.OTHER.value,
                status=PaymentRecordStatus.PENDING.value,
                charges=[],
            )
            self._apply(payment, data)
            self.db.add(payment)
            await self.db.flush()

            await self.gate.on_status_settled(payment, previous_status=None)
            await self.db.commit()
            await self.db.refresh(payment)

            logger.info(f"Created lease payment {payment.id} ({payment.status}) for lease {lease_id}")
            return payment

        except IntegrityError as e:
            await self.db.rollback()
            logger.error(f"Database integrity error creating lease payment: {e}")
            raise LedgerError("Lease payment creation failed: conflicting ledger record")
        except Exception:
            await self.db.rollback()
            raise

    async def update_payment(self, payment_id: uuid.UUID, data: Dict[str, Any]) -> LeasePaymentRecord:
        """
        Apply a partial update and settle the ledger.

        Raises:
            NotFoundError: payment does not exist
            CommissionLockedError: amount or charges changed after the
                commission was paid out
        """
        try:
            payment = await self.get_payment(payment_id, for_update=True)
            previous_status = payment.status
            previous_total = payment.total_amount

            self._apply(payment, data)
            amount_changed = payment.total_amount != previous_total

            if amount_changed:
                commission = await self.ledger.find_commission(payment)
                if commission is not None and is_status(commission.status, CommissionStatus.PAID):
                    raise CommissionLockedError(
                        "Payment amount cannot change after its commission has been paid",
                        {
                            "payment_id": str(payment.id),
                            "commission_record_id": str(commission.id),
                            "previous_total": str(previous_total),
                            "new_total": str(payment.total_amount),
                        },
                    )

            await self.db.flush()
            await self.gate.on_status_settled(payment, previous_status, amount_changed=amount_changed)
            await self.db.commit()
            await self.db.refresh(payment)
            return payment

        except IntegrityError as e:
            await self.db.rollback()
            logger.error(f"Database integrity error updating lease payment {payment_id}: {e}")
            raise LedgerError("Lease payment update failed: conflicting ledger record")
        except Exception:
            await self.db.rollback()
            raise

    @staticmethod
    def _apply(payment: LeasePaymentRecord, data: Dict[str, Any]) -> None:
        for field_name in UPDATABLE_FIELDS:
            if field_name not in data:
                continue
            value = data[field_name]
            if field_name in ("type", "status"):
                value = get_enum_value(value).upper()
            elif field_name == "charges":
                value = normalize_charges(value)
            elif field_name in ("amount_due", "amount_paid") and value is not None:
                value = quantize_money(to_decimal(value))
            setattr(payment, field_name, value)

        # A payment marked PAID without details is assumed paid in full today
        if is_status(payment.status, PaymentRecordStatus.PAID):
            if payment.paid_date is None:
                payment.paid_date = date.today()
            if payment.amount_paid is None:
                payment.amount_paid = payment.total_amount
