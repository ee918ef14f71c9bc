"""
Commission Query Service

Read side of the commission ledger for reporting:
- Payment / commission / landlord payout triad lookups from any entry point
- Agent commission listing
- Landlord payout listing
- Agent monthly earnings summary
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional, Tuple

from dateutil.relativedelta import relativedelta
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.core.money import quantize_money, to_decimal
from app.models.commission import CommissionRecord, CommissionStatus, LandlordPayment
from app.models.lease_payment import LeasePaymentRecord
from app.services.commission_ledger_service import CommissionLedgerService


@dataclass
class RelatedRecords:
    payment: Optional[LeasePaymentRecord]
    commission: Optional[CommissionRecord]
    payout: Optional[LandlordPayment]


def _day_start(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _day_end(value: date) -> datetime:
    return datetime.combine(value, time.max, tzinfo=timezone.utc)


def month_bounds(month_start: date) -> Tuple[datetime, datetime]:
    """[first day 00:00, first day of next month 00:00) in UTC."""
    first = month_start.replace(day=1)
    return _day_start(first), _day_start(first + relativedelta(months=1))


class CommissionQueryService:
    """Read accessors over commission records and landlord payouts."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = CommissionLedgerService(db)

    # ==================== Triad lookups ====================

    async def get_related_by_payment(self, payment_id: uuid.UUID) -> RelatedRecords:
        payment = await self.db.get(LeasePaymentRecord, payment_id)
        if payment is None:
            raise NotFoundError("Lease payment", payment_id)

        commission = await self.ledger.find_commission(payment)
        payout = await self.ledger.find_payout(payment, commission)
        return RelatedRecords(payment=payment, commission=commission, payout=payout)

    async def get_related_by_commission(self, commission_id: uuid.UUID) -> RelatedRecords:
        commission = await self.db.get(CommissionRecord, commission_id)
        if commission is None:
            raise NotFoundError("Commission record", commission_id)

        payment = await self.db.get(LeasePaymentRecord, commission.payment_record_id)
        if payment is not None:
            payout = await self.ledger.find_payout(payment, commission)
        else:
            result = await self.db.execute(
                select(LandlordPayment).where(LandlordPayment.commission_record_id == commission.id)
            )
            payout = result.scalar_one_or_none()
        return RelatedRecords(payment=payment, commission=commission, payout=payout)

    async def get_related_by_payout(self, payout_id: uuid.UUID) -> RelatedRecords:
        payout = await self.db.get(LandlordPayment, payout_id)
        if payout is None:
            raise NotFoundError("Landlord payment", payout_id)

        commission = await self.db.get(CommissionRecord, payout.commission_record_id)
        payment_id = payout.payment_record_id or (commission.payment_record_id if commission else None)
        payment = await self.db.get(LeasePaymentRecord, payment_id) if payment_id else None
        return RelatedRecords(payment=payment, commission=commission, payout=payout)

    # ==================== Listings ====================

    async def list_agent_commissions(
        self,
        agent_id: uuid.UUID,
        agency_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        lease_id: Optional[uuid.UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[CommissionRecord]:
        """
        Commission records for an agent, newest first.

        With agency_id only that agency's records are returned; without it
        only the agent's individual (non-agency) records.
        """
        conditions = [CommissionRecord.agent_id == agent_id]
        if agency_id:
            conditions.append(CommissionRecord.agency_id == agency_id)
        else:
            conditions.append(CommissionRecord.agency_id.is_(None))

        if status:
            conditions.append(CommissionRecord.status == status.upper())
        if lease_id:
            conditions.append(CommissionRecord.lease_id == lease_id)
        if start_date:
            conditions.append(CommissionRecord.created_at >= _day_start(start_date))
        if end_date:
            conditions.append(CommissionRecord.created_at <= _day_end(end_date))

        result = await self.db.execute(
            select(CommissionRecord)
            .where(and_(*conditions))
            .order_by(CommissionRecord.created_at.desc())
        )
        return list(result.scalars().all())

    async def list_landlord_payouts(
        self,
        landlord_id: uuid.UUID,
        status: Optional[str] = None,
        lease_id: Optional[uuid.UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[LandlordPayment]:
        conditions = [LandlordPayment.landlord_id == landlord_id]
        if status:
            conditions.append(LandlordPayment.status == status.upper())
        if lease_id:
            conditions.append(LandlordPayment.lease_id == lease_id)
        if start_date:
            conditions.append(LandlordPayment.created_at >= _day_start(start_date))
        if end_date:
            conditions.append(LandlordPayment.created_at <= _day_end(end_date))

        result = await self.db.execute(
            select(LandlordPayment)
            .where(and_(*conditions))
            .order_by(LandlordPayment.created_at.desc())
        )
        return list(result.scalars().all())

    # ==================== Summary ====================

    async def _sum_for_month(self, agent_id: uuid.UUID, month_start: date) -> Dict[str, Any]:
        start, end = month_bounds(month_start)
        result = await self.db.execute(
            select(
                func.coalesce(func.sum(CommissionRecord.agent_gross_commission), 0),
                func.coalesce(func.sum(CommissionRecord.agent_platform_fee), 0),
                func.coalesce(func.sum(CommissionRecord.agent_net_commission), 0),
                func.count(CommissionRecord.id),
            ).where(
                and_(
                    CommissionRecord.agent_id == agent_id,
                    CommissionRecord.status != CommissionStatus.CANCELLED.value,
                    CommissionRecord.created_at >= start,
                    CommissionRecord.created_at < end,
                )
            )
        )
        gross, platform_fee, net, count = result.one()
        return {
            "commission_earned": quantize_money(to_decimal(gross)),
            "platform_fee_due": quantize_money(to_decimal(platform_fee)),
            "net_earnings": quantize_money(to_decimal(net)),
            "commission_count": int(count or 0),
        }

    async def get_agent_summary(
        self,
        agent_id: uuid.UUID,
        month_start: Optional[date] = None,
    ) -> Dict[str, Any]:
        """Earnings for the month containing month_start (current month by default)."""
        month_start = (month_start or datetime.now(timezone.utc).date()).replace(day=1)
        previous_month = month_start - relativedelta(months=1)

        current = await self._sum_for_month(agent_id, month_start)
        previous = await self._sum_for_month(agent_id, previous_month)

        return {
            "agent_id": agent_id,
            "month": month_start,
            **current,
            "platform_fee_previous_month": previous["platform_fee_due"],
        }
