"""API endpoints for commission records and landlord payouts."""
from typing import Annotated, List, Optional
from uuid import UUID
from datetime import date

from fastapi import APIRouter, Query

from app.api.deps import DB, Ledger, Queries
from app.schemas.commission import (
    AgentCommissionSummaryResponse,
    CommissionListFilters,
    CommissionRecordResponse,
    LandlordPaymentFilters,
    LandlordPaymentResponse,
    MarkCommissionPaidRequest,
    MarkPayoutPaidRequest,
    PayoutAdjustmentCreate,
    RelatedRecordsResponse,
)
from app.schemas.lease_payment import LeasePaymentResponse
from app.services.commission_query_service import RelatedRecords

router = APIRouter()


def _related_response(related: RelatedRecords) -> RelatedRecordsResponse:
    return RelatedRecordsResponse(
        payment=LeasePaymentResponse.model_validate(related.payment) if related.payment else None,
        commission=CommissionRecordResponse.model_validate(related.commission) if related.commission else None,
        landlord_payment=LandlordPaymentResponse.model_validate(related.payout) if related.payout else None,
    )


# ==================== Related Records ====================

@router.get("/related/payment/{payment_id}", response_model=RelatedRecordsResponse)
async def get_related_by_payment(payment_id: UUID, queries: Queries):
    """Payment with its commission record and landlord payout."""
    related = await queries.get_related_by_payment(payment_id)
    return _related_response(related)


@router.get("/related/commission/{commission_id}", response_model=RelatedRecordsResponse)
async def get_related_by_commission(commission_id: UUID, queries: Queries):
    related = await queries.get_related_by_commission(commission_id)
    return _related_response(related)


@router.get("/related/landlord-payment/{landlord_payment_id}", response_model=RelatedRecordsResponse)
async def get_related_by_landlord_payment(landlord_payment_id: UUID, queries: Queries):
    related = await queries.get_related_by_payout(landlord_payment_id)
    return _related_response(related)


# ==================== Agent Commissions ====================

@router.get("/agents/{agent_id}", response_model=List[CommissionRecordResponse])
async def list_agent_commissions(
    agent_id: UUID,
    queries: Queries,
    filters: Annotated[CommissionListFilters, Query()],
):
    """
    Commission records for an agent, newest first.

    Pass agency_id for an agency's records; without it only the agent's
    individual records are listed.
    """
    return await queries.list_agent_commissions(
        agent_id,
        agency_id=filters.agency_id,
        status=filters.status.value if filters.status else None,
        lease_id=filters.lease_id,
        start_date=filters.start_date,
        end_date=filters.end_date,
    )


@router.get("/agents/{agent_id}/summary", response_model=AgentCommissionSummaryResponse)
async def get_agent_summary(
    agent_id: UUID,
    queries: Queries,
    month: Optional[date] = Query(None, description="Any date in the month, defaults to current month"),
):
    return await queries.get_agent_summary(agent_id, month)


@router.post("/{commission_id}/mark-paid", response_model=CommissionRecordResponse)
async def mark_commission_paid(
    commission_id: UUID,
    request: MarkCommissionPaidRequest,
    db: DB,
    ledger: Ledger,
):
    commission = await ledger.mark_commission_paid(commission_id, request.paid_at)
    await db.commit()
    return commission


# ==================== Landlord Payouts ====================

@router.get("/landlords/{landlord_id}/payments", response_model=List[LandlordPaymentResponse])
async def list_landlord_payments(
    landlord_id: UUID,
    queries: Queries,
    filters: Annotated[LandlordPaymentFilters, Query()],
):
    return await queries.list_landlord_payouts(
        landlord_id,
        status=filters.status.value if filters.status else None,
        lease_id=filters.lease_id,
        start_date=filters.start_date,
        end_date=filters.end_date,
    )


@router.post("/landlord-payments/{landlord_payment_id}/adjustments", response_model=LandlordPaymentResponse)
async def add_landlord_payment_adjustment(
    landlord_payment_id: UUID,
    request: PayoutAdjustmentCreate,
    db: DB,
    ledger: Ledger,
):
    """Add a manual ADDITION or DEDUCTION to a landlord payout."""
    payout = await ledger.add_payout_adjustment(
        landlord_payment_id,
        label=request.label,
        amount=request.amount,
        adjustment_type=request.type.value,
    )
    await db.commit()
    return payout


@router.post("/landlord-payments/{landlord_payment_id}/mark-processed", response_model=LandlordPaymentResponse)
async def mark_landlord_payment_processed(landlord_payment_id: UUID, db: DB, ledger: Ledger):
    payout = await ledger.mark_payout_processed(landlord_payment_id)
    await db.commit()
    return payout


@router.post("/landlord-payments/{landlord_payment_id}/mark-paid", response_model=LandlordPaymentResponse)
async def mark_landlord_payment_paid(
    landlord_payment_id: UUID,
    request: MarkPayoutPaidRequest,
    db: DB,
    ledger: Ledger,
):
    """Record that the landlord was paid. Bookkeeping only, no transfer is made."""
    payout = await ledger.mark_payout_paid(
        landlord_payment_id,
        payment_method=request.payment_method,
        payment_reference=request.payment_reference,
        paid_at=request.paid_at,
    )
    await db.commit()
    return payout
