"""API endpoints for lease payment records."""
from typing import List
from uuid import UUID

from fastapi import APIRouter, status

from app.api.deps import LeasePayments
from app.schemas.lease_payment import (
    LeasePaymentCreate,
    LeasePaymentResponse,
    LeasePaymentUpdate,
)

router = APIRouter()


@router.get("/leases/{lease_id}", response_model=List[LeasePaymentResponse])
async def list_lease_payments(lease_id: UUID, service: LeasePayments):
    return await service.list_for_lease(lease_id)


@router.post(
    "/leases/{lease_id}",
    response_model=LeasePaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_lease_payment(lease_id: UUID, request: LeasePaymentCreate, service: LeasePayments):
    """
    Create a payment record for a lease.

    A payment created as PAID gets its commission and landlord payout
    immediately.
    """
    return await service.create_payment(lease_id, request.model_dump())


@router.get("/{payment_id}", response_model=LeasePaymentResponse)
async def get_lease_payment(payment_id: UUID, service: LeasePayments):
    return await service.get_payment(payment_id)


@router.patch("/{payment_id}", response_model=LeasePaymentResponse)
async def update_lease_payment(payment_id: UUID, request: LeasePaymentUpdate, service: LeasePayments):
    """
    Partially update a payment record.

    Status changes drive the commission ledger:
    - to PAID creates (or reactivates) the commission
    - away from PAID cancels it
    - amount changes while PAID recompute it from the stored settings

    Returns 409 when the amount changes after the commission was paid out.
    """
    return await service.update_payment(payment_id, request.model_dump(exclude_unset=True))
