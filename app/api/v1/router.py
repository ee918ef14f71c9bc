from fastapi import APIRouter

from app.api.v1.endpoints import (
    commissions,
    lease_payments,
)

api_router = APIRouter(prefix="/api/v1")


# ==================== Commission Ledger ====================
api_router.include_router(
    commissions.router,
    prefix="/commissions",
    tags=["Commissions"]
)

# ==================== Lease Payments ====================
api_router.include_router(
    lease_payments.router,
    prefix="/lease-payments",
    tags=["Lease Payments"]
)
