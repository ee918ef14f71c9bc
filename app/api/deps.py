from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.services.commission_ledger_service import CommissionLedgerService
from app.services.commission_query_service import CommissionQueryService
from app.services.lease_payment_service import LeasePaymentService


# Type alias for database dependency
DB = Annotated[AsyncSession, Depends(get_db)]


def get_lease_payment_service(db: DB) -> LeasePaymentService:
    return LeasePaymentService(db)


def get_ledger_service(db: DB) -> CommissionLedgerService:
    return CommissionLedgerService(db)


def get_query_service(db: DB) -> CommissionQueryService:
    return CommissionQueryService(db)


LeasePayments = Annotated[LeasePaymentService, Depends(get_lease_payment_service)]
Ledger = Annotated[CommissionLedgerService, Depends(get_ledger_service)]
Queries = Annotated[CommissionQueryService, Depends(get_query_service)]
