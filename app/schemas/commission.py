"""Pydantic schemas for the commission ledger."""
from datetime import datetime, date
from typing import Optional, List
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from app.schemas.base import BaseResponseSchema, BaseCreateSchema, OptionalUUID
from app.schemas.lease_payment import LeasePaymentResponse
from app.core.enum_utils import (
    normalize_to_uppercase,
    VALID_ADJUSTMENT_TYPES,
    VALID_COMMISSION_STATUSES,
    VALID_LANDLORD_PAYMENT_STATUSES,
)
from app.models.commission import AdjustmentType, CommissionStatus, LandlordPaymentStatus


# ==================== CommissionRecord Schemas ====================

class CommissionRecordResponse(BaseResponseSchema):
    """Response schema for CommissionRecord."""
    id: UUID
    payment_record_id: UUID
    lease_id: UUID
    property_id: UUID
    agent_id: UUID
    agency_id: OptionalUUID = None
    landlord_id: UUID

    payment_amount: Decimal
    agent_gross_commission: Decimal
    agent_platform_fee: Decimal
    agent_net_commission: Decimal
    agency_commission_enabled: bool
    agency_gross_commission: Decimal
    agency_platform_fee: Decimal
    agency_net_commission: Decimal
    platform_commission: Decimal
    landlord_net_amount: Decimal

    commission_settings: Optional[dict] = None
    status: str
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CommissionListFilters(BaseModel):
    """Query filters for commission listings."""
    agency_id: OptionalUUID = None
    status: Optional[CommissionStatus] = None
    lease_id: OptionalUUID = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return normalize_to_uppercase(v, VALID_COMMISSION_STATUSES)


class MarkCommissionPaidRequest(BaseCreateSchema):
    paid_at: Optional[datetime] = None


class AgentCommissionSummaryResponse(BaseModel):
    """Agent earnings for one month."""
    agent_id: UUID
    month: date
    commission_earned: Decimal
    platform_fee_due: Decimal
    net_earnings: Decimal
    commission_count: int
    platform_fee_previous_month: Decimal


# ==================== LandlordPayment Schemas ====================

class PayoutAdjustmentSchema(BaseModel):
    label: str
    amount: Decimal
    type: str


class PayoutAdjustmentCreate(BaseCreateSchema):
    """Manual addition to or deduction from a landlord payout."""
    label: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0)
    type: AdjustmentType

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        return normalize_to_uppercase(v, VALID_ADJUSTMENT_TYPES)


class LandlordPaymentResponse(BaseResponseSchema):
    """Response schema for LandlordPayment."""
    id: UUID
    commission_record_id: UUID
    payment_record_id: UUID
    lease_id: UUID
    landlord_id: UUID
    gross_amount: Decimal
    net_amount: Decimal
    adjustments: List[PayoutAdjustmentSchema] = []
    status: str
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class MarkPayoutPaidRequest(BaseCreateSchema):
    payment_method: Optional[str] = Field(None, max_length=50)
    payment_reference: Optional[str] = Field(None, max_length=100)
    paid_at: Optional[datetime] = None


class LandlordPaymentFilters(BaseModel):
    """Query filters for landlord payout listings."""
    status: Optional[LandlordPaymentStatus] = None
    lease_id: OptionalUUID = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return normalize_to_uppercase(v, VALID_LANDLORD_PAYMENT_STATUSES)


# ==================== Related Records ====================

class RelatedRecordsResponse(BaseModel):
    """A payment with its commission record and landlord payout."""
    payment: Optional[LeasePaymentResponse] = None
    commission: Optional[CommissionRecordResponse] = None
    landlord_payment: Optional[LandlordPaymentResponse] = None
