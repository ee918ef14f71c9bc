"""Pydantic schemas for lease payment records."""
from datetime import datetime, date
from typing import Optional, List
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from app.schemas.base import BaseResponseSchema, BaseCreateSchema, BaseUpdateSchema, OptionalUUID
from app.core.enum_utils import (
    normalize_to_uppercase,
    VALID_PAYMENT_RECORD_STATUSES,
    VALID_PAYMENT_RECORD_TYPES,
)
from app.models.lease_payment import PaymentRecordStatus, PaymentRecordType


class ChargeLineSchema(BaseModel):
    """Extra charge on a payment, e.g. late fee or utilities."""
    label: str = Field(..., min_length=1, max_length=200)
    amount: Decimal


class LeasePaymentCreate(BaseCreateSchema):
    """Schema for creating a lease payment record."""
    type: PaymentRecordType = PaymentRecordType.OTHER
    label: str = Field(..., min_length=1, max_length=200)
    due_date: Optional[date] = None
    amount_due: Decimal = Field(..., ge=0)
    charges: List[ChargeLineSchema] = []
    status: PaymentRecordStatus = PaymentRecordStatus.PENDING
    amount_paid: Optional[Decimal] = Field(None, ge=0)
    paid_date: Optional[date] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    payment_reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        return normalize_to_uppercase(v, VALID_PAYMENT_RECORD_TYPES)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return normalize_to_uppercase(v, VALID_PAYMENT_RECORD_STATUSES)


class LeasePaymentUpdate(BaseUpdateSchema):
    """Schema for a partial update of a lease payment record."""
    type: Optional[PaymentRecordType] = None
    label: Optional[str] = Field(None, min_length=1, max_length=200)
    due_date: Optional[date] = None
    amount_due: Optional[Decimal] = Field(None, ge=0)
    charges: Optional[List[ChargeLineSchema]] = None
    status: Optional[PaymentRecordStatus] = None
    amount_paid: Optional[Decimal] = Field(None, ge=0)
    paid_date: Optional[date] = None
    payment_method: Optional[str] = Field(None, max_length=50)
    payment_reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, v):
        return normalize_to_uppercase(v, VALID_PAYMENT_RECORD_TYPES)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return normalize_to_uppercase(v, VALID_PAYMENT_RECORD_STATUSES)


class LeasePaymentResponse(BaseResponseSchema):
    """Response schema for a lease payment record."""
    id: UUID
    lease_id: UUID
    agent_id: UUID
    agency_id: OptionalUUID = None
    type: str
    label: str
    due_date: Optional[date] = None
    amount_due: Decimal
    charges: List[ChargeLineSchema] = []
    total_amount: Decimal
    status: str
    amount_paid: Optional[Decimal] = None
    paid_date: Optional[date] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    notes: Optional[str] = None
    commission_record_id: OptionalUUID = None
    landlord_payment_id: OptionalUUID = None
    created_at: datetime
    updated_at: datetime
