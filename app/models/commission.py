"""Commission ledger models for lease payments.

Supports:
- Agent commission per paid lease payment
- Agency split and platform fee accounting
- Landlord net payout per commission
- Frozen settings snapshot for historical recomputation
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Text, Numeric
from sqlalchemy import UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType, JSONType


class CommissionStatus(str, Enum):
    """Commission record status."""
    PENDING = "PENDING"             # Earned, not yet paid to agent
    PAID = "PAID"                   # Paid out to agent
    CANCELLED = "CANCELLED"         # Payment reverted or no longer commissionable


class LandlordPaymentStatus(str, Enum):
    """Landlord payout status."""
    PENDING = "PENDING"
    PROCESSED = "PROCESSED"         # Included in a payout run
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class AdjustmentType(str, Enum):
    """Manual landlord payout adjustment."""
    ADDITION = "ADDITION"
    DEDUCTION = "DEDUCTION"


class CommissionRecord(Base):
    """
    Commission split for a single paid lease payment.

    One row per payment (UNIQUE payment_record_id). Rows are never
    deleted; a reverted payment moves its record to CANCELLED.
    """
    __tablename__ = "commission_records"
    __table_args__ = (
        UniqueConstraint("payment_record_id", name="uq_commission_records_payment"),
        Index("ix_commission_records_agent_status", "agent_id", "status"),
        Index("ix_commission_records_agency", "agency_id"),
        Index("ix_commission_records_created", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    payment_record_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("lease_payment_records.id", ondelete="RESTRICT"),
        nullable=False
    )

    # Denormalised parties
    lease_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)
    property_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)
    agent_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)
    agency_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)
    landlord_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)

    # Amounts
    payment_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        comment="Billed amount plus charges"
    )
    agent_gross_commission: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    agent_platform_fee: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    agent_net_commission: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))

    agency_commission_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    agency_gross_commission: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    agency_platform_fee: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    agency_net_commission: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))

    platform_commission: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))
    landlord_net_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"))

    commission_settings: Mapped[Optional[dict]] = mapped_column(
        JSONType,
        nullable=True,
        comment="Policy values frozen at first computation"
    )

    status: Mapped[str] = mapped_column(
        String(50),
        default="PENDING",
        nullable=False,
        comment="PENDING, PAID, CANCELLED"
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<CommissionRecord(payment={self.payment_record_id}, gross={self.agent_gross_commission}, status='{self.status}')>"


class LandlordPayment(Base):
    """
    Landlord payout owed for a commissioned lease payment.

    Mutated in lockstep with its CommissionRecord.
    """
    __tablename__ = "landlord_payments"
    __table_args__ = (
        UniqueConstraint("commission_record_id", name="uq_landlord_payments_commission"),
        UniqueConstraint("payment_record_id", name="uq_landlord_payments_payment"),
        Index("ix_landlord_payments_landlord_status", "landlord_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )

    commission_record_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("commission_records.id", ondelete="RESTRICT"),
        nullable=False
    )
    payment_record_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("lease_payment_records.id", ondelete="RESTRICT"),
        nullable=False
    )
    lease_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)
    landlord_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)

    # Amounts
    gross_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        comment="Total payment amount (billed plus charges)"
    )
    net_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        comment="Landlord net amount after adjustments"
    )
    adjustments: Mapped[List[dict]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
        comment="[{label, amount, type: ADDITION|DEDUCTION}]"
    )

    status: Mapped[str] = mapped_column(
        String(50),
        default="PENDING",
        nullable=False,
        comment="PENDING, PROCESSED, PAID, CANCELLED"
    )
    payment_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    payment_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<LandlordPayment(landlord={self.landlord_id}, net={self.net_amount}, status='{self.status}')>"
