"""Lease payment records: rent, deposits and fees billed to a tenant."""
import uuid
from datetime import datetime, date, timezone
from enum import Enum
from typing import Optional, List
from decimal import Decimal

from sqlalchemy import String, DateTime, Date, ForeignKey, Numeric, Text, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType, JSONType
from app.core.money import quantize_money, sum_money, to_decimal


class PaymentRecordType(str, Enum):
    """What the payment is for."""
    RENT = "RENT"
    SECURITY_DEPOSIT = "SECURITY_DEPOSIT"
    FEE = "FEE"
    OTHER = "OTHER"


class PaymentRecordStatus(str, Enum):
    """Collection status of a lease payment."""
    PENDING = "PENDING"
    SENT = "SENT"                       # Invoice sent to tenant
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"                       # Triggers commission computation
    CANCELLED = "CANCELLED"


class LeasePaymentRecord(Base):
    """
    A billable obligation tied to a lease.

    commission_record_id / landlord_payment_id are a cache of the ledger
    rows that point back at this payment. The forward links on those rows
    are the source of truth.
    """
    __tablename__ = "lease_payment_records"
    __table_args__ = (
        Index("ix_lease_payment_records_lease_status", "lease_id", "status"),
        Index("ix_lease_payment_records_lease_due", "lease_id", "due_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    lease_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("leases.id", ondelete="CASCADE"),
        nullable=False
    )
    agent_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)
    agency_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)

    type: Mapped[str] = mapped_column(
        String(50),
        default="OTHER",
        nullable=False,
        comment="RENT, SECURITY_DEPOSIT, FEE, OTHER"
    )
    label: Mapped[str] = mapped_column(String(200), nullable=False)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Amounts
    amount_due: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    charges: Mapped[List[dict]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
        comment="Extra charges: [{label, amount}]"
    )

    # Collection
    status: Mapped[str] = mapped_column(
        String(50),
        default="PENDING",
        nullable=False,
        comment="PENDING, SENT, PARTIALLY_PAID, PAID, CANCELLED"
    )
    amount_paid: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    paid_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    payment_reference: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Ledger back-links
    commission_record_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        nullable=True,
        index=True
    )
    landlord_payment_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        nullable=True,
        index=True
    )

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

    @property
    def charges_total(self) -> Decimal:
        return sum_money(c.get("amount") for c in (self.charges or []))

    @property
    def total_amount(self) -> Decimal:
        """Billed amount plus all extra charges."""
        return quantize_money(to_decimal(self.amount_due) + self.charges_total)

    def __repr__(self) -> str:
        return f"<LeasePaymentRecord(label='{self.label}', status='{self.status}')>"
