"""Leasing configuration models read by the commission engine.

Properties, agencies and leases are owned by the leasing subsystem. The
commission engine only reads their fee policy fields:
- Property: commission type/rate/fixed amount and platform fee percentage
- Agency: platform fee policy applied to agency leases
- Lease: agency/agent split policy
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Numeric, Index
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType


class CommissionType(str, Enum):
    """How a property's agent commission is calculated."""
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


class FeeType(str, Enum):
    """How an agency platform fee or lease agency split is calculated."""
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


class Agency(Base):
    """Agency with its platform commission policy."""
    __tablename__ = "agencies"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Platform fee taken from agency lease commissions
    agency_platform_commission_type: Mapped[str] = mapped_column(
        String(50),
        default="PERCENTAGE",
        nullable=False,
        comment="PERCENTAGE, FIXED"
    )
    agency_platform_commission_rate: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2),
        default=Decimal("15.00"),
        nullable=True
    )
    agency_platform_commission_fixed: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True
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

    def __repr__(self) -> str:
        return f"<Agency(name='{self.name}')>"


class Property(Base):
    """Rental property and its agent commission policy."""
    __tablename__ = "properties"
    __table_args__ = (
        Index("ix_properties_agency", "agency_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    landlord_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)
    agent_id: Mapped[Optional[uuid.UUID]] = mapped_column(UUIDType, nullable=True)
    agency_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("agencies.id", ondelete="SET NULL"),
        nullable=True
    )

    # Commission policy
    commission_type: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="PERCENTAGE, FIXED_AMOUNT (NULL = no commission)"
    )
    commission_percentage: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2),
        nullable=True
    )
    commission_fixed_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True
    )
    platform_fee_percentage: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2),
        default=Decimal("20.00"),
        nullable=True,
        comment="Platform share of an individual agent's commission"
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

    def __repr__(self) -> str:
        return f"<Property(title='{self.title}', commission_type='{self.commission_type}')>"


class Lease(Base):
    """Lease agreement with the agency/agent commission split."""
    __tablename__ = "leases"
    __table_args__ = (
        Index("ix_leases_agency", "agency_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("properties.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    agent_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False, index=True)
    agency_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("agencies.id", ondelete="SET NULL"),
        nullable=True
    )
    landlord_id: Mapped[uuid.UUID] = mapped_column(UUIDType, nullable=False)

    # Agency split of the commission left after the platform fee
    agency_commission_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    agency_commission_type: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        comment="PERCENTAGE, FIXED"
    )
    agency_commission_rate: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2),
        nullable=True
    )
    agency_commission_fixed: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True
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

    def __repr__(self) -> str:
        return f"<Lease(id={self.id}, property={self.property_id})>"
