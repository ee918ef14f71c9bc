"""
Enum Utilities for VARCHAR-based Status Fields

ARCHITECTURE STANDARD:
━━━━━━━━━━━━━━━━━━━━━━
• Database: VARCHAR(50) - NOT PostgreSQL ENUM
• SQLAlchemy: String(50) with Mapped[str]
• Pydantic: Python Enum for API validation
• API Response: Use string directly (NO .value needed)
• Case: All enum values stored in UPPERCASE

DATA FLOW:
━━━━━━━━━━
INPUT (API Request):
    Pydantic Enum → .value → String → Database
    Example: PaymentRecordStatus.PAID → "PAID" → VARCHAR

OUTPUT (API Response):
    Database → String → Return directly
    Example: VARCHAR "PENDING" → "PENDING" (no conversion needed)

USAGE PATTERNS:
━━━━━━━━━━━━━━━
1. In SQLAlchemy Models:
   status: Mapped[str] = mapped_column(String(50), default="PENDING")

2. In Pydantic Schemas (with case normalization):
   @field_validator("status", mode="before")
   def normalize_status(cls, v):
       return normalize_to_uppercase(v, VALID_PAYMENT_RECORD_STATUSES)

3. In services (reading from DB):
   if is_status(commission.status, CommissionStatus.CANCELLED): ...
"""

from enum import Enum
from typing import Any, Optional, TypeVar, Type, Set


T = TypeVar('T', bound=Enum)


def get_enum_value(value: Any) -> str:
    """
    Safely get string value from an enum or string.

    Examples:
        >>> get_enum_value(CommissionStatus.PENDING)
        'PENDING'
        >>> get_enum_value("PENDING")
        'PENDING'
        >>> get_enum_value(None)
        None
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def to_enum(value: Any, enum_class: Type[T]) -> Optional[T]:
    """
    Convert a string value to an enum instance.

    Returns None for unknown values instead of raising, so callers can
    treat unrecognised configuration as "not set".
    """
    if value is None:
        return None
    if isinstance(value, enum_class):
        return value
    try:
        return enum_class(str(value).upper())
    except (ValueError, KeyError):
        return None


def is_status(db_value: str, enum_value: Enum) -> bool:
    """Compare a database string with an enum value."""
    if db_value is None:
        return False
    return db_value == enum_value.value


def status_in(db_value: str, *enum_values: Enum) -> bool:
    """Check if database value matches any of the given enums."""
    if db_value is None:
        return False
    return db_value in [e.value for e in enum_values]


# =============================================================================
# CASE NORMALIZATION FOR PYDANTIC SCHEMAS
# =============================================================================

def normalize_to_uppercase(value: Any, valid_values: Set[str]) -> Any:
    """
    Normalize a string value to UPPERCASE if it's a valid enum value.

    Returns the original value when it is not recognised so Pydantic
    raises the validation error.
    """
    if value is None:
        return value
    if isinstance(value, str):
        upper_v = value.upper()
        if upper_v in valid_values:
            return upper_v
    return value


# =============================================================================
# PRE-DEFINED VALID VALUE SETS
# =============================================================================

VALID_PAYMENT_RECORD_STATUSES = {
    "PENDING", "SENT", "PARTIALLY_PAID", "PAID", "CANCELLED"
}

VALID_PAYMENT_RECORD_TYPES = {"RENT", "SECURITY_DEPOSIT", "FEE", "OTHER"}

VALID_COMMISSION_STATUSES = {"PENDING", "PAID", "CANCELLED"}

VALID_LANDLORD_PAYMENT_STATUSES = {"PENDING", "PROCESSED", "PAID", "CANCELLED"}

VALID_ADJUSTMENT_TYPES = {"ADDITION", "DEDUCTION"}
