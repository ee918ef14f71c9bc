"""
Base Schema Classes for Pydantic Models

RULE: All response schemas that use `from_attributes=True` MUST inherit from BaseResponseSchema.

Money fields are Decimal everywhere and serialize as strings in JSON,
so "105.00" never turns into 105.0 on the way out.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict


class BaseResponseSchema(BaseModel):
    """
    Base class for all response schemas that read from ORM models.

    Usage:
        class CommissionRecordResponse(BaseResponseSchema):
            id: UUID
            agent_gross_commission: Decimal
            agency_id: Optional[UUID] = None
    """
    model_config = ConfigDict(
        from_attributes=True,
        json_encoders={
            UUID: str,
            Decimal: str,
            datetime: lambda v: v.isoformat() if v else None,
        },
        populate_by_name=True,
    )


class BaseCreateSchema(BaseModel):
    """Base class for create/input schemas. Unknown fields are ignored."""
    model_config = ConfigDict(
        extra='ignore',
    )


class BaseUpdateSchema(BaseModel):
    """
    Base class for PATCH schemas.

    All fields are optional; services apply only the fields the client
    actually sent (model_dump(exclude_unset=True)).
    """
    model_config = ConfigDict(
        extra='ignore',
    )


OptionalUUID = Optional[UUID]
