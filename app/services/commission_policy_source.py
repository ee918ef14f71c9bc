"""Live commission policy lookup for a lease."""

import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.leasing import Agency, Lease, Property
from app.services.commission_snapshot import (
    FeePolicy,
    HistoricalSettingsSnapshot,
    PropertyCommissionPolicy,
)


@dataclass(frozen=True)
class LeaseContext:
    """Parties and current policy values for one lease."""
    lease: Lease
    property: Property
    agency: Optional[Agency]
    snapshot: HistoricalSettingsSnapshot


class CommissionPolicySource:
    """Reads lease, property and agency configuration. Never writes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get(self, model, entity_id: uuid.UUID, entity: str):
        result = await self.db.execute(select(model).where(model.id == entity_id))
        obj = result.scalar_one_or_none()
        if obj is None:
            raise NotFoundError(entity, entity_id)
        return obj

    async def load_lease_context(self, lease_id: uuid.UUID) -> LeaseContext:
        """
        Fetch the lease with its property and (for agency leases) agency.

        Raises:
            NotFoundError: lease, property or agency does not exist
        """
        lease = await self._get(Lease, lease_id, "Lease")
        prop = await self._get(Property, lease.property_id, "Property")

        is_agency_lease = bool(lease.agency_id and lease.agency_commission_enabled)
        agency = None
        if is_agency_lease:
            agency = await self._get(Agency, lease.agency_id, "Agency")

        return LeaseContext(
            lease=lease,
            property=prop,
            agency=agency,
            snapshot=self.build_snapshot(lease, prop, agency),
        )

    @staticmethod
    def build_snapshot(
        lease: Lease,
        prop: Property,
        agency: Optional[Agency] = None,
    ) -> HistoricalSettingsSnapshot:
        property_policy = PropertyCommissionPolicy(
            commission_type=prop.commission_type,
            commission_percentage=prop.commission_percentage,
            commission_fixed_amount=prop.commission_fixed_amount,
            platform_fee_percentage=prop.platform_fee_percentage,
        )
        if agency is None:
            return HistoricalSettingsSnapshot.capture(property_policy)

        return HistoricalSettingsSnapshot.capture(
            property_policy,
            agency_commission_enabled=True,
            agency_policy=FeePolicy(
                fee_type=agency.agency_platform_commission_type,
                rate=agency.agency_platform_commission_rate,
                fixed_amount=agency.agency_platform_commission_fixed,
            ),
            split_policy=FeePolicy(
                fee_type=lease.agency_commission_type,
                rate=lease.agency_commission_rate,
                fixed_amount=lease.agency_commission_fixed,
            ),
        )
