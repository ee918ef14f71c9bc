"""
Commission policy values and the frozen settings snapshot.

The snapshot is captured the first time a commission record is created
for a payment and stored on the record (commission_settings). Every
later recomputation replays it instead of the live configuration, so
editing a property's rate never rewrites history.

Stored shape (Decimals as 2dp strings):
    {
        "property_commission_type": "PERCENTAGE",
        "property_commission_percentage": "10.00",
        "property_commission_fixed": null,
        "property_platform_fee_percentage": "20.00",
        "agency_commission_enabled": false,
        "agency_platform_commission_type": null,
        "agency_platform_commission_rate": null,
        "agency_platform_commission_fixed": null,
        "lease_agency_commission_type": null,
        "lease_agency_commission_rate": null,
        "lease_agency_commission_fixed": null
    }
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from app.core.money import quantize_money, to_decimal


def _opt_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return to_decimal(value, default=None)


def _opt_str(value: Any) -> Optional[str]:
    # Rates and amounts are both stored at 2 places, so "10" and "10.00" store alike
    if value is None or value == "":
        return None
    return str(quantize_money(to_decimal(value)))


def _upper(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value).upper()


@dataclass(frozen=True)
class PropertyCommissionPolicy:
    """Agent commission policy configured on a property."""
    commission_type: Optional[str] = None           # PERCENTAGE, FIXED_AMOUNT
    commission_percentage: Optional[Decimal] = None
    commission_fixed_amount: Optional[Decimal] = None
    platform_fee_percentage: Optional[Decimal] = None  # NULL = default rate


@dataclass(frozen=True)
class FeePolicy:
    """
    Percentage-or-fixed fee policy.

    Used for the agency platform fee (set on the agency) and for the
    agency split (set on the lease).
    """
    fee_type: Optional[str] = None                  # PERCENTAGE, FIXED
    rate: Optional[Decimal] = None
    fixed_amount: Optional[Decimal] = None


@dataclass(frozen=True)
class HistoricalSettingsSnapshot:
    """Immutable policy values used for one payment's commission."""
    property_policy: PropertyCommissionPolicy
    agency_commission_enabled: bool = False
    agency_policy: Optional[FeePolicy] = None
    split_policy: Optional[FeePolicy] = None

    @classmethod
    def capture(
        cls,
        property_policy: PropertyCommissionPolicy,
        agency_commission_enabled: bool = False,
        agency_policy: Optional[FeePolicy] = None,
        split_policy: Optional[FeePolicy] = None,
    ) -> "HistoricalSettingsSnapshot":
        """Build a snapshot, dropping agency values when the agency split is off."""
        if not agency_commission_enabled:
            return cls(property_policy=property_policy)
        return cls(
            property_policy=property_policy,
            agency_commission_enabled=True,
            agency_policy=agency_policy or FeePolicy(),
            split_policy=split_policy or FeePolicy(),
        )

    def to_dict(self) -> Dict[str, Any]:
        prop = self.property_policy
        agency = self.agency_policy or FeePolicy()
        split = self.split_policy or FeePolicy()
        return {
            "property_commission_type": prop.commission_type,
            "property_commission_percentage": _opt_str(prop.commission_percentage),
            "property_commission_fixed": _opt_str(prop.commission_fixed_amount),
            "property_platform_fee_percentage": _opt_str(prop.platform_fee_percentage),
            "agency_commission_enabled": self.agency_commission_enabled,
            "agency_platform_commission_type": agency.fee_type,
            "agency_platform_commission_rate": _opt_str(agency.rate),
            "agency_platform_commission_fixed": _opt_str(agency.fixed_amount),
            "lease_agency_commission_type": split.fee_type,
            "lease_agency_commission_rate": _opt_str(split.rate),
            "lease_agency_commission_fixed": _opt_str(split.fixed_amount),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["HistoricalSettingsSnapshot"]:
        """Rebuild a stored snapshot. Returns None when nothing usable is stored."""
        if not data or not isinstance(data, dict):
            return None

        property_policy = PropertyCommissionPolicy(
            commission_type=_upper(data.get("property_commission_type")),
            commission_percentage=_opt_decimal(data.get("property_commission_percentage")),
            commission_fixed_amount=_opt_decimal(data.get("property_commission_fixed")),
            platform_fee_percentage=_opt_decimal(data.get("property_platform_fee_percentage")),
        )
        return cls.capture(
            property_policy,
            agency_commission_enabled=bool(data.get("agency_commission_enabled")),
            agency_policy=FeePolicy(
                fee_type=_upper(data.get("agency_platform_commission_type")),
                rate=_opt_decimal(data.get("agency_platform_commission_rate")),
                fixed_amount=_opt_decimal(data.get("agency_platform_commission_fixed")),
            ),
            split_policy=FeePolicy(
                fee_type=_upper(data.get("lease_agency_commission_type")),
                rate=_opt_decimal(data.get("lease_agency_commission_rate")),
                fixed_amount=_opt_decimal(data.get("lease_agency_commission_fixed")),
            ),
        )
