"""
Commission Policy Evaluator

Pure computation: given a payment total and the policy values in force,
split the money between agent, agency, platform and landlord.

Individual lease:
    agent gross    = property rate x total (or fixed amount)
    platform fee   = property platform fee % x agent gross (default 20%)
    agent net      = agent gross - platform fee
    landlord net   = total - agent gross

Agency lease:
    platform       = agency platform policy on agent gross
    after platform = agent gross - platform
    agency gross   = lease split policy on after platform
    agent net      = after platform - agency gross
    landlord net   = total - agent gross

Every amount is rounded to cents and clamped so no fee exceeds the
amount it is carved out of. Nothing here touches the database.
"""

from dataclasses import dataclass, asdict
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Union

from app.config import settings
from app.core.money import (
    ZERO,
    cap_at,
    clamp_non_negative,
    percentage_of,
    quantize_money,
    sum_money,
    to_decimal,
    within_tolerance,
)
from app.models.leasing import CommissionType, FeeType
from app.services.commission_diagnostics import (
    DiagnosticsSink,
    LoggingDiagnosticsSink,
    ReconciliationDrift,
)
from app.services.commission_snapshot import (
    FeePolicy,
    HistoricalSettingsSnapshot,
    PropertyCommissionPolicy,
)


PERCENTAGE_TYPES = {CommissionType.PERCENTAGE.value, FeeType.PERCENTAGE.value}
# Properties store FIXED_AMOUNT, agencies and leases store FIXED
FIXED_TYPES = {CommissionType.FIXED_AMOUNT.value, FeeType.FIXED.value}


class NoCommissionReason(str, Enum):
    NON_POSITIVE_TOTAL = "NON_POSITIVE_TOTAL"
    NO_POLICY = "NO_POLICY"
    ZERO_COMMISSION = "ZERO_COMMISSION"


@dataclass(frozen=True)
class ChargeLine:
    """Extra charge billed on top of a payment's amount due."""
    label: str
    amount: Decimal


@dataclass(frozen=True)
class CommissionBreakdown:
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
    snapshot: HistoricalSettingsSnapshot

    def amounts(self) -> Dict[str, Any]:
        """Column values for a CommissionRecord (snapshot excluded)."""
        values = asdict(self)
        values.pop("snapshot")
        return values


@dataclass(frozen=True)
class NoCommission:
    reason: NoCommissionReason
    payment_amount: Decimal = ZERO


@dataclass(frozen=True)
class Computed:
    breakdown: CommissionBreakdown


CommissionOutcome = Union[NoCommission, Computed]


def _normalize_type(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).upper()
    if value in PERCENTAGE_TYPES:
        return "PERCENTAGE"
    if value in FIXED_TYPES:
        return "FIXED"
    return None


def _charge_amount(charge: Any) -> Any:
    if isinstance(charge, dict):
        return charge.get("amount")
    return getattr(charge, "amount", None)


def fee_amount(policy: Optional[FeePolicy], base: Decimal) -> Decimal:
    """Fee taken from ``base`` under ``policy``, capped to [0, base]."""
    if policy is None:
        return ZERO
    fee_type = _normalize_type(policy.fee_type)
    if fee_type == "PERCENTAGE":
        fee = percentage_of(base, policy.rate)
    elif fee_type == "FIXED":
        fee = quantize_money(clamp_non_negative(policy.fixed_amount))
    else:
        fee = ZERO
    return cap_at(fee, base)


class CommissionPolicyEvaluator:
    """
    Turns (total, policy) into a CommissionOutcome.

    Reconciliation drift is reported to the diagnostics sink, never raised.
    """

    def __init__(
        self,
        diagnostics: Optional[DiagnosticsSink] = None,
        default_platform_fee_percentage: Optional[Decimal] = None,
        tolerance: Optional[Decimal] = None,
    ):
        self.diagnostics = diagnostics or LoggingDiagnosticsSink()
        self.default_platform_fee_percentage = (
            default_platform_fee_percentage
            if default_platform_fee_percentage is not None
            else settings.DEFAULT_PLATFORM_FEE_PERCENTAGE
        )
        self.tolerance = tolerance if tolerance is not None else settings.RECONCILIATION_TOLERANCE

    def evaluate(
        self,
        billed_amount: Any,
        charges: Optional[Iterable[Any]],
        agency_enabled: bool,
        property_policy: Optional[PropertyCommissionPolicy],
        agency_policy: Optional[FeePolicy] = None,
        split_policy: Optional[FeePolicy] = None,
        payment_record_id: Optional[str] = None,
    ) -> CommissionOutcome:
        total = quantize_money(
            to_decimal(billed_amount) + sum_money(_charge_amount(c) for c in (charges or []))
        )
        if total <= ZERO:
            return NoCommission(NoCommissionReason.NON_POSITIVE_TOTAL, total)

        commission_type = _normalize_type(property_policy.commission_type) if property_policy else None
        if commission_type is None:
            return NoCommission(NoCommissionReason.NO_POLICY, total)

        if commission_type == "PERCENTAGE":
            agent_gross = percentage_of(total, property_policy.commission_percentage)
        else:
            agent_gross = quantize_money(clamp_non_negative(property_policy.commission_fixed_amount))

        if agent_gross == ZERO:
            return NoCommission(NoCommissionReason.ZERO_COMMISSION, total)

        # A fixed commission larger than the payment takes the whole payment
        agent_gross = cap_at(agent_gross, total)

        snapshot = HistoricalSettingsSnapshot.capture(
            property_policy,
            agency_commission_enabled=agency_enabled,
            agency_policy=agency_policy,
            split_policy=split_policy,
        )

        agent_platform_fee = ZERO
        agency_gross = ZERO
        agency_platform_fee = ZERO
        if agency_enabled:
            platform_commission = fee_amount(agency_policy, agent_gross)
            after_platform = agent_gross - platform_commission
            agency_gross = fee_amount(split_policy, after_platform)
            agent_net = clamp_non_negative(after_platform - agency_gross)
            agency_platform_fee = platform_commission
        else:
            platform_pct = property_policy.platform_fee_percentage
            if platform_pct is None:
                platform_pct = self.default_platform_fee_percentage
            agent_platform_fee = cap_at(percentage_of(agent_gross, platform_pct), agent_gross)
            agent_net = clamp_non_negative(agent_gross - agent_platform_fee)
            platform_commission = agent_platform_fee

        landlord_net = clamp_non_negative(total - agent_gross)

        if not within_tolerance(agent_gross + landlord_net, total, self.tolerance):
            self.diagnostics.reconciliation_drift(ReconciliationDrift(
                payment_amount=total,
                agent_gross_commission=agent_gross,
                landlord_net_amount=landlord_net,
                drift=agent_gross + landlord_net - total,
                payment_record_id=payment_record_id,
            ))

        return Computed(CommissionBreakdown(
            payment_amount=total,
            agent_gross_commission=agent_gross,
            agent_platform_fee=agent_platform_fee,
            agent_net_commission=agent_net,
            agency_commission_enabled=agency_enabled,
            agency_gross_commission=agency_gross,
            agency_platform_fee=agency_platform_fee,
            agency_net_commission=agency_gross,
            platform_commission=platform_commission,
            landlord_net_amount=landlord_net,
            snapshot=snapshot,
        ))

    def evaluate_snapshot(
        self,
        billed_amount: Any,
        charges: Optional[Iterable[Any]],
        snapshot: HistoricalSettingsSnapshot,
        payment_record_id: Optional[str] = None,
    ) -> CommissionOutcome:
        """Evaluate against stored policy values instead of live configuration."""
        return self.evaluate(
            billed_amount,
            charges,
            agency_enabled=snapshot.agency_commission_enabled,
            property_policy=snapshot.property_policy,
            agency_policy=snapshot.agency_policy,
            split_policy=snapshot.split_policy,
            payment_record_id=payment_record_id,
        )
