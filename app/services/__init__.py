# Services module
from app.services.commission_evaluator import CommissionPolicyEvaluator
from app.services.commission_ledger_service import CommissionLedgerService
from app.services.commission_policy_source import CommissionPolicySource
from app.services.commission_query_service import CommissionQueryService
from app.services.lease_payment_service import LeasePaymentService
from app.services.payment_status_gate import PaymentStatusGate

__all__ = [
    "CommissionPolicyEvaluator",
    "CommissionLedgerService",
    "CommissionPolicySource",
    "CommissionQueryService",
    "LeasePaymentService",
    "PaymentStatusGate",
]
