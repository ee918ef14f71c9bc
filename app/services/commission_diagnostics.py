"""
Diagnostics sink for the commission engine.

The evaluator reports non-fatal anomalies here instead of raising. The
default sink writes them to the application log; tests pass a
RecordingDiagnosticsSink to assert on what was reported.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Protocol


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationDrift:
    """agent gross + landlord net did not add back up to the payment total."""
    payment_amount: Decimal
    agent_gross_commission: Decimal
    landlord_net_amount: Decimal
    drift: Decimal
    payment_record_id: Optional[str] = None


class DiagnosticsSink(Protocol):
    def reconciliation_drift(self, event: ReconciliationDrift) -> None:
        ...


class LoggingDiagnosticsSink:
    """Writes diagnostic events as warnings."""

    def reconciliation_drift(self, event: ReconciliationDrift) -> None:
        logger.warning(
            f"Commission reconciliation drift of {event.drift} "
            f"(payment={event.payment_record_id}, total={event.payment_amount}, "
            f"gross={event.agent_gross_commission}, landlord={event.landlord_net_amount})"
        )


@dataclass
class RecordingDiagnosticsSink:
    """Keeps events in memory."""
    events: List[ReconciliationDrift] = field(default_factory=list)

    def reconciliation_drift(self, event: ReconciliationDrift) -> None:
        self.events.append(event)
