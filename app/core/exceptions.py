"""Domain exceptions raised by the ledger services.

API handlers in app.main translate these into HTTP responses.
"""
from typing import Dict, Optional


class LedgerError(Exception):
    """Base exception for commission ledger errors."""
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(LedgerError):
    """A referenced lease, property, agency or ledger record does not exist."""
    status_code = 404

    def __init__(self, entity: str, entity_id=None):
        details = {"entity": entity}
        if entity_id is not None:
            details["id"] = str(entity_id)
        super().__init__(f"{entity} not found", details)
        self.entity = entity
        self.entity_id = entity_id


class CommissionLockedError(LedgerError):
    """Payment amount changed after its commission was already paid out."""
    status_code = 409


class InvalidStatusTransitionError(LedgerError):
    """A settlement status change is not allowed from the current status."""
    status_code = 422

    def __init__(self, entity: str, current_status: str, new_status: str):
        super().__init__(
            f"Cannot change {entity} from '{current_status}' to '{new_status}'",
            {"entity": entity, "current_status": current_status, "new_status": new_status},
        )
