"""
Central error types for the payroll & leave engine

Every engine failure is a PayrollEngineError subclass carrying a stable
machine-readable ``code`` and a human ``detail``. Raising one never implies a
partial mutation: services roll back before the error leaves them.
"""
from typing import Any, Dict, Optional


class PayrollEngineError(Exception):
    """Base class for all engine errors"""

    code: str = "ENGINE_ERROR"

    def __init__(self, detail: str, **context: Any):
        super().__init__(detail)
        self.detail = detail
        self.context = context


class InvalidInput(PayrollEngineError):
    """Malformed or out-of-range numeric/enum input. Caller-correctable."""

    code = "INVALID_INPUT"


class InsufficientBalance(PayrollEngineError):
    """Requested leave days exceed the remaining balance"""

    code = "INSUFFICIENT_BALANCE"

    def __init__(self, employee_id: int, leave_type: Any, requested: int, remaining: int):
        lt = getattr(leave_type, "value", leave_type)
        super().__init__(
            f"Insufficient {lt} balance: requested {requested}, remaining {remaining}",
            employee_id=employee_id,
            leave_type=lt,
            requested=requested,
            remaining=remaining,
        )
        self.employee_id = employee_id
        self.leave_type = leave_type
        self.requested = requested
        self.remaining = remaining


class DuplicatePendingRequest(PayrollEngineError):
    """A pending leave request already exists for the employee and month"""

    code = "DUPLICATE_PENDING_REQUEST"

    def __init__(self, employee_id: int, year_month: str, existing_request_id: Optional[str] = None):
        super().__init__(
            f"A pending leave request already exists for {year_month}",
            employee_id=employee_id,
            year_month=year_month,
            existing_request_id=existing_request_id,
        )
        self.employee_id = employee_id
        self.year_month = year_month
        self.existing_request_id = existing_request_id


class NotFound(PayrollEngineError):
    """Missing record on a read"""

    code = "NOT_FOUND"

    def __init__(self, entity: str, key: Any):
        super().__init__(f"{entity} not found: {key}", entity=entity, key=key)
        self.entity = entity
        self.key = key


class InvalidState(PayrollEngineError):
    """Operation not allowed from the record's current state"""

    code = "INVALID_STATE"


def error_payload(exc: PayrollEngineError) -> Dict[str, Any]:
    """
    Render an engine error in the consistent error format shown to users

    Args:
        exc: PayrollEngineError instance

    Returns:
        Dict with error flag, code, detail and structured context
    """
    payload: Dict[str, Any] = {
        "error": True,
        "code": exc.code,
        "detail": exc.detail,
    }
    if exc.context:
        payload["context"] = {
            k: getattr(v, "value", v) for k, v in exc.context.items()
        }
    return payload
