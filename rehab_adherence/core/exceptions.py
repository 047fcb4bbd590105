"""
Custom exception classes.

Every error raised by the engine derives from AdherenceError and carries a
stable error_code so callers can map it to their own responses.
"""
from typing import Optional


class AdherenceError(Exception):
    """Base engine exception with consistent structure."""

    def __init__(self, detail: str, error_code: Optional[str] = None):
        super().__init__(detail)
        self.detail = detail
        self.error_code = error_code


class ValidationError(AdherenceError):
    """Invalid input: pain level, exercise id, skip reason, date."""

    def __init__(self, detail: str, field: Optional[str] = None):
        error_code = f"VALIDATION_ERROR_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(detail=detail, error_code=error_code)
        self.field = field


class StateError(AdherenceError):
    """Action not allowed in the plan's current state."""

    def __init__(self, detail: str):
        super().__init__(detail=detail, error_code="INVALID_STATE")


class ComputationError(AdherenceError):
    """Ledger invariant violated during aggregation."""

    def __init__(self, detail: str):
        super().__init__(detail=detail, error_code="COMPUTATION_ERROR")
