"""
Domain Exceptions

Business rule violations and engine-level failures.
"""

from typing import Iterable, List, Optional


class DraftError(Exception):
    """Base exception for all draft-related errors"""

    error_code = "DRAFT_ERROR"

    def __init__(self, message: str, reasons: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.reasons: List[str] = list(reasons) if reasons else [message]

    @property
    def message(self) -> str:
        """First reason, suitable for showing to the requester"""
        return self.reasons[0]


class ValidationError(DraftError):
    """Raised (or returned) when a command breaks one or more draft rules"""

    error_code = "VALIDATION_FAILED"

    def __init__(self, reasons: Iterable[str]):
        reasons = list(reasons)
        if not reasons:
            raise ValueError("ValidationError requires at least one reason")
        super().__init__(reasons[0], reasons)


class ConflictError(DraftError):
    """Raised when an arena already has a live session"""

    error_code = "CONFLICT"


class NotFoundError(DraftError):
    """Raised when a session or arena has no live session"""

    error_code = "NOT_FOUND"


class PersistenceError(DraftError):
    """Raised by storage adapters when a write or read fails"""

    error_code = "PERSISTENCE_FAILED"


class InvariantViolation(DraftError):
    """Raised when session state is internally inconsistent"""

    error_code = "INVARIANT_VIOLATION"


class InvalidStatusTransitionError(InvariantViolation):
    """Raised when attempting a status transition the lifecycle does not allow"""
    pass
