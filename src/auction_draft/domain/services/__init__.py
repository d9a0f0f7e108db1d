"""
Domain Services

Business logic services that operate on domain entities.
"""

from .turn_service import TurnService
from .validation_service import ValidationResult, ValidationService

__all__ = [
    "TurnService",
    "ValidationResult",
    "ValidationService",
]
