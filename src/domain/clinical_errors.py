"""Clinical validation errors.

Expected gaps in clinical data (missing creatinine, empty measurement series,
unrecognized diagnosis text) are never errors. Only inputs that cannot be
interpreted at all raise ClinicalValidationError, so the caller can report
them instead of receiving a fabricated result.
"""

from typing import Any, Optional


class ClinicalValidationError(ValueError):
    """Input that is invalid rather than merely incomplete."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value

    def to_dict(self) -> dict:
        """Convert error to dictionary."""
        return {
            "error": "validation_error",
            "message": str(self),
            "field": self.field,
            "value": None if self.value is None else str(self.value),
        }
