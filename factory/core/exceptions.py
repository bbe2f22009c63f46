"""
Production core exceptions.

Services raise these; the HTTP layer maps ``status_code`` onto the response.
``details`` carries structured context (expected vs. received values, the
caller's sections, ...) that is merged into the error body.
"""
from typing import Any, Dict, Optional


class ProductionError(Exception):
    """Base class for every rejected production operation."""
    status_code: int = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, **self.details}


class ValidationFailed(ProductionError):
    """Malformed input or a business-rule violation."""
    status_code = 400


class PermissionDenied(ProductionError):
    """Role, verification, ownership or section mismatch."""
    status_code = 403


class NotFound(ProductionError):
    status_code = 404


class Conflict(ProductionError):
    """Request conflicts with current state (already resolved, duplicate, in flight)."""
    status_code = 409
