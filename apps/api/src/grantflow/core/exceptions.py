"""
Domain Errors

A small error taxonomy shared by every service. Each error carries a
machine-readable ``error_code`` and the HTTP status it maps to; the
application registers a single exception handler that renders them as
``{"detail": {"error": code, "message": message}}``.
"""


class DomainError(Exception):
    """Base exception for domain service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(DomainError):
    """Raised when a record is absent (or must look absent to the caller)."""

    def __init__(self, message: str = "Not found."):
        super().__init__(message=message, error_code="NOT_FOUND", status_code=404)


class ExpiredError(DomainError):
    """Raised when a validation token was presented after its expiry."""

    def __init__(self, message: str = "Validation is expired."):
        super().__init__(message=message, error_code="EXPIRED", status_code=400)


class ForbiddenError(DomainError):
    """
    Raised when a guard condition fails.

    The message is deliberately generic: callers never learn which of the
    guards rejected them.
    """

    def __init__(self, message: str = "Access denied."):
        super().__init__(message=message, error_code="FORBIDDEN", status_code=403)


class ConflictError(DomainError):
    """Raised on uniqueness violations (duplicate application, taken email...)."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="CONFLICT", status_code=409)


class ValidationFailedError(DomainError):
    """
    Raised when submitted data violates a business rule.

    Args:
        violations: Mapping of property path to a list of message keys,
            e.g. ``{"concretizations[3f2c...]": ["validate.general.tooLong"]}``
    """

    def __init__(self, violations: dict[str, list[str]], message: str = "Validation failed."):
        self.violations = violations
        super().__init__(message=message, error_code="VALIDATION_FAILED", status_code=422)


class InternalError(DomainError):
    """Raised for conditions that should never occur under correct operation."""

    def __init__(self, message: str = "An unexpected error occurred."):
        super().__init__(message=message, error_code="INTERNAL_ERROR", status_code=500)


__all__ = [
    "ConflictError",
    "DomainError",
    "ExpiredError",
    "ForbiddenError",
    "InternalError",
    "NotFoundError",
    "ValidationFailedError",
]
