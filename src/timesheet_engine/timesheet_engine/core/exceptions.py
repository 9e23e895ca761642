class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class DuplicateItemError(ValidationError):
    """Raised when another item already occupies the same date and group key."""


class BusyError(DomainError):
    """Raised when a mutation is attempted while a save/load is outstanding."""


class SessionNotFoundError(DomainError):
    """Raised when no editing session is open for a timesheet."""


class TransformWarning(DomainError):
    """Raised for a malformed backend record; logged and skipped by callers."""


class ApiError(DomainError):
    """Raised when the business-object API answers without success."""
