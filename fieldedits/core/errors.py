"""
Error taxonomy for the edit overlay. Every error reaches the caller as-is so
the API layer can map it to a distinct status code.
"""


class FieldEditError(Exception):
    """Base class for all field-edit errors."""


class ValidationError(FieldEditError):
    """Unknown field for the target type, or a value of the wrong type."""


class NotFoundError(FieldEditError):
    """Missing entity or edit record."""


class AuthorizationError(FieldEditError):
    """Cross-tenant access attempt."""


class InvalidResolutionError(FieldEditError):
    """Resolution is not one of the recognized values."""


class PersistenceError(FieldEditError):
    """Store unreachable or transaction failure."""


class ConflictStateError(FieldEditError):
    """Record is not in the conflict state the operation requires."""
