from django.core.exceptions import ObjectDoesNotExist
# Malformed input is rejected with Django's own ValidationError
from django.core.exceptions import ValidationError  # noqa: F401


class NotFoundError(ObjectDoesNotExist):
    """Raised when a referenced record is missing or soft-deleted."""
    pass


class ConflictError(Exception):
    """Raised when a unique document number collides even after a retry."""
    pass


class ConsistencyError(Exception):
    """Raised when a document invariant breaks mid-operation.
    Always raised inside transaction.atomic() so the write rolls back."""
    pass


class RateLimitExceeded(Exception):
    """Raised when a caller exceeds its request limit for an action."""
    pass
