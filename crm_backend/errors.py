"""
Domain exceptions raised by the service layer.

Routers translate these into HTTP responses; services never raise HTTPException.
"""


class CRMError(Exception):
    """Base exception for CRM business-rule failures."""


class NotFoundError(CRMError):
    """Raised when a referenced entity does not exist."""


class InvalidStateError(CRMError):
    """Raised when an entity is not in a state that allows the operation."""


class ForbiddenError(CRMError):
    """Raised when the caller is not allowed to act on the entity."""


class QuotaExceededError(CRMError):
    """Raised when an agent has used up a rate-limited allowance."""


class InvalidInputError(CRMError):
    """Raised when request values are individually valid but inconsistent."""
