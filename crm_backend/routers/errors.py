from typing import Dict, Type

from fastapi import HTTPException, status

from crm_backend.errors import (
    CRMError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
    QuotaExceededError,
)

_STATUS_BY_ERROR: Dict[Type[CRMError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    InvalidStateError: status.HTTP_409_CONFLICT,
    QuotaExceededError: status.HTTP_429_TOO_MANY_REQUESTS,
    InvalidInputError: status.HTTP_400_BAD_REQUEST,
}


def http_error(exc: CRMError) -> HTTPException:
    """Translate a domain error into the HTTPException routers raise."""
    for error_type, code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
