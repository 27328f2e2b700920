# crm_backend/auth.py

"""
Request authentication helpers.

Token issuance lives outside this service. Callers identify themselves with:
- `X-User-Id: <user id>` header, or a `session_user_id` cookie.
- Optional `X-Token-Version: <n>`; a mismatch with the stored version means
  the session was revoked.

Routes depend on `current_user` (any active user) or `require_roles(...)`.
"""

import logging
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from crm_backend.db import get_db
from crm_backend.models.user import User, UserRole

logger = logging.getLogger("crm_backend.auth")


def _requested_user_id(request: Request) -> Optional[str]:
    user_id = request.headers.get("X-User-Id") or request.cookies.get("session_user_id")
    if user_id:
        user_id = user_id.strip()
    return user_id or None


def current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Dependency resolving the calling user.

    Raises 401 when the caller is unknown, inactive, or presents a revoked
    token version.
    """
    user_id = _requested_user_id(request)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        logger.warning("Rejected request for unknown or inactive user %r", user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    token_version = request.headers.get("X-Token-Version")
    if token_version is not None:
        try:
            presented = int(token_version)
        except ValueError:
            presented = None
        if presented != user.token_version:
            logger.warning("Revoked session used for user=%s", user.id)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Session expired or revoked",
            )

    return user


def require_roles(*roles: UserRole) -> Callable[..., User]:
    """Dependency factory: the caller must hold one of `roles`."""
    allowed = {UserRole(r).value for r in roles}

    def _checker(user: User = Depends(current_user)) -> User:
        if user.role not in allowed:
            logger.warning(
                "Forbidden: user=%s role=%s not in %s", user.id, user.role, sorted(allowed)
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return _checker
