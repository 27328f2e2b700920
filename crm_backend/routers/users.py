import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from crm_backend.auth import current_user, require_roles
from crm_backend.db import get_db
from crm_backend.errors import CRMError
from crm_backend.models.user import User, UserRole
from crm_backend.routers.errors import http_error
from crm_backend.schemas.users import UserCreate, UserOut, UserUpdate
from crm_backend.services import users as user_service

logger = logging.getLogger("crm_backend.routers.users")

router = APIRouter(
    prefix="/users",
    tags=["users"],
)

admin_only = require_roles(UserRole.ADMIN)


@router.get("", response_model=List[UserOut])
def list_users(
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER)),
) -> List[UserOut]:
    return [UserOut.model_validate(u) for u in user_service.list_users(db)]


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    user: User = Depends(admin_only),
) -> UserOut:
    try:
        created = user_service.create_user(db, payload)
    except CRMError as exc:
        raise http_error(exc) from exc
    return UserOut.model_validate(created)


@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
) -> UserOut:
    try:
        found = user_service.get_user(db, user_id)
    except CRMError as exc:
        raise http_error(exc) from exc
    return UserOut.model_validate(found)


@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: str,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(admin_only),
) -> UserOut:
    try:
        updated = user_service.update_user(db, user_id, payload)
    except CRMError as exc:
        raise http_error(exc) from exc
    return UserOut.model_validate(updated)


@router.post(
    "/{user_id}/revoke-sessions",
    response_model=UserOut,
    summary="Invalidate all sessions of a user",
)
def revoke_sessions(
    user_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(admin_only),
) -> UserOut:
    try:
        updated = user_service.revoke_sessions(db, user_id)
    except CRMError as exc:
        raise http_error(exc) from exc
    logger.info("Sessions of user=%s revoked by admin=%s", user_id, user.id)
    return UserOut.model_validate(updated)
