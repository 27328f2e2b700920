import logging
from typing import List

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from crm_backend.errors import InvalidInputError, NotFoundError
from crm_backend.models.user import User
from crm_backend.models.website import Website
from crm_backend.schemas.users import UserCreate, UserUpdate

logger = logging.getLogger("crm_backend.services.users")


def list_users(session: Session) -> List[User]:
    return list(session.scalars(select(User).order_by(User.created_at.desc())))


def get_user(session: Session, user_id: str) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def _check_references(session: Session, website_id, manager_id) -> None:
    if website_id is not None and session.get(Website, website_id) is None:
        raise NotFoundError("Website not found")
    if manager_id is not None and session.get(User, manager_id) is None:
        raise NotFoundError("Manager not found")


def create_user(session: Session, payload: UserCreate) -> User:
    email = payload.email.lower()
    taken = session.scalar(select(User.id).where(func.lower(User.email) == email))
    if taken is not None:
        raise InvalidInputError("A user with this email already exists")
    _check_references(session, payload.website_id, payload.manager_id)

    user = User(
        email=email,
        full_name=payload.full_name,
        role=payload.role.value,
        website_id=payload.website_id,
        panels=[p.strip() for p in payload.panels if p and p.strip()],
        manager_id=payload.manager_id,
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise InvalidInputError("A user with this email already exists") from exc
    except SQLAlchemyError:
        logger.exception("Failed to create user %s", email)
        session.rollback()
        raise
    session.refresh(user)
    logger.info("User created (id=%s, role=%s)", user.id, user.role)
    return user


def update_user(session: Session, user_id: str, payload: UserUpdate) -> User:
    user = get_user(session, user_id)
    changes = payload.model_dump(exclude_unset=True)
    _check_references(session, changes.get("website_id"), changes.get("manager_id"))

    for field, value in changes.items():
        if field == "role" and value is not None:
            value = value.value
        if field == "panels" and value is not None:
            value = [p.strip() for p in value if p and p.strip()]
        setattr(user, field, value)

    try:
        session.commit()
    except SQLAlchemyError:
        logger.exception("Failed to update user %s", user_id)
        session.rollback()
        raise
    session.refresh(user)
    logger.info("User updated (id=%s, fields=%s)", user_id, sorted(changes))
    return user


def revoke_sessions(session: Session, user_id: str) -> User:
    """Invalidate every outstanding session by bumping the token version."""
    get_user(session, user_id)
    session.execute(
        update(User)
        .where(User.id == user_id)
        .values(token_version=User.token_version + 1)
        .execution_options(synchronize_session=False)
    )
    session.commit()
    user = session.get(User, user_id, populate_existing=True)
    logger.info("Sessions revoked for user=%s (token_version=%s)", user_id, user.token_version)
    return user
