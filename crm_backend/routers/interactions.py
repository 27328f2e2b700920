import logging
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from crm_backend.auth import current_user, require_roles
from crm_backend.db import get_db
from crm_backend.errors import CRMError
from crm_backend.models.user import User, UserRole
from crm_backend.routers.errors import http_error
from crm_backend.schemas.interactions import InteractionCreate, InteractionOut
from crm_backend.services import interactions as interaction_service

logger = logging.getLogger("crm_backend.routers.interactions")

router = APIRouter(
    prefix="/interactions",
    tags=["interactions"],
)


@router.post("", response_model=InteractionOut, status_code=status.HTTP_201_CREATED)
def create_interaction(
    payload: InteractionCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.AGENT)),
) -> InteractionOut:
    try:
        interaction = interaction_service.log_interaction(
            db,
            customer_id=payload.customer_id,
            agent_id=payload.agent_id or user.id,
            interaction_type=payload.type,
            content=payload.content,
        )
    except CRMError as exc:
        raise http_error(exc) from exc
    return InteractionOut.model_validate(interaction)


@router.get("", response_model=List[InteractionOut], summary="Contact history, newest first")
def list_interactions(
    customer_id: str = Query(..., alias="customerId"),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
) -> List[InteractionOut]:
    interactions = interaction_service.list_for_customer(db, customer_id)
    return [InteractionOut.model_validate(i) for i in interactions]
