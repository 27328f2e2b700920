import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from crm_backend.auth import require_roles
from crm_backend.db import get_db
from crm_backend.errors import CRMError
from crm_backend.models.user import User, UserRole
from crm_backend.routers.errors import http_error
from crm_backend.schemas.websites import WebsiteCreate, WebsiteOut
from crm_backend.services import websites as website_service

logger = logging.getLogger("crm_backend.routers.websites")

router = APIRouter(
    prefix="/websites",
    tags=["websites"],
)


@router.get("", response_model=List[WebsiteOut])
def list_websites(db: Session = Depends(get_db)) -> List[WebsiteOut]:
    return [WebsiteOut.model_validate(w) for w in website_service.list_websites(db)]


@router.get("/{website_id}", response_model=WebsiteOut)
def get_website(website_id: str, db: Session = Depends(get_db)) -> WebsiteOut:
    try:
        website = website_service.get_website(db, website_id)
    except CRMError as exc:
        raise http_error(exc) from exc
    return WebsiteOut.model_validate(website)


@router.post("", response_model=WebsiteOut, status_code=status.HTTP_201_CREATED)
def create_website(
    payload: WebsiteCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN)),
) -> WebsiteOut:
    website = website_service.create_website(db, payload)
    return WebsiteOut.model_validate(website)
