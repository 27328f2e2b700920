import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from crm_backend.auth import current_user
from crm_backend.db import get_db
from crm_backend.errors import CRMError
from crm_backend.models.user import User
from crm_backend.routers.errors import http_error
from crm_backend.schemas.interactions import (
    InitiateCallRequest,
    IntegrationResult,
    InteractionOut,
    SendMessageRequest,
)
from crm_backend.services import integrations as integration_service

logger = logging.getLogger("crm_backend.routers.integrations")

router = APIRouter(
    prefix="/integrations",
    tags=["integrations"],
)


@router.post(
    "/message",
    response_model=IntegrationResult,
    summary="Send a WhatsApp/Telegram/SMS message (simulated)",
)
def send_message(
    payload: SendMessageRequest,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
) -> IntegrationResult:
    try:
        interaction, message = integration_service.send_message(
            db,
            customer_id=payload.customer_id,
            channel=payload.channel,
            content=payload.content,
            agent_id=payload.agent_id or user.id,
        )
    except CRMError as exc:
        raise http_error(exc) from exc
    return IntegrationResult(
        success=True,
        message=message,
        interaction=InteractionOut.model_validate(interaction),
    )


@router.post("/call", response_model=IntegrationResult, summary="Start a call (simulated)")
def initiate_call(
    payload: InitiateCallRequest,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
) -> IntegrationResult:
    try:
        interaction, message = integration_service.initiate_call(
            db,
            customer_id=payload.customer_id,
            agent_id=payload.agent_id,
            outcome=payload.outcome,
        )
    except CRMError as exc:
        raise http_error(exc) from exc
    return IntegrationResult(
        success=True,
        message=message,
        interaction=InteractionOut.model_validate(interaction),
    )
