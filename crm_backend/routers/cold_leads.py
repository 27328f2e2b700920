import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from crm_backend.db import get_db
from crm_backend.errors import CRMError
from crm_backend.routers.errors import http_error
from crm_backend.schemas.cold_leads import AgentActionRequest, ColdLeadOut
from crm_backend.schemas.customers import CustomerOut
from crm_backend.services import cold_leads as cold_lead_service

logger = logging.getLogger("crm_backend.routers.cold_leads")

router = APIRouter(
    prefix="/cold-leads",
    tags=["cold-leads"],
)


@router.get(
    "/available",
    response_model=List[ColdLeadOut],
    summary="List claimable leads of a website",
)
def list_available_leads(
    website_id: str = Query(..., alias="websiteId"),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
) -> List[ColdLeadOut]:
    leads = cold_lead_service.list_available(db, website_id=website_id, limit=limit)
    return [ColdLeadOut.model_validate(lead) for lead in leads]


@router.get(
    "/my-leads",
    response_model=List[ColdLeadOut],
    summary="List leads claimed by an agent",
)
def list_my_leads(
    agent_id: str = Query(..., alias="agentId"),
    db: Session = Depends(get_db),
) -> List[ColdLeadOut]:
    leads = cold_lead_service.list_claimed_by(db, agent_id=agent_id)
    return [ColdLeadOut.model_validate(lead) for lead in leads]


@router.get("/{lead_id}", response_model=ColdLeadOut)
def get_cold_lead(lead_id: str, db: Session = Depends(get_db)) -> ColdLeadOut:
    try:
        lead = cold_lead_service.get_lead(db, lead_id)
    except CRMError as exc:
        raise http_error(exc) from exc
    return ColdLeadOut.model_validate(lead)


@router.post(
    "/{lead_id}/claim",
    response_model=ColdLeadOut,
    summary="Claim an available lead",
    description=(
        "Moves the lead to CLAIMED for the agent. Fails with 429 once the agent "
        "has used the daily claim allowance, 409 if someone else got there first."
    ),
)
def claim_cold_lead(
    lead_id: str,
    payload: AgentActionRequest,
    db: Session = Depends(get_db),
) -> ColdLeadOut:
    try:
        lead = cold_lead_service.claim_lead(db, lead_id=lead_id, agent_id=payload.agent_id)
    except CRMError as exc:
        raise http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - safety net
        logger.exception("Unexpected error while claiming lead %s", lead_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unexpected error while claiming lead.",
        ) from exc
    return ColdLeadOut.model_validate(lead)


@router.post(
    "/{lead_id}/promote",
    response_model=CustomerOut,
    status_code=status.HTTP_201_CREATED,
    summary="Promote a claimed lead to a customer",
)
def promote_cold_lead(
    lead_id: str,
    payload: AgentActionRequest,
    db: Session = Depends(get_db),
) -> CustomerOut:
    try:
        customer = cold_lead_service.promote_lead(db, lead_id=lead_id, agent_id=payload.agent_id)
    except CRMError as exc:
        raise http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - safety net
        logger.exception("Unexpected error while promoting lead %s", lead_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unexpected error while promoting lead.",
        ) from exc
    return CustomerOut.model_validate(customer)
