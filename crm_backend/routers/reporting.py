import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm_backend.db import get_db
from crm_backend.errors import CRMError
from crm_backend.routers.errors import http_error
from crm_backend.schemas.reporting import AgentPerformance, ManagerDashboard
from crm_backend.schemas.websites import WebsiteStats
from crm_backend.services import reporting as reporting_service

logger = logging.getLogger("crm_backend.routers.reporting")

router = APIRouter(
    prefix="/reporting",
    tags=["reporting"],
)


@router.get("/agent/{agent_id}", response_model=AgentPerformance)
def agent_performance(
    agent_id: str,
    start_date: Optional[datetime.date] = Query(None, alias="startDate"),
    end_date: Optional[datetime.date] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    return reporting_service.agent_performance(
        db, agent_id, start_date=start_date, end_date=end_date
    )


@router.get("/manager/{manager_id}", response_model=ManagerDashboard)
def manager_dashboard(manager_id: str, db: Session = Depends(get_db)):
    return reporting_service.manager_dashboard(db, manager_id)


@router.get("/website/{website_id}", response_model=WebsiteStats)
def website_stats(website_id: str, db: Session = Depends(get_db)):
    try:
        return reporting_service.website_stats(db, website_id)
    except CRMError as exc:
        raise http_error(exc) from exc
