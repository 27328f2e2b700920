from __future__ import annotations

import datetime
import logging
from typing import Any, Dict, Optional

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from crm_backend import clock
from crm_backend.errors import NotFoundError
from crm_backend.models.cold_lead import ColdLead, ColdLeadStatus
from crm_backend.models.customer import Customer, CustomerStatus
from crm_backend.models.user import User
from crm_backend.models.website import Website

logger = logging.getLogger("crm_backend.services.reporting")


def _retention_rate(retained: int, total: int) -> float:
    """Percentage of retained customers, 0 when there are none."""
    if total <= 0:
        return 0.0
    return retained / total * 100


def agent_performance(
    session: Session,
    agent_id: str,
    *,
    start_date: Optional[datetime.date] = None,
    end_date: Optional[datetime.date] = None,
) -> Dict[str, Any]:
    """
    Customers assigned to an agent and what came of them.

    The date window applies to `assigned_at` and only when both bounds are
    given; the claimed-leads count is all-time.
    """
    stmt = select(
        func.count(Customer.id),
        func.coalesce(func.sum(Customer.total_deposits), 0),
        func.coalesce(
            func.sum(case((Customer.status == CustomerStatus.RETAINED.value, 1), else_=0)), 0
        ),
    ).where(Customer.assigned_agent_id == agent_id)

    if start_date and end_date:
        stmt = stmt.where(
            Customer.assigned_at >= clock.day_bounds(start_date)[0],
            Customer.assigned_at < clock.day_bounds(end_date)[1],
        )

    total_customers, total_deposits, retained = session.execute(stmt).one()

    claimed_leads = session.scalar(
        select(func.count(ColdLead.id)).where(ColdLead.claimed_by_id == agent_id)
    )

    return {
        "agent_id": agent_id,
        "total_customers": int(total_customers or 0),
        "claimed_leads": int(claimed_leads or 0),
        "total_deposits": float(total_deposits or 0),
        "retained_customers": int(retained or 0),
        "retention_rate": _retention_rate(int(retained or 0), int(total_customers or 0)),
    }


def manager_dashboard(session: Session, manager_id: str) -> Dict[str, Any]:
    """Per-agent performance for a manager's direct reports plus team totals."""
    agent_ids = session.scalars(
        select(User.id).where(User.manager_id == manager_id).order_by(User.full_name)
    ).all()

    agents = [agent_performance(session, agent_id) for agent_id in agent_ids]

    total_customers = sum(a["total_customers"] for a in agents)
    total_retained = sum(a["retained_customers"] for a in agents)

    logger.debug("Manager dashboard built (manager=%s, team=%d)", manager_id, len(agents))
    return {
        "manager_id": manager_id,
        "team_size": len(agents),
        "total_deposits": sum(a["total_deposits"] for a in agents),
        "total_customers": total_customers,
        "total_claimed": sum(a["claimed_leads"] for a in agents),
        "total_retained": total_retained,
        "average_retention_rate": _retention_rate(total_retained, total_customers),
        "agents": agents,
    }


def website_stats(session: Session, website_id: str) -> Dict[str, Any]:
    if session.get(Website, website_id) is None:
        raise NotFoundError("Website not found")

    def _lead_count(status: ColdLeadStatus) -> int:
        return int(
            session.scalar(
                select(func.count(ColdLead.id)).where(
                    ColdLead.website_id == website_id,
                    ColdLead.status == status.value,
                )
            )
            or 0
        )

    total_customers = session.scalar(
        select(func.count(Customer.id)).where(Customer.website_id == website_id)
    )

    return {
        "website_id": website_id,
        "total_customers": int(total_customers or 0),
        "available_leads": _lead_count(ColdLeadStatus.AVAILABLE),
        "claimed_leads": _lead_count(ColdLeadStatus.CLAIMED),
    }
