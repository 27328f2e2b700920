"""
Cold lead pool: listing, claiming and promotion to customers.

Both state transitions are conditional UPDATEs whose affected-row count is
checked, so two agents racing for the same lead cannot both win and a lead
never moves backwards.
"""

from __future__ import annotations

import datetime
import logging
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from crm_backend import clock
from crm_backend.config import settings
from crm_backend.errors import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    QuotaExceededError,
)
from crm_backend.models.claim_quota import AgentDailyClaims
from crm_backend.models.cold_lead import ColdLead, ColdLeadStatus
from crm_backend.models.customer import Customer, CustomerStatus
from crm_backend.models.user import User

logger = logging.getLogger("crm_backend.services.cold_leads")


def list_available(session: Session, *, website_id: str, limit: int = 50) -> List[ColdLead]:
    """AVAILABLE leads of one tenant, newest first."""
    stmt = (
        select(ColdLead)
        .where(
            ColdLead.website_id == website_id,
            ColdLead.status == ColdLeadStatus.AVAILABLE.value,
        )
        .order_by(ColdLead.created_at.desc())
        .limit(limit)
    )
    return list(session.scalars(stmt))


def list_claimed_by(session: Session, *, agent_id: str) -> List[ColdLead]:
    """Leads claimed (or converted) by an agent, most recently claimed first."""
    stmt = (
        select(ColdLead)
        .where(ColdLead.claimed_by_id == agent_id)
        .order_by(ColdLead.claimed_at.desc())
    )
    return list(session.scalars(stmt))


def get_lead(session: Session, lead_id: str) -> ColdLead:
    lead = session.get(ColdLead, lead_id)
    if lead is None:
        raise NotFoundError("Lead not found")
    return lead


# ---------------------------------------------------------------------------
# Claim quota
# ---------------------------------------------------------------------------


def _claims_today(session: Session, agent_id: str, now: datetime.datetime) -> int:
    stmt = select(func.count(ColdLead.id)).where(
        ColdLead.claimed_by_id == agent_id,
        ColdLead.claimed_at >= clock.start_of_day(now),
    )
    return int(session.scalar(stmt) or 0)


def _ensure_claim_counter(session: Session, agent_id: str, now: datetime.datetime) -> None:
    """
    Make sure the (agent, today) counter row exists.

    A new row is seeded from the leads already claimed today, so the counter
    stays correct for data written before it existed. Runs in its own short
    transaction; losing the insert race to another request is fine.
    """
    today = now.date()
    exists = session.scalar(
        select(AgentDailyClaims.id).where(
            AgentDailyClaims.agent_id == agent_id,
            AgentDailyClaims.claim_day == today,
        )
    )
    if exists is not None:
        return

    session.add(
        AgentDailyClaims(
            agent_id=agent_id,
            claim_day=today,
            claim_count=_claims_today(session, agent_id, now),
        )
    )
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.debug("Claim counter for agent=%s day=%s created concurrently", agent_id, today)


def _reserve_claim_slot(session: Session, agent_id: str, day: datetime.date, limit: int) -> bool:
    result = session.execute(
        update(AgentDailyClaims)
        .where(
            AgentDailyClaims.agent_id == agent_id,
            AgentDailyClaims.claim_day == day,
            AgentDailyClaims.claim_count < limit,
        )
        .values(claim_count=AgentDailyClaims.claim_count + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def claim_lead(
    session: Session,
    *,
    lead_id: str,
    agent_id: str,
    now: Optional[datetime.datetime] = None,
) -> ColdLead:
    """
    Move an AVAILABLE lead to CLAIMED for `agent_id`.

    The quota check runs first, so an agent at the limit gets a quota error
    even for a lead that is missing or already taken.
    """
    now = now or clock.now()
    limit = settings.claim_daily_limit

    if session.get(User, agent_id) is None:
        raise NotFoundError("Agent not found")

    try:
        _ensure_claim_counter(session, agent_id, now)

        if not _reserve_claim_slot(session, agent_id, now.date(), limit):
            session.rollback()
            logger.warning("Claim rejected: agent=%s reached daily limit %s", agent_id, limit)
            raise QuotaExceededError(f"Daily claim limit reached (max {limit})")

        result = session.execute(
            update(ColdLead)
            .where(
                ColdLead.id == lead_id,
                ColdLead.status == ColdLeadStatus.AVAILABLE.value,
            )
            .values(
                status=ColdLeadStatus.CLAIMED.value,
                claimed_by_id=agent_id,
                claimed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # Releases the reserved slot as well.
            session.rollback()
            if session.get(ColdLead, lead_id) is None:
                raise NotFoundError("Lead not found")
            logger.warning("Claim rejected: lead=%s is no longer available", lead_id)
            raise InvalidStateError("Lead already claimed")

        session.commit()
    except SQLAlchemyError:
        logger.exception("Database error while claiming lead=%s for agent=%s", lead_id, agent_id)
        session.rollback()
        raise

    lead = session.get(ColdLead, lead_id, populate_existing=True)
    logger.info("Lead claimed (lead=%s, agent=%s)", lead_id, agent_id)
    return lead


# ---------------------------------------------------------------------------
# Promotion
# ---------------------------------------------------------------------------


def promote_lead(
    session: Session,
    *,
    lead_id: str,
    agent_id: str,
    now: Optional[datetime.datetime] = None,
) -> Customer:
    """
    Convert a lead claimed by `agent_id` into a Customer of the same tenant.

    Customer creation and the lead transition commit together or not at all.
    """
    now = now or clock.now()

    lead = session.get(ColdLead, lead_id)
    if lead is None:
        raise NotFoundError("Lead not found")
    if lead.claimed_by_id != agent_id:
        logger.warning("Promote rejected: lead=%s not claimed by agent=%s", lead_id, agent_id)
        raise ForbiddenError("You can only promote leads you claimed")
    if lead.status == ColdLeadStatus.CONVERTED.value:
        raise InvalidStateError("Lead already converted")

    customer = Customer(
        website_id=lead.website_id,
        external_id=lead.external_id,
        username=lead.username,
        email=lead.email,
        phone=lead.phone,
        status=CustomerStatus.NEW.value,
        total_deposits=0,
        total_withdrawals=0,
        assigned_agent_id=agent_id,
        assigned_at=now,
    )

    try:
        session.add(customer)
        try:
            session.flush()
        except IntegrityError as exc:
            session.rollback()
            logger.warning(
                "Promote rejected: customer %s already exists in website=%s",
                lead.external_id,
                lead.website_id,
            )
            raise InvalidStateError("Customer already exists for this lead") from exc

        result = session.execute(
            update(ColdLead)
            .where(
                ColdLead.id == lead_id,
                ColdLead.claimed_by_id == agent_id,
                ColdLead.status != ColdLeadStatus.CONVERTED.value,
            )
            .values(status=ColdLeadStatus.CONVERTED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            session.rollback()
            raise InvalidStateError("Lead already converted")

        session.commit()
    except SQLAlchemyError:
        logger.exception("Database error while promoting lead=%s", lead_id)
        session.rollback()
        raise

    session.refresh(customer)
    logger.info(
        "Lead promoted (lead=%s, agent=%s, customer=%s)", lead_id, agent_id, customer.id
    )
    return customer
