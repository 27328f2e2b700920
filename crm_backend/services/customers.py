from __future__ import annotations

import datetime
import logging
from typing import Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crm_backend import clock
from crm_backend.errors import NotFoundError
from crm_backend.models.customer import (
    CATEGORY_ONE_TIME,
    CATEGORY_POTENTIAL,
    Customer,
    CustomerStatus,
    Tag,
)
from crm_backend.models.website import Website

logger = logging.getLogger("crm_backend.services.customers")

POTENTIAL_THRESHOLD = 100


def categorize(total_deposits: float) -> str:
    """Category is derived from the running deposit total only."""
    if (total_deposits or 0) < POTENTIAL_THRESHOLD:
        return CATEGORY_ONE_TIME
    return CATEGORY_POTENTIAL


def upsert_customer(
    session: Session,
    *,
    website_id: str,
    external_id: str,
    username: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    last_deposit_amount: Optional[float] = None,
    last_deposit_date: Optional[datetime.datetime] = None,
) -> Customer:
    """
    Create or update the customer identified by (website_id, external_id).

    - New customers start as NEW with the given amount as their total.
    - Existing customers accumulate the amount; last deposit date/amount are
      replaced only when provided.
    - A CONTACTED customer who deposits again becomes RETAINED.
    - The category is recomputed from the new total on every call.
    """
    customer = session.scalar(
        select(Customer).where(
            Customer.website_id == website_id,
            Customer.external_id == external_id,
        )
    )

    if customer is None:
        customer = Customer(
            website_id=website_id,
            external_id=external_id,
            username=username,
            email=email,
            phone=phone,
            total_deposits=last_deposit_amount or 0,
            total_withdrawals=0,
            last_deposit_amount=last_deposit_amount,
            last_deposit_date=last_deposit_date,
            first_deposit_date=last_deposit_date,
            status=CustomerStatus.NEW.value,
        )
        session.add(customer)
        created = True
    else:
        customer.total_deposits = (customer.total_deposits or 0) + (last_deposit_amount or 0)
        if last_deposit_date is not None:
            customer.last_deposit_date = last_deposit_date
            if customer.first_deposit_date is None:
                customer.first_deposit_date = last_deposit_date
        if last_deposit_amount is not None:
            customer.last_deposit_amount = last_deposit_amount
        if (
            customer.status == CustomerStatus.CONTACTED.value
            and last_deposit_amount is not None
            and last_deposit_amount > 0
        ):
            customer.status = CustomerStatus.RETAINED.value
        created = False

    customer.category = categorize(customer.total_deposits)

    try:
        session.commit()
    except SQLAlchemyError:
        logger.exception("Failed to upsert customer %s (website=%s)", external_id, website_id)
        session.rollback()
        raise
    session.refresh(customer)

    logger.info(
        "Customer %s (website=%s, external_id=%s, total=%s, category=%s)",
        "created" if created else "updated",
        website_id,
        external_id,
        customer.total_deposits,
        customer.category,
    )
    return customer


def get_customer(session: Session, customer_id: str) -> Customer:
    customer = session.get(Customer, customer_id)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


def list_customers(
    session: Session,
    *,
    website_id: Optional[str] = None,
    search: Optional[str] = None,
    status: Optional[str] = None,
    last_deposit_date: Optional[datetime.date] = None,
    website: Optional[str] = None,
    branch: Optional[str] = None,
) -> List[Customer]:
    """Customers matching all given filters, newest first."""
    stmt = select(Customer)

    if website_id:
        stmt = stmt.where(Customer.website_id == website_id)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(
            or_(
                Customer.username.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.phone.ilike(pattern),
            )
        )
    if status:
        stmt = stmt.where(Customer.status == status)
    if last_deposit_date:
        start, end = clock.day_bounds(last_deposit_date)
        stmt = stmt.where(Customer.last_deposit_date >= start, Customer.last_deposit_date < end)
    if website:
        stmt = stmt.where(Customer.website_name == website)
    if branch:
        stmt = stmt.where(Customer.branch == branch)

    stmt = stmt.order_by(Customer.created_at.desc())
    return list(session.scalars(stmt))


def get_customer_options(session: Session, *, website: Optional[str] = None) -> Dict[str, List[str]]:
    """Distinct website names and branches, for filter drop-downs."""
    websites = session.scalars(
        select(Website.name)
        .join(Customer, Customer.website_id == Website.id)
        .where(Website.name.is_not(None))
        .distinct()
        .order_by(Website.name)
    ).all()

    branch_stmt = select(Customer.branch).where(Customer.branch.is_not(None))
    if website:
        branch_stmt = branch_stmt.where(Customer.website_name == website)
    branches = session.scalars(branch_stmt.distinct().order_by(Customer.branch)).all()

    return {"websites": list(websites), "branches": list(branches)}


def list_tags(session: Session) -> List[Tag]:
    return list(session.scalars(select(Tag).order_by(Tag.name)))


def set_customer_tag(session: Session, *, customer_id: str, tag_id: Optional[str]) -> Customer:
    customer = get_customer(session, customer_id)
    if tag_id is not None and session.get(Tag, tag_id) is None:
        raise NotFoundError("Tag not found")

    customer.tag_id = tag_id
    try:
        session.commit()
    except SQLAlchemyError:
        logger.exception("Failed to update tag for customer=%s", customer_id)
        session.rollback()
        raise
    session.refresh(customer)
    logger.info("Customer %s tag set to %s", customer_id, tag_id)
    return customer
