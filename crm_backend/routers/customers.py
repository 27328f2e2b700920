import datetime
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from crm_backend.auth import current_user
from crm_backend.db import get_db
from crm_backend.errors import CRMError
from crm_backend.models.customer import CustomerStatus
from crm_backend.models.user import User
from crm_backend.routers.errors import http_error
from crm_backend.schemas.customers import CustomerOptions, CustomerOut, CustomerUpdate, TagOut
from crm_backend.services import customers as customer_service

logger = logging.getLogger("crm_backend.routers.customers")

router = APIRouter(
    prefix="/customers",
    tags=["customers"],
)


@router.get("", response_model=List[CustomerOut], summary="List customers, newest first")
def list_customers(
    website_id: Optional[str] = Query(None, alias="websiteId"),
    search: Optional[str] = None,
    customer_status: Optional[CustomerStatus] = Query(None, alias="status"),
    last_deposit_date: Optional[datetime.date] = Query(None, alias="lastDepositDate"),
    website: Optional[str] = None,
    branch: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
) -> List[CustomerOut]:
    customers = customer_service.list_customers(
        db,
        website_id=website_id,
        search=search,
        status=customer_status.value if customer_status else None,
        last_deposit_date=last_deposit_date,
        website=website,
        branch=branch,
    )
    return [CustomerOut.model_validate(c) for c in customers]


@router.get("/options", response_model=CustomerOptions)
def customer_options(
    website: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
) -> CustomerOptions:
    return CustomerOptions(**customer_service.get_customer_options(db, website=website))


@router.get("/tags", response_model=List[TagOut])
def list_tags(
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
) -> List[TagOut]:
    return [TagOut.model_validate(tag) for tag in customer_service.list_tags(db)]


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(
    customer_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
) -> CustomerOut:
    try:
        customer = customer_service.get_customer(db, customer_id)
    except CRMError as exc:
        raise http_error(exc) from exc
    return CustomerOut.model_validate(customer)


@router.patch("/{customer_id}", response_model=CustomerOut, summary="Reassign a customer's tag")
def update_customer(
    customer_id: str,
    payload: CustomerUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
) -> CustomerOut:
    try:
        customer = customer_service.set_customer_tag(
            db, customer_id=customer_id, tag_id=payload.tag_id
        )
    except CRMError as exc:
        raise http_error(exc) from exc
    return CustomerOut.model_validate(customer)
