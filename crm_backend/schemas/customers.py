import datetime
from typing import List, Optional

from pydantic import Field

from crm_backend.models.customer import CustomerStatus
from crm_backend.schemas.base import CamelModel


class TagOut(CamelModel):
    id: str
    name: str
    color: Optional[str] = None


class CustomerOut(CamelModel):
    """Customer as returned by list/detail/promote endpoints."""

    id: str
    website_id: str
    external_id: str
    username: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    total_deposits: float = 0
    last_deposit_date: Optional[datetime.datetime] = None
    last_deposit_amount: Optional[float] = None
    first_deposit_date: Optional[datetime.datetime] = None
    total_withdrawals: float = 0
    first_withdrawal_date: Optional[datetime.datetime] = None
    last_withdrawal_date: Optional[datetime.datetime] = None
    website_name: Optional[str] = None
    panel_name: Optional[str] = None
    branch: Optional[str] = None
    game_interest: Optional[str] = None
    status: CustomerStatus
    category: Optional[str] = None
    assigned_agent_id: Optional[str] = None
    assigned_at: Optional[datetime.datetime] = None
    tag_id: Optional[str] = None
    created_at: datetime.datetime


class CustomerUpdate(CamelModel):
    tag_id: Optional[str] = Field(
        default=None,
        description="Tag to assign; null clears the current tag.",
    )


class CustomerOptions(CamelModel):
    websites: List[str]
    branches: List[str]
