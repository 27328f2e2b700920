import datetime
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from crm_backend.schemas.base import CamelModel

T = TypeVar("T")


class ClientActivityStatus(str, Enum):
    """Recency bucket derived from a customer's last deposit/withdrawal."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SLEEPING = "sleeping"


class Page(CamelModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    limit: int
    total_pages: int


class TransactionOut(CamelModel):
    id: int
    date: datetime.datetime
    amount: float
    type: str
    remark: Optional[str] = None
    panel: Optional[str] = None
    client: str
    branch: Optional[str] = None
    website: Optional[str] = None


class ClientSummaryRow(CamelModel):
    """One aggregated row of the client listing."""

    client: str
    customer_id: str
    branch: Optional[str] = None
    panel: Optional[str] = None
    website: Optional[str] = None
    transaction_count: int
    total_deposits: float
    total_withdrawals: float
    last_deposit_date: Optional[datetime.datetime] = None
    status: ClientActivityStatus


class ClientTransactionSummary(CamelModel):
    total_deposits: float
    total_withdrawals: float
    deposit_count: int
    withdrawal_count: int
    last_deposit_date: Optional[datetime.datetime] = None


class ClientTag(CamelModel):
    id: str
    name: str
    color: Optional[str] = None


class ClientDetail(CamelModel):
    client: str
    customer_id: Optional[str] = None
    tag: Optional[ClientTag] = None
    branch: str
    website: str
    deposits: List[TransactionOut]
    withdrawals: List[TransactionOut]
    summary: ClientTransactionSummary


class TransactionOptions(CamelModel):
    panels: List[str]
    websites: List[str]
    branches: List[str]
