from __future__ import annotations

import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
)

from crm_backend import clock
from crm_backend.db import Base, new_uuid


class CustomerStatus(str, Enum):
    """Retention lifecycle of a depositing customer."""

    NEW = "new"
    ONE_TIME_DEPOSIT = "one_time_deposit"
    CLAIMED = "claimed"
    CONTACTED = "contacted"
    RETAINED = "retained"
    CHURNED = "churned"


CATEGORY_ONE_TIME = "One Time Deposit User"
CATEGORY_POTENTIAL = "Potential"


class Tag(Base):
    __tablename__ = "tags"

    id: str = Column(String(36), primary_key=True, default=new_uuid)
    name: str = Column(String(64), nullable=False, unique=True)
    color: Optional[str] = Column(String(16), nullable=True)


class Customer(Base):
    """
    A known depositor of one tenant.

    Deposit totals and dates here are a cache maintained by upserts; the
    transaction ledger is the authoritative history.
    """

    __tablename__ = "customers"

    id: str = Column(String(36), primary_key=True, default=new_uuid)
    website_id: str = Column(String(36), ForeignKey("websites.id"), nullable=False, index=True)
    external_id: str = Column(String(128), nullable=False, index=True)

    username: Optional[str] = Column(String(255), nullable=True, index=True)
    email: Optional[str] = Column(String(255), nullable=True)
    phone: Optional[str] = Column(String(64), nullable=True)

    total_deposits: float = Column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    last_deposit_date: Optional[datetime.datetime] = Column(DateTime, nullable=True)
    last_deposit_amount: Optional[float] = Column(Numeric(15, 2, asdecimal=False), nullable=True)
    first_deposit_date: Optional[datetime.datetime] = Column(DateTime, nullable=True)
    total_withdrawals: float = Column(Numeric(15, 2, asdecimal=False), nullable=False, default=0)
    first_withdrawal_date: Optional[datetime.datetime] = Column(DateTime, nullable=True)
    last_withdrawal_date: Optional[datetime.datetime] = Column(DateTime, nullable=True)

    # Descriptive attributes carried over from the back-office exports
    website_name: Optional[str] = Column(String(255), nullable=True)
    panel_name: Optional[str] = Column(String(255), nullable=True)
    language: Optional[str] = Column(String(64), nullable=True)
    retention_rm: Optional[str] = Column(String(255), nullable=True)
    pullback_rm: Optional[str] = Column(String(255), nullable=True)
    client_name: Optional[str] = Column(String(255), nullable=True)
    branch: Optional[str] = Column(String(255), nullable=True)
    id_status: Optional[str] = Column(String(64), nullable=True)
    game_interest: Optional[str] = Column(String(128), nullable=True)

    status: str = Column(String(32), nullable=False, default=CustomerStatus.NEW.value, index=True)
    category: Optional[str] = Column(String(64), nullable=True)

    assigned_agent_id: Optional[str] = Column(
        String(36), ForeignKey("users.id"), nullable=True, index=True
    )
    assigned_at: Optional[datetime.datetime] = Column(DateTime, nullable=True)
    tag_id: Optional[str] = Column(String(36), ForeignKey("tags.id"), nullable=True)

    created_at: datetime.datetime = Column(DateTime, default=clock.now, nullable=False, index=True)
    updated_at: datetime.datetime = Column(
        DateTime, default=clock.now, onupdate=clock.now, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("website_id", "external_id", name="uq_customers_website_external"),
        Index("ix_customers_external_website", "external_id", "website_id"),
    )
