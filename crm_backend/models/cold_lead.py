import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Index, String

from crm_backend import clock
from crm_backend.db import Base, new_uuid


class ColdLeadStatus(str, Enum):
    """AVAILABLE -> CLAIMED -> CONVERTED. Nothing moves backwards."""

    AVAILABLE = "available"
    CLAIMED = "claimed"
    CONVERTED = "converted"


class ColdLead(Base):
    """Prospect in a tenant's shared pool, waiting to be claimed by an agent."""

    __tablename__ = "cold_leads"

    id: str = Column(String(36), primary_key=True, default=new_uuid)
    website_id: str = Column(String(36), ForeignKey("websites.id"), nullable=False, index=True)
    external_id: str = Column(String(128), nullable=False)
    username: Optional[str] = Column(String(255), nullable=True)
    email: Optional[str] = Column(String(255), nullable=True)
    phone: Optional[str] = Column(String(64), nullable=True)
    status: str = Column(
        String(16), nullable=False, default=ColdLeadStatus.AVAILABLE.value, index=True
    )
    claimed_by_id: Optional[str] = Column(String(36), ForeignKey("users.id"), nullable=True)
    claimed_at: Optional[datetime.datetime] = Column(DateTime, nullable=True)
    created_at: datetime.datetime = Column(DateTime, default=clock.now, nullable=False)
    updated_at: datetime.datetime = Column(
        DateTime, default=clock.now, onupdate=clock.now, nullable=False
    )

    __table_args__ = (
        Index("ix_cold_leads_claimer_claimed_at", "claimed_by_id", "claimed_at"),
    )
