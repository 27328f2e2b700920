import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text

from crm_backend import clock
from crm_backend.db import Base, new_uuid


class InteractionType(str, Enum):
    NOTE = "note"
    CALL = "call"
    MEETING = "meeting"
    EMAIL = "email"
    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"
    OTHER = "other"


class Interaction(Base):
    """Contact history entry. The latest `call` row drives the last-call filter."""

    __tablename__ = "interactions"

    id: str = Column(String(36), primary_key=True, default=new_uuid)
    customer_id: str = Column(String(36), ForeignKey("customers.id"), nullable=False)
    agent_id: Optional[str] = Column(String(36), ForeignKey("users.id"), nullable=True)
    type: str = Column(String(16), nullable=False, default=InteractionType.NOTE.value)
    content: str = Column(Text, nullable=False)
    created_at: datetime.datetime = Column(DateTime, default=clock.now, nullable=False)
    updated_at: datetime.datetime = Column(
        DateTime, default=clock.now, onupdate=clock.now, nullable=False
    )

    __table_args__ = (
        Index("ix_interactions_customer_type_created", "customer_id", "type", "created_at"),
    )
