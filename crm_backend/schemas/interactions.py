import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from crm_backend.models.interaction import InteractionType
from crm_backend.schemas.base import CamelModel


class MessageChannel(str, Enum):
    WHATSAPP = "whatsapp"
    TELEGRAM = "telegram"
    SMS = "sms"


class InteractionCreate(CamelModel):
    customer_id: str
    agent_id: Optional[str] = None
    type: InteractionType = InteractionType.NOTE
    content: str = Field(..., min_length=1)


class InteractionOut(CamelModel):
    id: str
    customer_id: str
    agent_id: Optional[str] = None
    type: InteractionType
    content: str
    created_at: datetime.datetime


class SendMessageRequest(CamelModel):
    customer_id: str
    channel: MessageChannel
    content: str = Field(..., min_length=1)
    agent_id: Optional[str] = None


class InitiateCallRequest(CamelModel):
    customer_id: str
    agent_id: str
    outcome: Optional[str] = Field(
        default=None,
        description="Free-text call outcome appended to the logged interaction.",
    )


class IntegrationResult(CamelModel):
    success: bool
    message: str
    interaction: InteractionOut
