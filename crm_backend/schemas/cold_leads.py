import datetime
from typing import Optional

from pydantic import Field

from crm_backend.models.cold_lead import ColdLeadStatus
from crm_backend.schemas.base import CamelModel


class AgentActionRequest(CamelModel):
    """Body of claim/promote calls: the agent acting on the lead."""

    agent_id: str = Field(..., min_length=1, description="Id of the acting agent.")


class ColdLeadOut(CamelModel):
    id: str
    website_id: str
    external_id: str
    username: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    status: ColdLeadStatus
    claimed_by_id: Optional[str] = None
    claimed_at: Optional[datetime.datetime] = None
    created_at: datetime.datetime
