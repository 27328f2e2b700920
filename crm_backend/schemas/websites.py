import datetime

from pydantic import Field

from crm_backend.schemas.base import CamelModel


class WebsiteCreate(CamelModel):
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1, description="Label used by transaction exports.")


class WebsiteOut(CamelModel):
    id: str
    name: str
    url: str
    created_at: datetime.datetime


class WebsiteStats(CamelModel):
    website_id: str
    total_customers: int
    available_leads: int
    claimed_leads: int
