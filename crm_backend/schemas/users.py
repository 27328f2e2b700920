import datetime
from typing import List, Optional

from pydantic import EmailStr, Field

from crm_backend.models.user import UserRole
from crm_backend.schemas.base import CamelModel


class UserCreate(CamelModel):
    email: EmailStr
    full_name: str = Field(..., min_length=1)
    role: UserRole = UserRole.AGENT
    website_id: Optional[str] = None
    panels: List[str] = Field(default_factory=list)
    manager_id: Optional[str] = None


class UserUpdate(CamelModel):
    """Partial update; only fields present in the body are applied."""

    full_name: Optional[str] = Field(default=None, min_length=1)
    role: Optional[UserRole] = None
    website_id: Optional[str] = None
    panels: Optional[List[str]] = None
    manager_id: Optional[str] = None
    is_active: Optional[bool] = None


class UserOut(CamelModel):
    id: str
    email: str
    full_name: str
    role: UserRole
    website_id: Optional[str] = None
    panels: List[str] = Field(default_factory=list)
    manager_id: Optional[str] = None
    is_active: bool
    token_version: int
    last_login_at: Optional[datetime.datetime] = None
    created_at: datetime.datetime
