from __future__ import annotations

import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String

from crm_backend import clock
from crm_backend.db import Base, new_uuid


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    RETENTION_MANAGER = "retention_manager"
    AGENT = "agent"
    SERVICE = "service"


class User(Base):
    """Staff account. Non-admins are scoped to one tenant and a panel list."""

    __tablename__ = "users"

    id: str = Column(String(36), primary_key=True, default=new_uuid)
    email: str = Column(String(255), unique=True, nullable=False, index=True)
    full_name: str = Column(String(255), nullable=False)
    role: str = Column(String(32), nullable=False, default=UserRole.AGENT.value, index=True)
    website_id: Optional[str] = Column(
        String(36), ForeignKey("websites.id"), nullable=True, index=True
    )
    panels: List[str] = Column(JSON, nullable=False, default=list)
    manager_id: Optional[str] = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    is_active: bool = Column(Boolean, nullable=False, default=True)
    # Bumped to revoke every outstanding session for the user.
    token_version: int = Column(Integer, nullable=False, default=1)
    last_login_at: Optional[datetime.datetime] = Column(DateTime, nullable=True)
    created_at: datetime.datetime = Column(DateTime, default=clock.now, nullable=False)
    updated_at: datetime.datetime = Column(
        DateTime, default=clock.now, onupdate=clock.now, nullable=False
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
