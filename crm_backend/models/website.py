import datetime

from sqlalchemy import Column, DateTime, String

from crm_backend import clock
from crm_backend.db import Base, new_uuid


class Website(Base):
    """A tenant. Transactions refer to it loosely by url or name."""

    __tablename__ = "websites"

    id: str = Column(String(36), primary_key=True, default=new_uuid)
    name: str = Column(String(255), nullable=False, index=True)
    url: str = Column(String(255), nullable=False, index=True)
    created_at: datetime.datetime = Column(
        DateTime, default=clock.now, nullable=False, index=True
    )
