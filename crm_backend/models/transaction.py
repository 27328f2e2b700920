import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, Index, Integer, Numeric, String

from crm_backend import clock
from crm_backend.db import Base

DEPOSIT = "DEPOSIT"
WITHDRAW = "WITHDRAW"


class Transaction(Base):
    """
    Append-only ledger row imported from back-office exports.

    `client` and `website` are free text; they are matched to customers and
    tenants at query time, never through foreign keys.
    """

    __tablename__ = "transactions"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    date: datetime.datetime = Column(DateTime, nullable=False, index=True)
    amount: float = Column(Numeric(15, 2, asdecimal=False), nullable=False)
    type: str = Column(String(32), nullable=False, index=True)
    remark: Optional[str] = Column(String(512), nullable=True)
    panel: Optional[str] = Column(String(128), nullable=True, index=True)
    client: str = Column(String(128), nullable=False, index=True)
    branch: Optional[str] = Column(String(128), nullable=True)
    source_file: Optional[str] = Column(String(255), nullable=True)
    website: Optional[str] = Column(String(255), nullable=True, index=True)
    website_hash: Optional[str] = Column(String(64), nullable=True)
    created_at: datetime.datetime = Column(DateTime, default=clock.now, nullable=False)

    __table_args__ = (
        Index("ix_transactions_client_type_date", "client", "type", "date"),
    )
