import datetime

from sqlalchemy import Column, Date, ForeignKey, Integer, String, UniqueConstraint

from crm_backend.db import Base


class AgentDailyClaims(Base):
    """
    Per-agent, per-day claim counter.

    Slots are reserved with a conditional increment so concurrent claims
    cannot push an agent past the daily limit.
    """

    __tablename__ = "agent_daily_claims"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    agent_id: str = Column(String(36), ForeignKey("users.id"), nullable=False)
    claim_day: datetime.date = Column(Date, nullable=False)
    claim_count: int = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("agent_id", "claim_day", name="uq_agent_daily_claims_agent_day"),
    )
