from typing import List

from crm_backend.schemas.base import CamelModel


class AgentPerformance(CamelModel):
    agent_id: str
    total_customers: int
    claimed_leads: int
    total_deposits: float
    retained_customers: int
    retention_rate: float


class ManagerDashboard(CamelModel):
    manager_id: str
    team_size: int
    total_deposits: float
    total_customers: int
    total_claimed: int
    total_retained: int
    average_retention_rate: float
    agents: List[AgentPerformance]
