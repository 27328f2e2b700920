"""
Models package for the CRM backend.

Imports every ORM model so they are registered with Base.metadata.
"""

from crm_backend.db import Base
from .website import Website  # noqa: F401
from .user import User, UserRole  # noqa: F401
from .customer import (  # noqa: F401
    CATEGORY_ONE_TIME,
    CATEGORY_POTENTIAL,
    Customer,
    CustomerStatus,
    Tag,
)
from .cold_lead import ColdLead, ColdLeadStatus  # noqa: F401
from .transaction import DEPOSIT, WITHDRAW, Transaction  # noqa: F401
from .interaction import Interaction, InteractionType  # noqa: F401
from .claim_quota import AgentDailyClaims  # noqa: F401

__all__ = [
    "Base",
    "Website",
    "User",
    "UserRole",
    "Tag",
    "Customer",
    "CustomerStatus",
    "CATEGORY_ONE_TIME",
    "CATEGORY_POTENTIAL",
    "ColdLead",
    "ColdLeadStatus",
    "Transaction",
    "DEPOSIT",
    "WITHDRAW",
    "Interaction",
    "InteractionType",
    "AgentDailyClaims",
]
