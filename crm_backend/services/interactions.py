import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crm_backend.errors import NotFoundError
from crm_backend.models.customer import Customer
from crm_backend.models.interaction import Interaction, InteractionType
from crm_backend.models.user import User

logger = logging.getLogger("crm_backend.services.interactions")


def log_interaction(
    session: Session,
    *,
    customer_id: str,
    content: str,
    interaction_type: InteractionType = InteractionType.NOTE,
    agent_id: Optional[str] = None,
) -> Interaction:
    """Append an entry to a customer's contact history."""
    if session.get(Customer, customer_id) is None:
        raise NotFoundError("Customer not found")
    if agent_id is not None and session.get(User, agent_id) is None:
        raise NotFoundError("Agent not found")

    interaction = Interaction(
        customer_id=customer_id,
        agent_id=agent_id,
        type=InteractionType(interaction_type).value,
        content=content,
    )
    session.add(interaction)
    try:
        session.commit()
    except SQLAlchemyError:
        logger.exception("Failed to log interaction for customer=%s", customer_id)
        session.rollback()
        raise
    session.refresh(interaction)

    logger.info(
        "Interaction logged (customer=%s, agent=%s, type=%s)",
        customer_id,
        agent_id,
        interaction.type,
    )
    return interaction


def list_for_customer(session: Session, customer_id: str) -> List[Interaction]:
    stmt = (
        select(Interaction)
        .where(Interaction.customer_id == customer_id)
        .order_by(Interaction.created_at.desc())
    )
    return list(session.scalars(stmt))
