"""
Outbound messaging and calls.

Delivery is simulated: nothing leaves the process. Every attempt is recorded
as an interaction so it shows up in the customer's history.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from crm_backend.models.interaction import Interaction, InteractionType
from crm_backend.schemas.interactions import MessageChannel
from crm_backend.services.interactions import log_interaction

logger = logging.getLogger("crm_backend.services.integrations")

_CHANNEL_TYPES = {
    MessageChannel.WHATSAPP: InteractionType.WHATSAPP,
    MessageChannel.TELEGRAM: InteractionType.TELEGRAM,
}


def send_message(
    session: Session,
    *,
    customer_id: str,
    channel: MessageChannel,
    content: str,
    agent_id: Optional[str] = None,
) -> Tuple[Interaction, str]:
    channel = MessageChannel(channel)
    logger.info("Sending %s message to customer=%s (simulated)", channel.value, customer_id)

    interaction = log_interaction(
        session,
        customer_id=customer_id,
        agent_id=agent_id,
        interaction_type=_CHANNEL_TYPES.get(channel, InteractionType.OTHER),
        content=f"[Outbound {channel.value.upper()}] {content}",
    )
    return interaction, "Message sent (simulated)"


def initiate_call(
    session: Session,
    *,
    customer_id: str,
    agent_id: str,
    outcome: Optional[str] = None,
) -> Tuple[Interaction, str]:
    logger.info("Initiating call for customer=%s by agent=%s (simulated)", customer_id, agent_id)

    content = "[Outbound Call] Call initiated"
    if outcome and outcome.strip():
        content = f"{content} - {outcome.strip()}"

    interaction = log_interaction(
        session,
        customer_id=customer_id,
        agent_id=agent_id,
        interaction_type=InteractionType.CALL,
        content=content,
    )
    return interaction, "Call initiated (simulated)"
