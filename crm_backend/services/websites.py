import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crm_backend.errors import NotFoundError
from crm_backend.models.website import Website
from crm_backend.schemas.websites import WebsiteCreate

logger = logging.getLogger("crm_backend.services.websites")


def list_websites(session: Session) -> List[Website]:
    return list(session.scalars(select(Website).order_by(Website.name)))


def get_website(session: Session, website_id: str) -> Website:
    website = session.get(Website, website_id)
    if website is None:
        raise NotFoundError("Website not found")
    return website


def create_website(session: Session, payload: WebsiteCreate) -> Website:
    website = Website(name=payload.name.strip(), url=payload.url.strip())
    session.add(website)
    try:
        session.commit()
    except SQLAlchemyError:
        logger.exception("Failed to create website %s", payload.name)
        session.rollback()
        raise
    session.refresh(website)
    logger.info("Website created (id=%s, url=%s)", website.id, website.url)
    return website
