from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from sqlalchemy import String, case, cast, func, null, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from crm_backend.models.website import Website

logger = logging.getLogger("crm_backend.services.website_index")


@dataclass(frozen=True)
class WebsiteIndex:
    """
    Maps lowercased website labels (url or name) to tenant ids.

    Transactions carry the tenant as free text, so this is how a ledger row is
    tied to a tenant. URL labels take precedence over names, and for equal
    labels the earliest-created website wins.
    """

    lookup: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def build(cls, session: Session) -> "WebsiteIndex":
        websites = session.scalars(
            select(Website).order_by(Website.created_at, Website.id)
        ).all()

        lookup: Dict[str, str] = {}
        for website in websites:
            label = (website.url or "").strip().lower()
            if label:
                lookup.setdefault(label, website.id)
        for website in websites:
            label = (website.name or "").strip().lower()
            if label:
                lookup.setdefault(label, website.id)

        logger.debug("WebsiteIndex built (websites=%d, labels=%d)", len(websites), len(lookup))
        return cls(lookup=lookup)

    def __bool__(self) -> bool:
        return bool(self.lookup)

    def resolve(self, label: Optional[str]) -> Optional[str]:
        if not label:
            return None
        return self.lookup.get(label.strip().lower())

    def tenant_expression(self, column) -> ColumnElement:
        """
        SQL expression yielding the tenant id for a website-label column,
        NULL when the label matches no website.
        """
        if not self.lookup:
            return cast(null(), String)
        return case(self.lookup, value=func.lower(column), else_=null())
