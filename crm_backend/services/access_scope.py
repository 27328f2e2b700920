from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import false, func
from sqlalchemy.sql.elements import ColumnElement

from crm_backend.models.transaction import Transaction
from crm_backend.models.user import User


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class AccessScope:
    """
    Which transaction rows a caller may see, merged with the website/panel
    filters they asked for.

    A requested panel outside the caller's assigned panels never widens the
    result; it collapses it to nothing.
    """

    website: Optional[str] = None
    panel: Optional[str] = None
    allowed_panels: Optional[List[str]] = None
    tenant_id: Optional[str] = None
    deny_all: bool = False

    @classmethod
    def for_user(
        cls,
        user: Optional[User],
        *,
        website: Optional[str] = None,
        panel: Optional[str] = None,
    ) -> "AccessScope":
        website = _clean(website)
        panel = _clean(panel)

        # No user means an internal caller: filters apply as given.
        if user is None or user.is_admin:
            return cls(website=website, panel=panel)

        scope = cls(website=website, panel=panel, tenant_id=user.website_id)

        assigned = [p.strip().lower() for p in (user.panels or []) if p and p.strip()]
        if assigned:
            scope.allowed_panels = assigned
            if panel is not None and panel.lower() not in assigned:
                scope.deny_all = True
        return scope

    def conditions(self, tenant_expr: ColumnElement, *, substring: bool = False) -> List[ColumnElement]:
        """
        WHERE clauses over Transaction for this scope.

        `tenant_expr` resolves Transaction.website to a tenant id. With
        `substring`, requested website/panel values match anywhere in the
        label instead of exactly; assigned panels always match exactly.
        """
        if self.deny_all:
            return [false()]

        clauses: List[ColumnElement] = []
        if self.website:
            clauses.append(_label_match(Transaction.website, self.website, substring))
        if self.panel:
            clauses.append(_label_match(Transaction.panel, self.panel, substring))
        if self.allowed_panels:
            clauses.append(func.lower(Transaction.panel).in_(self.allowed_panels))
        if self.tenant_id:
            clauses.append(tenant_expr == self.tenant_id)
        return clauses


def _label_match(column, value: str, substring: bool) -> ColumnElement:
    if substring:
        return column.ilike(f"%{value}%")
    return func.lower(column) == value.lower()
