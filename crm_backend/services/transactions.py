"""
Transaction ledger queries and the unique-client rollup.

Transactions reach customers only through string matching: the free-text
`website` label is resolved to a tenant via WebsiteIndex, then
(client, tenant) is matched against (customer.external_id, customer.website_id).
All of it is compiled into SQL so filtering, paging and counting stay in the
database.
"""

from __future__ import annotations

import datetime
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from crm_backend import clock
from crm_backend.config import settings
from crm_backend.errors import InvalidInputError
from crm_backend.models.customer import Customer, Tag
from crm_backend.models.interaction import Interaction, InteractionType
from crm_backend.models.transaction import DEPOSIT, WITHDRAW, Transaction
from crm_backend.schemas.transactions import ClientActivityStatus
from crm_backend.services.access_scope import AccessScope
from crm_backend.services.website_index import WebsiteIndex

logger = logging.getLogger("crm_backend.services.transactions")


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


@dataclass
class ClientFilters:
    """Optional, AND-combined filters of the client listing."""

    search: Optional[str] = None
    branch: Optional[str] = None
    game_interest: Optional[str] = None
    last_deposit_date: Optional[datetime.date] = None
    first_deposit_date: Optional[datetime.date] = None
    last_withdrawal_date: Optional[datetime.date] = None
    first_withdrawal_date: Optional[datetime.date] = None
    min_total_deposit_amount: Optional[float] = None
    max_total_deposit_amount: Optional[float] = None
    min_total_withdrawal_amount: Optional[float] = None
    max_total_withdrawal_amount: Optional[float] = None
    first_transaction_date: Optional[datetime.date] = None
    last_transaction_date: Optional[datetime.date] = None
    status: Optional[ClientActivityStatus] = None
    last_call_date: Optional[datetime.date] = None
    last_call_outcome: Optional[str] = None

    def validate(self) -> None:
        _check_range(
            self.min_total_deposit_amount,
            self.max_total_deposit_amount,
            "minTotalDepositAmount",
            "maxTotalDepositAmount",
        )
        _check_range(
            self.min_total_withdrawal_amount,
            self.max_total_withdrawal_amount,
            "minTotalWithdrawalAmount",
            "maxTotalWithdrawalAmount",
        )


def _check_range(low: Optional[float], high: Optional[float], low_name: str, high_name: str) -> None:
    if low is not None and high is not None and low > high:
        raise InvalidInputError(f"{low_name} must not be greater than {high_name}")


# ---------------------------------------------------------------------------
# Portable SQL helpers
# ---------------------------------------------------------------------------


def _greatest(a, b) -> ColumnElement:
    """GREATEST ignoring NULLs (SQLite has no GREATEST and Postgres' differs)."""
    return case(
        (a.is_(None), b),
        (b.is_(None), a),
        (a >= b, a),
        else_=b,
    )


def _least(a, b) -> ColumnElement:
    return case(
        (a.is_(None), b),
        (b.is_(None), a),
        (a <= b, a),
        else_=b,
    )


def _on_day(column, day: datetime.date) -> ColumnElement:
    start, end = clock.day_bounds(day)
    return and_(column >= start, column < end)


def _last_activity():
    return _greatest(Customer.last_deposit_date, Customer.last_withdrawal_date)


def _activity_thresholds(now: datetime.datetime) -> Tuple[datetime.datetime, datetime.datetime]:
    active_since = now - datetime.timedelta(days=settings.active_window_days)
    sleeping_before = now - datetime.timedelta(days=settings.inactive_window_days)
    return active_since, sleeping_before


def classify_activity(
    last_activity: Optional[datetime.datetime], now: datetime.datetime
) -> ClientActivityStatus:
    """
    Bucket a customer by their most recent deposit/withdrawal.

    Exactly ACTIVE_WINDOW_DAYS ago is still active; exactly
    INACTIVE_WINDOW_DAYS ago is already sleeping.
    """
    active_since, sleeping_before = _activity_thresholds(now)
    if last_activity is None:
        return ClientActivityStatus.SLEEPING
    if last_activity >= active_since:
        return ClientActivityStatus.ACTIVE
    if last_activity > sleeping_before:
        return ClientActivityStatus.INACTIVE
    return ClientActivityStatus.SLEEPING


def _status_condition(status: ClientActivityStatus, now: datetime.datetime) -> ColumnElement:
    active_since, sleeping_before = _activity_thresholds(now)
    last = _last_activity()
    if status == ClientActivityStatus.ACTIVE:
        return last >= active_since
    if status == ClientActivityStatus.INACTIVE:
        return and_(last < active_since, last > sleeping_before)
    return or_(last.is_(None), last <= sleeping_before)


def _last_call_condition(day: Optional[datetime.date], outcome: Optional[str]) -> ColumnElement:
    """Customer's most recent call interaction falls on `day` and/or mentions `outcome`."""
    latest_call = (
        select(
            Interaction.customer_id.label("customer_id"),
            func.max(Interaction.created_at).label("last_call_at"),
        )
        .where(Interaction.type == InteractionType.CALL.value)
        .group_by(Interaction.customer_id)
        .subquery("latest_call")
    )
    stmt = (
        select(Interaction.customer_id)
        .join(
            latest_call,
            and_(
                Interaction.customer_id == latest_call.c.customer_id,
                Interaction.created_at == latest_call.c.last_call_at,
            ),
        )
        .where(Interaction.type == InteractionType.CALL.value)
    )
    if day is not None:
        stmt = stmt.where(_on_day(latest_call.c.last_call_at, day))
    if outcome:
        stmt = stmt.where(Interaction.content.ilike(f"%{outcome}%"))
    return Customer.id.in_(stmt)


# ---------------------------------------------------------------------------
# Client listing
# ---------------------------------------------------------------------------


def _customer_join(tenant_expr: ColumnElement) -> ColumnElement:
    return and_(
        Customer.external_id == Transaction.client,
        Customer.website_id == tenant_expr,
    )


def _client_conditions(
    filters: ClientFilters,
    scope: AccessScope,
    tenant_expr: ColumnElement,
    now: datetime.datetime,
) -> List[ColumnElement]:
    """Shared by the page query and the count query; they must never diverge."""
    clauses = scope.conditions(tenant_expr)

    if filters.search:
        pattern = f"%{filters.search.strip()}%"
        clauses.append(
            or_(
                Transaction.client.ilike(pattern),
                Transaction.branch.ilike(pattern),
                Transaction.website.ilike(pattern),
                Transaction.panel.ilike(pattern),
            )
        )
    if filters.branch:
        clauses.append(func.lower(Transaction.branch) == filters.branch.strip().lower())
    if filters.game_interest:
        clauses.append(Customer.game_interest == filters.game_interest)

    if filters.last_deposit_date:
        clauses.append(_on_day(Customer.last_deposit_date, filters.last_deposit_date))
    if filters.first_deposit_date:
        clauses.append(_on_day(Customer.first_deposit_date, filters.first_deposit_date))
    if filters.last_withdrawal_date:
        clauses.append(_on_day(Customer.last_withdrawal_date, filters.last_withdrawal_date))
    if filters.first_withdrawal_date:
        clauses.append(_on_day(Customer.first_withdrawal_date, filters.first_withdrawal_date))

    if filters.min_total_deposit_amount is not None:
        clauses.append(Customer.total_deposits >= filters.min_total_deposit_amount)
    if filters.max_total_deposit_amount is not None:
        clauses.append(Customer.total_deposits <= filters.max_total_deposit_amount)
    if filters.min_total_withdrawal_amount is not None:
        clauses.append(Customer.total_withdrawals >= filters.min_total_withdrawal_amount)
    if filters.max_total_withdrawal_amount is not None:
        clauses.append(Customer.total_withdrawals <= filters.max_total_withdrawal_amount)

    if filters.first_transaction_date:
        first = _least(Customer.first_deposit_date, Customer.first_withdrawal_date)
        clauses.append(_on_day(first, filters.first_transaction_date))
    if filters.last_transaction_date:
        clauses.append(_on_day(_last_activity(), filters.last_transaction_date))

    if filters.status is not None:
        clauses.append(_status_condition(filters.status, now))

    if filters.last_call_date is not None or filters.last_call_outcome:
        clauses.append(_last_call_condition(filters.last_call_date, filters.last_call_outcome))

    return clauses


def _empty_page(page: int, limit: int) -> Dict[str, Any]:
    return {"items": [], "total": 0, "page": page, "limit": limit, "total_pages": 0}


def list_unique_clients(
    session: Session,
    *,
    scope: AccessScope,
    filters: Optional[ClientFilters] = None,
    page: int = 1,
    limit: int = 10,
    now: Optional[datetime.datetime] = None,
) -> Dict[str, Any]:
    """
    One row per (client, customer) with transaction rollups, ordered by client.

    Transactions that do not resolve to a customer are left out.
    """
    filters = filters or ClientFilters()
    filters.validate()
    now = now or clock.now()

    index = WebsiteIndex.build(session)
    if not index:
        return _empty_page(page, limit)

    tenant_expr = index.tenant_expression(Transaction.website)
    on_customer = _customer_join(tenant_expr)
    clauses = _client_conditions(filters, scope, tenant_expr, now)

    # Counts clients, not rows: a client id that resolves to customers in two
    # tenants yields two rows on the page but adds one to the total.
    count_stmt = (
        select(func.count(Transaction.client.distinct()))
        .select_from(Transaction)
        .join(Customer, on_customer)
        .where(*clauses)
    )

    deposit_amount = case((Transaction.type == DEPOSIT, Transaction.amount), else_=0)
    withdraw_amount = case((Transaction.type == WITHDRAW, Transaction.amount), else_=0)
    deposit_date = case((Transaction.type == DEPOSIT, Transaction.date), else_=None)

    page_stmt = (
        select(
            Transaction.client.label("client"),
            Customer.id.label("customer_id"),
            func.min(Transaction.branch).label("branch"),
            func.min(Transaction.panel).label("panel"),
            func.min(Transaction.website).label("website"),
            func.count(Transaction.id).label("transaction_count"),
            func.coalesce(func.sum(deposit_amount), 0).label("total_deposits"),
            func.coalesce(func.sum(withdraw_amount), 0).label("total_withdrawals"),
            func.max(deposit_date).label("last_deposit_date"),
            func.max(_last_activity()).label("last_activity"),
        )
        .select_from(Transaction)
        .join(Customer, on_customer)
        .where(*clauses)
        .group_by(Transaction.client, Customer.id)
        .order_by(Transaction.client.asc(), Customer.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    try:
        total = int(session.scalar(count_stmt) or 0)
        rows = session.execute(page_stmt).all()
    except SQLAlchemyError:
        logger.exception("Failed to aggregate transaction clients")
        raise

    items = [
        {
            "client": row.client,
            "customer_id": row.customer_id,
            "branch": row.branch,
            "panel": row.panel,
            "website": row.website,
            "transaction_count": int(row.transaction_count),
            "total_deposits": float(row.total_deposits or 0),
            "total_withdrawals": float(row.total_withdrawals or 0),
            "last_deposit_date": _as_datetime(row.last_deposit_date),
            "status": classify_activity(_as_datetime(row.last_activity), now),
        }
        for row in rows
    ]

    logger.debug("Client listing page=%s limit=%s total=%s", page, limit, total)
    return {
        "items": items,
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


def _as_datetime(value: Any) -> Optional[datetime.datetime]:
    # Aggregates over CASE lose the column type on SQLite and come back as text.
    if value is None or isinstance(value, datetime.datetime):
        return value
    return datetime.datetime.fromisoformat(str(value))


# ---------------------------------------------------------------------------
# Single client
# ---------------------------------------------------------------------------


def get_client_detail(session: Session, *, client: str, scope: AccessScope) -> Dict[str, Any]:
    """
    Deposits and withdrawals of one client with totals recomputed from the
    ledger rows. Customer totals are deliberately not consulted.
    """
    index = WebsiteIndex.build(session)
    tenant_expr = index.tenant_expression(Transaction.website)
    clauses = [Transaction.client == client, *scope.conditions(tenant_expr)]

    def _rows(tx_type: str) -> List[Transaction]:
        stmt = (
            select(Transaction)
            .where(*clauses, Transaction.type == tx_type)
            .order_by(Transaction.date.desc(), Transaction.id.desc())
        )
        return list(session.scalars(stmt))

    deposits = _rows(DEPOSIT)
    withdrawals = _rows(WITHDRAW)

    customer_id = None
    tag = None
    if index:
        match = session.execute(
            select(Customer.id, Tag.id, Tag.name, Tag.color)
            .select_from(Transaction)
            .join(Customer, _customer_join(tenant_expr))
            .outerjoin(Tag, Customer.tag_id == Tag.id)
            .where(*clauses)
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .limit(1)
        ).first()
        if match is not None:
            customer_id = match[0]
            if match[1] is not None:
                tag = {"id": match[1], "name": match[2], "color": match[3]}

    latest = deposits[0] if deposits else (withdrawals[0] if withdrawals else None)

    return {
        "client": client,
        "customer_id": customer_id,
        "tag": tag,
        "branch": (latest.branch or "N/A") if latest else "N/A",
        "website": (latest.website or "N/A") if latest else "N/A",
        "deposits": deposits,
        "withdrawals": withdrawals,
        "summary": {
            "total_deposits": sum(t.amount or 0 for t in deposits),
            "total_withdrawals": sum(t.amount or 0 for t in withdrawals),
            "deposit_count": len(deposits),
            "withdrawal_count": len(withdrawals),
            "last_deposit_date": deposits[0].date if deposits else None,
        },
    }


# ---------------------------------------------------------------------------
# Ledger listing and filter options
# ---------------------------------------------------------------------------


def list_transactions(
    session: Session,
    *,
    scope: AccessScope,
    page: int = 1,
    limit: int = 10,
    start_date: Optional[datetime.date] = None,
    end_date: Optional[datetime.date] = None,
    tx_type: Optional[str] = None,
) -> Dict[str, Any]:
    """Raw ledger rows, newest first. Website/panel filters match substrings."""
    index = WebsiteIndex.build(session)
    tenant_expr = index.tenant_expression(Transaction.website)
    clauses = scope.conditions(tenant_expr, substring=True)

    if start_date:
        clauses.append(Transaction.date >= clock.day_bounds(start_date)[0])
    if end_date:
        clauses.append(Transaction.date < clock.day_bounds(end_date)[1])
    if tx_type:
        clauses.append(func.lower(Transaction.type) == tx_type.strip().lower())

    total = int(
        session.scalar(select(func.count(Transaction.id)).where(*clauses)) or 0
    )
    rows = session.scalars(
        select(Transaction)
        .where(*clauses)
        .order_by(Transaction.date.desc(), Transaction.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    ).all()

    return {
        "items": list(rows),
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if limit else 0,
    }


def get_transaction_options(
    session: Session,
    *,
    scope: AccessScope,
    website: Optional[str] = None,
    branch: Optional[str] = None,
) -> Dict[str, List[str]]:
    """
    Distinct panels, websites and branches visible to the caller.

    Panels narrow by website and branch, branches by website; the website list
    is never narrowed by the caller's own selection.
    """
    index = WebsiteIndex.build(session)
    tenant_expr = index.tenant_expression(Transaction.website)
    base = scope.conditions(tenant_expr)

    def _distinct(column, *extra: ColumnElement) -> List[str]:
        stmt = (
            select(column)
            .where(*base, *extra, column.is_not(None), column != "")
            .distinct()
            .order_by(column)
        )
        return list(session.scalars(stmt))

    by_website = [func.lower(Transaction.website) == website.strip().lower()] if website else []
    by_branch = [func.lower(Transaction.branch) == branch.strip().lower()] if branch else []

    return {
        "panels": _distinct(Transaction.panel, *by_website, *by_branch),
        "websites": _distinct(Transaction.website),
        "branches": _distinct(Transaction.branch, *by_website),
    }
