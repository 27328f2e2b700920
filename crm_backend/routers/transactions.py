import datetime
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from crm_backend.auth import current_user
from crm_backend.config import settings
from crm_backend.db import get_db
from crm_backend.errors import CRMError
from crm_backend.models.user import User
from crm_backend.routers.errors import http_error
from crm_backend.schemas.transactions import (
    ClientActivityStatus,
    ClientDetail,
    ClientSummaryRow,
    Page,
    TransactionOptions,
    TransactionOut,
)
from crm_backend.services import transactions as transaction_service
from crm_backend.services.access_scope import AccessScope
from crm_backend.services.transactions import ClientFilters

logger = logging.getLogger("crm_backend.routers.transactions")

router = APIRouter(
    prefix="/transactions",
    tags=["transactions"],
)


@router.get(
    "",
    response_model=Page[TransactionOut],
    summary="Page through ledger rows, newest first",
)
def list_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=settings.max_page_size),
    start_date: Optional[datetime.date] = Query(None, alias="startDate"),
    end_date: Optional[datetime.date] = Query(None, alias="endDate"),
    website: Optional[str] = None,
    panel: Optional[str] = None,
    tx_type: Optional[str] = Query(None, alias="type"),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    scope = AccessScope.for_user(user, website=website, panel=panel)
    return transaction_service.list_transactions(
        db,
        scope=scope,
        page=page,
        limit=limit,
        start_date=start_date,
        end_date=end_date,
        tx_type=tx_type,
    )


@router.get("/options", response_model=TransactionOptions)
def transaction_options(
    website: Optional[str] = None,
    branch: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    scope = AccessScope.for_user(user)
    return transaction_service.get_transaction_options(
        db, scope=scope, website=website, branch=branch
    )


@router.get(
    "/clients",
    response_model=Page[ClientSummaryRow],
    summary="Unique clients with transaction rollups",
    description=(
        "One row per client resolved to a customer, ordered by client. "
        "Non-admin callers only see their website and assigned panels."
    ),
)
def list_clients(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=settings.max_page_size),
    search: Optional[str] = None,
    website: Optional[str] = None,
    panel: Optional[str] = None,
    branch: Optional[str] = None,
    game_interest: Optional[str] = Query(None, alias="gameInterest"),
    last_deposit_date: Optional[datetime.date] = Query(None, alias="lastDepositDate"),
    first_deposit_date: Optional[datetime.date] = Query(None, alias="firstDepositDate"),
    last_withdrawal_date: Optional[datetime.date] = Query(None, alias="lastWithdrawalDate"),
    first_withdrawal_date: Optional[datetime.date] = Query(None, alias="firstWithdrawalDate"),
    min_total_deposit_amount: Optional[float] = Query(None, alias="minTotalDepositAmount"),
    max_total_deposit_amount: Optional[float] = Query(None, alias="maxTotalDepositAmount"),
    min_total_withdrawal_amount: Optional[float] = Query(None, alias="minTotalWithdrawalAmount"),
    max_total_withdrawal_amount: Optional[float] = Query(None, alias="maxTotalWithdrawalAmount"),
    first_transaction_date: Optional[datetime.date] = Query(None, alias="firstTransactionDate"),
    last_transaction_date: Optional[datetime.date] = Query(None, alias="lastTransactionDate"),
    activity_status: Optional[ClientActivityStatus] = Query(None, alias="status"),
    last_call_date: Optional[datetime.date] = Query(None, alias="lastCallDate"),
    last_call_outcome: Optional[str] = Query(None, alias="lastCallOutcome"),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    filters = ClientFilters(
        search=search,
        branch=branch,
        game_interest=game_interest,
        last_deposit_date=last_deposit_date,
        first_deposit_date=first_deposit_date,
        last_withdrawal_date=last_withdrawal_date,
        first_withdrawal_date=first_withdrawal_date,
        min_total_deposit_amount=min_total_deposit_amount,
        max_total_deposit_amount=max_total_deposit_amount,
        min_total_withdrawal_amount=min_total_withdrawal_amount,
        max_total_withdrawal_amount=max_total_withdrawal_amount,
        first_transaction_date=first_transaction_date,
        last_transaction_date=last_transaction_date,
        status=activity_status,
        last_call_date=last_call_date,
        last_call_outcome=last_call_outcome,
    )
    scope = AccessScope.for_user(user, website=website, panel=panel)

    try:
        return transaction_service.list_unique_clients(
            db, scope=scope, filters=filters, page=page, limit=limit
        )
    except CRMError as exc:
        raise http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - safety net
        logger.exception("Unexpected error while listing transaction clients")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unexpected error while listing clients.",
        ) from exc


@router.get(
    "/clients/{client}",
    response_model=ClientDetail,
    summary="Deposits, withdrawals and totals of one client",
)
def client_detail(
    client: str,
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    scope = AccessScope.for_user(user)
    return transaction_service.get_client_detail(db, client=client, scope=scope)
