import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from crm_backend.auth import require_roles
from crm_backend.db import get_db
from crm_backend.errors import CRMError
from crm_backend.ingestion.schemas import ImportResult
from crm_backend.ingestion.services import IngestionError, import_customers_from_csv
from crm_backend.models.user import User, UserRole
from crm_backend.routers.errors import http_error

logger = logging.getLogger("crm_backend.routers.ingestion")

router = APIRouter(
    prefix="/import",
    tags=["import"],
)


@router.post(
    "/upload",
    response_model=ImportResult,
    summary="Bulk upsert customers via CSV upload",
    description=(
        "Upserts one customer per row into the given website. Expected columns: "
        "external_id, username, email, phone, last_deposit_amount, last_deposit_date "
        "(ISO 8601 or MM/DD/YYYY). "
        "Bad rows are skipped; earlier rows stay imported."
    ),
)
async def upload_customers_csv(
    file: UploadFile = File(..., description="CSV file containing customers."),
    website_id: str = Form(..., alias="websiteId", description="Website receiving the customers."),
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER)),
) -> ImportResult:
    if not (file.filename or "").lower().endswith(".csv"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are supported for import.",
        )

    try:
        file_bytes = await file.read()
        result = import_customers_from_csv(file_bytes=file_bytes, db=db, website_id=website_id)
    except IngestionError as exc:
        logger.error("CSV import error: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except CRMError as exc:
        raise http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - safety net
        logger.exception("Unexpected error during CSV import")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unexpected error during CSV import.",
        ) from exc

    logger.info("CSV import by user=%s: %s", user.id, result.message)
    return result
