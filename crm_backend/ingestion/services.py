# crm_backend/ingestion/services.py
import csv
import datetime
import io
import logging
import math
from typing import Dict, Iterable, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crm_backend.errors import NotFoundError
from crm_backend.ingestion.config import ingestion_settings
from crm_backend.ingestion.schemas import CustomerImportRow, ImportResult
from crm_backend.models.website import Website
from crm_backend.services.customers import upsert_customer

logger = logging.getLogger("crm_backend.ingestion.services")

EXPECTED_COLUMNS = (
    "external_id",
    "username",
    "email",
    "phone",
    "last_deposit_amount",
    "last_deposit_date",
)


class IngestionError(Exception):
    """Raised when an uploaded file cannot be processed at all."""


class RowError(IngestionError):
    """Raised for a single CSV row that cannot be imported."""


def _parse_amount(raw: Optional[str]) -> float:
    try:
        value = float(raw or "0")
    except ValueError as exc:
        raise RowError(f"last_deposit_amount is not a number: {raw!r}") from exc
    if not math.isfinite(value):
        raise RowError(f"last_deposit_amount is not a number: {raw!r}")
    return value


_US_DATE_FORMATS = ("%m/%d/%Y", "%m/%d/%Y %H:%M", "%m/%d/%Y %H:%M:%S")


def _parse_date(raw: Optional[str]) -> Optional[datetime.datetime]:
    """ISO 8601 (optionally with offset or trailing Z) or US MM/DD/YYYY."""
    if not raw:
        return None
    value = raw.strip()
    if "/" in value:
        for fmt in _US_DATE_FORMATS:
            try:
                return datetime.datetime.strptime(value, fmt)
            except ValueError:
                continue
        raise RowError(f"last_deposit_date is not a valid date: {raw!r}")

    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.datetime.fromisoformat(value)
    except ValueError as exc:
        raise RowError(f"last_deposit_date is not a valid date: {raw!r}") from exc
    if parsed.tzinfo is not None:
        # Stored timestamps are server-local and naive.
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _normalize_csv_row(row: Dict[str, Optional[str]]) -> CustomerImportRow:
    """Trim values, map headers case-insensitively and validate one row."""
    cleaned = {
        (key or "").strip().lower(): (value or "").strip()
        for key, value in row.items()
        if key is not None and not isinstance(value, list)
    }

    try:
        return CustomerImportRow(
            external_id=cleaned.get("external_id", ""),
            username=cleaned.get("username") or None,
            email=cleaned.get("email") or None,
            phone=cleaned.get("phone") or None,
            last_deposit_amount=_parse_amount(cleaned.get("last_deposit_amount")),
            last_deposit_date=_parse_date(cleaned.get("last_deposit_date")),
        )
    except ValidationError as exc:
        raise RowError("external_id is required") from exc


def _decode(file_bytes: bytes) -> io.StringIO:
    try:
        return io.StringIO(file_bytes.decode("utf-8-sig"))
    except UnicodeDecodeError:
        return io.StringIO(file_bytes.decode("latin-1"))


def import_customers_from_csv(
    file_bytes: bytes,
    db: Session,
    website_id: str,
) -> ImportResult:
    """
    Upsert one customer per CSV row into `website_id`.

    Rows are independent: each one commits on its own, and a bad row is
    rolled back, logged and skipped without touching rows before it.
    """
    max_bytes = ingestion_settings.max_csv_size_mb * 1024 * 1024
    if len(file_bytes) > max_bytes:
        raise IngestionError(
            f"CSV file too large. Max allowed is {ingestion_settings.max_csv_size_mb} MB."
        )

    if db.get(Website, website_id) is None:
        raise NotFoundError("Website not found")

    reader = csv.DictReader(_decode(file_bytes))
    headers = {(name or "").strip().lower() for name in (reader.fieldnames or [])}
    if headers and "external_id" not in headers:
        raise IngestionError(
            "CSV is missing the external_id column. Expected columns: "
            + ", ".join(EXPECTED_COLUMNS)
        )

    rows: Iterable[Dict[str, str]] = reader
    count = 0
    skipped = 0

    # Row 1 is the header.
    for row_number, row in enumerate(rows, start=2):
        try:
            parsed = _normalize_csv_row(row)
            upsert_customer(
                db,
                website_id=website_id,
                external_id=parsed.external_id,
                username=parsed.username,
                email=parsed.email,
                phone=parsed.phone,
                last_deposit_amount=parsed.last_deposit_amount,
                last_deposit_date=parsed.last_deposit_date,
            )
        except RowError as exc:
            skipped += 1
            logger.warning("Skipping CSV row %d: %s", row_number, exc)
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            skipped += 1
            logger.warning("Skipping CSV row %d: database error: %s", row_number, exc)
            continue
        count += 1

    logger.info(
        "CSV import finished (website=%s, imported=%d, skipped=%d)",
        website_id,
        count,
        skipped,
    )
    return ImportResult(count=count, skipped=skipped, message=f"Imported {count} records")
