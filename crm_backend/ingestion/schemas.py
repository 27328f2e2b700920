import datetime
from typing import Optional

from pydantic import Field

from crm_backend.schemas.base import CamelModel


class CustomerImportRow(CamelModel):
    """One parsed CSV row, ready for upsert."""

    external_id: str = Field(..., min_length=1, description="Customer id in the tenant's back office.")
    username: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    last_deposit_amount: float = Field(
        default=0,
        description="Amount added to the customer's running deposit total.",
    )
    last_deposit_date: Optional[datetime.datetime] = None


class ImportResult(CamelModel):
    """Outcome of a CSV upload."""

    count: int = Field(..., description="Rows upserted successfully.")
    skipped: int = Field(default=0, description="Rows rejected and left out.")
    message: str
