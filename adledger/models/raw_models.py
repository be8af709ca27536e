"""ADLEDGER — Raw Import Models (Audit Trail).

A RawImport records one ingest attempt; its RawImportRows hold the original
rows exactly as received. Neither is ever rewritten by the mapping step.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field, Relationship


class ImportSource(str, Enum):
    """Where an ingest attempt came from."""

    UI_CSV = "ui-csv"
    SCRIPT_WEBHOOK = "script-webhook"
    API_BULK = "api-bulk"


class AppliedStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RawImport(SQLModel, table=True):
    """One ingest attempt. Never deleted by the system."""

    __tablename__ = "google_ads_raw_imports"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36
    )
    client_id: str = Field(index=True)
    source: str = Field(index=True, description="ui-csv | script-webhook | api-bulk")
    report_name: Optional[str] = None
    file_name: Optional[str] = None
    campaign_id: Optional[str] = None
    date_range_start: Optional[str] = None
    date_range_end: Optional[str] = None
    encoding: str = Field(default="json", description="Detected encoding label")
    delimiter: Optional[str] = Field(default=None, description=", | ; | TAB")
    headers: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    row_count: int = 0
    meta: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=_utcnow)
    rows_persisted_at: Optional[datetime] = None

    # ── Applied sub-record ──
    applied_status: str = Field(default=AppliedStatus.PENDING.value, index=True)
    applied_at: Optional[datetime] = None
    applied_tables: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    applied_summary: Dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON)
    )
    applied_error: Optional[str] = None

    rows: List["RawImportRow"] = Relationship(
        back_populates="raw_import",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )


class RawImportRow(SQLModel, table=True):
    """One original row of a RawImport, stored as an opaque field map."""

    __tablename__ = "google_ads_raw_import_rows"

    id: Optional[int] = Field(default=None, primary_key=True)
    import_id: str = Field(
        foreign_key="google_ads_raw_imports.id", index=True, ondelete="CASCADE"
    )
    client_id: str = Field(index=True)
    row_index: int = Field(description="1-based position in the import")
    row_json: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    raw_import: Optional[RawImport] = Relationship(back_populates="rows")
