"""ADLEDGER — Activity Log (append-only)."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class ActivityAction(str, Enum):
    SCRIPT_INGEST = "script_ingest"
    CSV_SYNC = "csv_sync"
    API_PULL = "api_pull"


class ActivityLogEntry(SQLModel, table=True):
    """One coordinator run. Written once, never updated."""

    __tablename__ = "google_ads_activity_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    client_id: str = Field(index=True)
    action: str = Field(index=True, description="script_ingest | csv_sync | api_pull")
    entity_type: str = Field(default="", description="bulk | <dataset>")
    entity_id: Optional[str] = Field(default=None, description="RawImport id")
    status: str = Field(description="success | error")
    message: str = ""
    error_details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    duration_ms: int = 0
    records_affected: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
