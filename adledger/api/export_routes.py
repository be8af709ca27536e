"""ADLEDGER — Export Routes (canonical CSV / ZIP)."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlmodel import Session

from adledger.api.deps import require_client_access
from adledger.database import get_session
from adledger.export.csv_export import export_bundle, export_dataset, export_filename
from adledger.ingest.storage import SQLModelStore
from adledger.models.canonical_models import Dataset

router = APIRouter(prefix="/exports", tags=["Exports"])


@router.get("/bundle.zip")
def export_zip(
    client_id: str = Depends(require_client_access),
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Every dataset for a client as one ZIP of CSV files."""
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    payload = export_bundle(
        SQLModelStore(session), client_id, start=start, end=end, stamp=stamp
    )
    return Response(
        content=payload,
        media_type="application/zip",
        headers={
            "Content-Disposition": f'attachment; filename="google_ads_{client_id}_{stamp}.zip"'
        },
    )


@router.get("/{dataset}.csv")
def export_csv(
    dataset: Dataset,
    client_id: str = Depends(require_client_access),
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    session: Session = Depends(get_session),
):
    """One dataset for a client, in its fixed export column order."""
    text, rows = export_dataset(SQLModelStore(session), dataset, client_id, start, end)
    filename = export_filename(dataset, client_id, datetime.now().strftime("%Y%m%d-%H%M%S"))
    return Response(
        content=text,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Row-Count": str(rows),
        },
    )
