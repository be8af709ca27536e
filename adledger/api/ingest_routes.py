"""ADLEDGER — Ingest Routes (Google Ads Script webhook)."""

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlmodel import Session

from adledger.api.deps import APIError, require_import_key
from adledger.core.logging import get_logger
from adledger.database import get_session
from adledger.ingest.coordinator import CLIENT_ID_REQUIRED, IngestCoordinator, IngestRequest
from adledger.ingest.storage import SQLModelStore
from adledger.models.activity_models import ActivityAction
from adledger.models.ingest_models import BulkIngestRequest
from adledger.models.raw_models import ImportSource

logger = get_logger("api.ingest")

router = APIRouter(prefix="/ingest", tags=["Ingest"])


@router.post("/bulk", dependencies=[Depends(require_import_key)])
def ingest_bulk(payload: Any = Body(default=None), session: Session = Depends(get_session)):
    """Ingest a bulk JSON payload posted by a Google Ads Script.

    Raw rows are stored for audit, then every dataset array present is
    mapped and upserted on its natural key. Responds with the per-dataset
    apply summary.
    """
    try:
        if not isinstance(payload, dict):
            raise ValueError("body is not a JSON object")
        body = BulkIngestRequest.model_validate(payload)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Rejected bulk ingest body: {e}")
        raise APIError(400, CLIENT_ID_REQUIRED, "clientId is required and must be a UUID")

    request = IngestRequest(
        client_id=body.client_id,
        source=ImportSource.SCRIPT_WEBHOOK,
        action=ActivityAction.SCRIPT_INGEST,
        datasets=body.rows_by_dataset(),
        start=body.start,
        end=body.end,
        campaign_id=body.campaign_id,
        campaign_name=body.campaign_name,
        report_name=body.report_name or body.script_name,
        meta=body.meta(),
    )
    outcome = IngestCoordinator(SQLModelStore(session)).run(request)
    logger.info(
        f"Bulk ingest finished: {outcome.code or 'OK'}",
        extra={
            "client_id": body.client_id,
            "import_id": outcome.import_id,
            "status_code": outcome.status_code,
        },
    )
    return JSONResponse(status_code=outcome.status_code, content=outcome.body())
