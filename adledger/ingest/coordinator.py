"""ADLEDGER — Ingest Coordinator.

Runs one ingest request end to end:

  received → raw_persisted → mapping → reconciling → done(success|error)

The raw payload is always persisted for audit before anything is mapped. A
failure while persisting raw rows ends the run without touching canonical
tables. During reconciliation a failing dataset stops only its own remaining
batches; other datasets still apply. Every terminal state is written back to
the RawImport and mirrored into one ActivityLogEntry.
"""

import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from adledger.config import settings
from adledger.core.logging import get_logger
from adledger.ingest.mappers import MappingContext, map_row
from adledger.ingest.normalizer import parse_date
from adledger.ingest.storage import SQLModelStore, StorageError
from adledger.models.activity_models import ActivityAction, ActivityLogEntry
from adledger.models.canonical_models import DATASET_MODELS, CanonicalRecord, Dataset
from adledger.models.ingest_models import ApplySummary, IngestOutcome
from adledger.models.raw_models import AppliedStatus, ImportSource, RawImport

logger = get_logger("ingest.coordinator")

UUID_SHAPE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

# Error codes
CLIENT_ID_REQUIRED = "CLIENT_ID_REQUIRED"
NO_ROWS = "NO_ROWS"
RAW_IMPORT_TABLE_MISSING = "RAW_IMPORT_TABLE_MISSING"
RAW_IMPORT_FAILED = "RAW_IMPORT_FAILED"
RAW_ROWS_INSERT_FAILED = "RAW_ROWS_INSERT_FAILED"
APPLY_FAILED = "APPLY_FAILED"
INGEST_ERROR = "INGEST_ERROR"

KIND_TAG = "__kind"


@dataclass
class IngestRequest:
    """One ingest call, independent of the entry point that produced it.

    `datasets` holds the raw rows per target dataset. With `apply=False` the
    rows are kept for audit only and no dataset is reconciled.
    """

    client_id: str
    source: ImportSource = ImportSource.SCRIPT_WEBHOOK
    action: ActivityAction = ActivityAction.SCRIPT_INGEST
    datasets: Dict[Dataset, List[Dict[str, Any]]] = field(default_factory=dict)
    apply: bool = True
    start: Optional[str] = None
    end: Optional[str] = None
    campaign_id: Optional[str] = None
    campaign_name: Optional[str] = None
    report_name: Optional[str] = None
    file_name: Optional[str] = None
    encoding: str = "json"
    delimiter: Optional[str] = None
    headers: List[str] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Fallback windows are part of natural keys; store them as YYYY-MM-DD
        self.start = parse_date(self.start)
        self.end = parse_date(self.end)

    def raw_rows(self) -> List[Dict[str, Any]]:
        """Rows as they are stored on the audit trail.

        CSV rows are stored verbatim; JSON rows are tagged with their dataset.
        """
        rows: List[Dict[str, Any]] = []
        for dataset in Dataset:
            for row in self.datasets.get(dataset, []):
                if self.source == ImportSource.UI_CSV:
                    rows.append(dict(row))
                else:
                    rows.append({KIND_TAG: dataset.value, **row})
        return rows


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _failure(status_code: int, code: str, error: str, **extra: Any) -> IngestOutcome:
    return IngestOutcome(
        ok=False, code=code, error=error, status_code=status_code, **extra
    )


class IngestCoordinator:
    """Drives one IngestRequest through the ingest state machine."""

    def __init__(self, store: SQLModelStore, batch_size: int | None = None):
        self.store = store
        self.batch_size = batch_size or settings.ingest_batch_size

    def run(self, request: IngestRequest) -> IngestOutcome:
        """Run the request. Never raises; every failure becomes an outcome."""
        started = time.monotonic()

        if not UUID_SHAPE.match(request.client_id or ""):
            return _failure(
                400, CLIENT_ID_REQUIRED, "clientId is required and must be a UUID"
            )

        raw_rows = request.raw_rows()
        if not raw_rows:
            return _failure(400, NO_ROWS, "No rows to ingest")

        try:
            return self._run(request, raw_rows, started)
        except Exception as e:
            logger.exception(
                f"Ingest failed unexpectedly: {e}",
                extra={"client_id": request.client_id},
            )
            return _failure(500, INGEST_ERROR, str(e))

    # ── States ──

    def _run(
        self, request: IngestRequest, raw_rows: List[Dict[str, Any]], started: float
    ) -> IngestOutcome:
        try:
            raw_import = self.store.create_import(
                RawImport(
                    client_id=request.client_id,
                    source=request.source.value,
                    report_name=request.report_name,
                    file_name=request.file_name,
                    campaign_id=request.campaign_id,
                    date_range_start=request.start,
                    date_range_end=request.end,
                    encoding=request.encoding,
                    delimiter=request.delimiter,
                    headers=list(request.headers),
                    row_count=len(raw_rows),
                    meta=dict(request.meta),
                )
            )
        except StorageError as e:
            if e.is_missing_table:
                return _failure(
                    409,
                    RAW_IMPORT_TABLE_MISSING,
                    "Raw import tables are missing; apply the migration first",
                    details={"migration": settings.raw_import_migration},
                )
            return _failure(500, RAW_IMPORT_FAILED, str(e))

        import_id = raw_import.id
        log_extra = {"import_id": import_id, "client_id": request.client_id}
        logger.info(f"Import {import_id} received ({len(raw_rows)} rows)", extra=log_extra)

        try:
            return self._process(request, raw_import, raw_rows, started)
        except Exception as e:
            logger.exception(f"Import {import_id} failed: {e}", extra=log_extra)
            self._record_crash(request, raw_import, str(e), started)
            return _failure(500, INGEST_ERROR, str(e), import_id=import_id)

    def _process(
        self,
        request: IngestRequest,
        raw_import: RawImport,
        raw_rows: List[Dict[str, Any]],
        started: float,
    ) -> IngestOutcome:
        import_id = raw_import.id
        summary = ApplySummary()

        # received → raw_persisted
        for offset in range(0, len(raw_rows), self.batch_size):
            batch = raw_rows[offset : offset + self.batch_size]
            try:
                self.store.insert_import_rows(
                    import_id, request.client_id, batch, start_index=offset + 1
                )
            except StorageError as e:
                error = f"{e.table}: {e}"
                self._finish(request, raw_import, summary, [], error, started)
                return _failure(
                    500,
                    RAW_ROWS_INSERT_FAILED,
                    error,
                    import_id=import_id,
                    details={"table": e.table, "rowOffset": offset},
                )
        raw_import = self.store.update_import(raw_import, rows_persisted_at=_utcnow())

        # raw_persisted → mapping
        mapped = self._map(request, summary) if request.apply else {}
        if not request.apply:
            summary.warnings.append("applyTo=none: raw rows stored, nothing applied")

        # mapping → reconciling
        applied_tables, error = self._reconcile(mapped, summary, import_id)

        # reconciling → done
        raw_import = self._finish(
            request, raw_import, summary, applied_tables, error, started
        )
        applied_at = raw_import.applied_at.isoformat() if raw_import.applied_at else None
        if error:
            return _failure(
                500,
                APPLY_FAILED,
                error,
                import_id=import_id,
                applied_at=applied_at,
                applied_tables=applied_tables,
                apply_summary=summary.as_dict(),
            )
        return IngestOutcome(
            ok=True,
            import_id=import_id,
            applied_at=applied_at,
            applied_tables=applied_tables,
            apply_summary=summary.as_dict(),
        )

    def _map(
        self, request: IngestRequest, summary: ApplySummary
    ) -> Dict[Dataset, List[CanonicalRecord]]:
        if not (request.start and request.end):
            summary.warnings.append(
                "No start/end given; rows without their own date are skipped"
            )

        ctx = MappingContext.now(
            request.client_id,
            start=request.start,
            end=request.end,
            campaign_id=request.campaign_id,
            campaign_name=request.campaign_name,
        )
        mapped: Dict[Dataset, List[CanonicalRecord]] = {}
        for dataset in Dataset:
            rows = request.datasets.get(dataset)
            if not rows:
                continue
            counters = summary.counters(dataset)
            counters.received = len(rows)
            records: List[CanonicalRecord] = []
            for row in rows:
                result = map_row(dataset, row, ctx)
                if result.ok:
                    records.append(result.value)
                else:
                    counters.skipped += 1
            counters.mapped = len(records)
            mapped[dataset] = records
        return mapped

    def _reconcile(
        self,
        mapped: Dict[Dataset, List[CanonicalRecord]],
        summary: ApplySummary,
        import_id: str,
    ) -> tuple[List[str], Optional[str]]:
        applied_tables: List[str] = []
        first_error: Optional[str] = None

        for dataset, records in mapped.items():
            model = DATASET_MODELS[dataset]
            counters = summary.counters(dataset)
            for offset in range(0, len(records), self.batch_size):
                try:
                    counters.upserted += self.store.upsert(
                        model, records[offset : offset + self.batch_size]
                    )
                except StorageError as e:
                    logger.warning(
                        f"Upsert into {e.table} stopped at offset {offset}: {e}",
                        extra={"import_id": import_id, "dataset": dataset.value},
                    )
                    first_error = first_error or f"{e.table}: {e}"
                    break
            if counters.upserted > 0:
                applied_tables.append(model.__tablename__)

        return applied_tables, first_error

    def _finish(
        self,
        request: IngestRequest,
        raw_import: RawImport,
        summary: ApplySummary,
        applied_tables: List[str],
        error: Optional[str],
        started: float,
    ) -> RawImport:
        status = AppliedStatus.ERROR if error else AppliedStatus.SUCCESS
        raw_import = self.store.update_import(
            raw_import,
            applied_at=_utcnow(),
            applied_status=status.value,
            applied_tables=applied_tables,
            applied_summary=summary.as_dict(),
            applied_error=error,
        )

        entity_type = "bulk"
        if len(request.datasets) == 1:
            entity_type = next(iter(request.datasets)).value

        duration_ms = int((time.monotonic() - started) * 1000)
        affected = summary.records_affected
        if error:
            message = f"Ingest failed after applying {affected} records: {error}"
        else:
            message = f"Ingest applied {affected} records to {len(applied_tables)} tables"

        self.store.append_activity(
            ActivityLogEntry(
                client_id=request.client_id,
                action=request.action.value,
                entity_type=entity_type,
                entity_id=raw_import.id,
                status=status.value,
                message=message,
                error_details={"error": error} if error else {},
                duration_ms=duration_ms,
                records_affected=affected,
            )
        )
        logger.info(
            message,
            extra={
                "import_id": raw_import.id,
                "client_id": request.client_id,
                "duration_ms": duration_ms,
            },
        )
        return raw_import

    def _record_crash(
        self, request: IngestRequest, raw_import: RawImport, error: str, started: float
    ) -> None:
        """Best-effort bookkeeping for an unexpected failure mid-run."""
        try:
            self.store.rollback()
            self._finish(request, raw_import, ApplySummary(), [], error, started)
        except StorageError as e:
            logger.error(f"Could not record failure on import {raw_import.id}: {e}")
