"""ADLEDGER — CSV import (Google Ads UI exports).

Reads a report exported from the Google Ads UI, stores it as a `ui-csv` raw
import and, depending on the apply mode, reconciles it into the metrics or
keywords table.
"""

from pathlib import Path
from typing import Iterable, Optional

from adledger.core.logging import get_logger
from adledger.ingest.coordinator import IngestCoordinator, IngestRequest
from adledger.ingest.decoder import decode_table, row_to_record
from adledger.ingest.normalizer import normalize_key
from adledger.ingest.storage import SQLModelStore
from adledger.models.activity_models import ActivityAction
from adledger.models.canonical_models import Dataset
from adledger.models.ingest_models import IngestOutcome
from adledger.models.raw_models import ImportSource

logger = get_logger("ingest.csv")

APPLY_MODES = ("auto", "metrics", "keywords", "none")


def infer_dataset(headers: Iterable[str]) -> Dataset:
    """Keyword reports are recognised by any keyword-like header."""
    for header in headers:
        folded = normalize_key(header)
        if "keyword" in folded or "palavra chave" in folded:
            return Dataset.KEYWORDS
    return Dataset.METRICS


def resolve_apply_mode(mode: Optional[str]) -> str:
    """Normalize a user-supplied mode; anything unknown means "none"."""
    value = (mode or "none").strip().lower()
    return value if value in APPLY_MODES else "none"


def import_csv_file(
    path: str | Path,
    client_id: str,
    store: SQLModelStore,
    report_name: Optional[str] = None,
    campaign_id: Optional[str] = None,
    campaign_name: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    apply_to: Optional[str] = "none",
    batch_size: Optional[int] = None,
) -> IngestOutcome:
    """Decode a CSV file and run it through the coordinator.

    Raises DecodeError (before anything is stored) when the file cannot be
    decoded. All later failures come back on the returned outcome.
    """
    path = Path(path)
    table = decode_table(path.read_bytes())
    records = [row_to_record(table.headers, fields) for fields in table.rows]

    mode = resolve_apply_mode(apply_to)
    if mode == "auto":
        dataset = infer_dataset(table.headers)
    elif mode == "keywords":
        dataset = Dataset.KEYWORDS
    else:
        dataset = Dataset.METRICS

    logger.info(
        f"Decoded {path.name}: {len(records)} rows, encoding={table.encoding}, "
        f"delimiter={table.delimiter_label}, apply={mode}"
        + (f" → {dataset.value}" if mode != "none" else ""),
        extra={"client_id": client_id},
    )

    request = IngestRequest(
        client_id=client_id,
        source=ImportSource.UI_CSV,
        action=ActivityAction.CSV_SYNC,
        datasets={dataset: records} if records else {},
        apply=mode != "none",
        start=start,
        end=end,
        campaign_id=campaign_id,
        campaign_name=campaign_name,
        report_name=report_name,
        file_name=path.name,
        encoding=table.encoding,
        delimiter=table.delimiter_label,
        headers=table.headers,
        meta={"applyTo": mode},
    )
    return IngestCoordinator(store, batch_size=batch_size).run(request)
