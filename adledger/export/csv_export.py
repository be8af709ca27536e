"""ADLEDGER — Canonical CSV / ZIP export.

Each dataset exports with a fixed column order. Files are UTF-8, comma
delimited, with "\\n" line endings, so they re-import cleanly through the
CSV decoder.
"""

import csv
import io
import zipfile
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from adledger.core.logging import get_logger
from adledger.ingest.storage import SQLModelStore
from adledger.models.canonical_models import DATASET_MODELS, CanonicalRecord, Dataset

logger = get_logger("export.csv")

_PERFORMANCE = (
    "date_range_start",
    "date_range_end",
    "impressions",
    "clicks",
    "cost",
    "conversions",
    "conversion_value",
)

EXPORT_COLUMNS: Dict[Dataset, Tuple[str, ...]] = {
    Dataset.CAMPAIGNS: (
        "campaign_id",
        "campaign_name",
        "campaign_type",
        "campaign_status",
        "advertising_channel_type",
        "client_id",
        "collected_at",
    ),
    Dataset.METRICS: (
        "campaign_id",
        "campaign_name",
        "campaign_type",
        "campaign_status",
        "bidding_strategy",
        *_PERFORMANCE,
        "ctr",
        "avg_cpc",
        "conversion_rate",
        "cpa",
        "roas",
        "client_id",
        "collected_at",
    ),
    Dataset.KEYWORDS: (
        "campaign_id",
        "campaign_name",
        "ad_group_id",
        "ad_group_name",
        "keyword_text",
        "match_type",
        "status",
        "cpc_bid",
        "quality_score",
        "ad_relevance",
        "landing_page_experience",
        "expected_ctr",
        *_PERFORMANCE,
        "ctr",
        "avg_cpc",
        "cost_per_conversion",
        "client_id",
        "collected_at",
    ),
    Dataset.ADS: (
        "campaign_id",
        "campaign_name",
        "ad_group_id",
        "ad_group_name",
        "ad_id",
        "ad_type",
        "ad_status",
        *_PERFORMANCE,
        "client_id",
        "collected_at",
    ),
    Dataset.ASSETS: (
        "campaign_id",
        "campaign_name",
        "asset_group_id",
        "asset_group_name",
        "asset_id",
        "asset_resource_name",
        "asset_type",
        "field_type",
        "performance_label",
        *_PERFORMANCE,
        "client_id",
        "collected_at",
    ),
    Dataset.SEARCH_TERM_INSIGHTS: (
        "campaign_id",
        "campaign_name",
        "category_label",
        *_PERFORMANCE,
        "client_id",
        "collected_at",
    ),
    Dataset.SHOPPING: (
        "campaign_id",
        "campaign_name",
        "product_item_id",
        "product_title",
        "product_brand",
        "product_type_l1",
        *_PERFORMANCE,
        "client_id",
        "collected_at",
    ),
    Dataset.AUDIENCE_SIGNALS: (
        "campaign_id",
        "campaign_name",
        "asset_group_id",
        "asset_group_name",
        "signal_type",
        "signal_value",
        "date_range_start",
        "date_range_end",
        "client_id",
        "collected_at",
    ),
}


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def to_csv(records: Iterable[CanonicalRecord], columns: Sequence[str]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(columns)
    for record in records:
        writer.writerow([_cell(getattr(record, c, None)) for c in columns])
    return buf.getvalue()


def export_filename(dataset: Dataset, client_id: str, stamp: str) -> str:
    return f"{DATASET_MODELS[dataset].__tablename__}_{client_id}_{stamp}.csv"


def export_dataset(
    store: SQLModelStore,
    dataset: Dataset,
    client_id: str,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> Tuple[str, int]:
    """Return (csv_text, row_count) for one dataset."""
    records = store.list_records(DATASET_MODELS[dataset], client_id, start, end)
    logger.info(
        f"Exporting {len(records)} {dataset.value} rows",
        extra={"client_id": client_id, "dataset": dataset.value},
    )
    return to_csv(records, EXPORT_COLUMNS[dataset]), len(records)


def export_bundle(
    store: SQLModelStore,
    client_id: str,
    datasets: Optional[List[Dataset]] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    stamp: Optional[str] = None,
) -> bytes:
    """ZIP archive with one CSV per dataset."""
    stamp = stamp or datetime.now().strftime("%Y%m%d-%H%M%S")
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as archive:
        for dataset in datasets or list(Dataset):
            text, _ = export_dataset(store, dataset, client_id, start, end)
            archive.writestr(export_filename(dataset, client_id, stamp), text)
    return buf.getvalue()
