"""ADLEDGER — Ingest Request / Summary Schemas."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from adledger.ingest.normalizer import parse_date
from adledger.models.canonical_models import Dataset


class CamelModel(BaseModel):
    """Serializes to camelCase, accepts either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─────────────────────────────────────────────
# SUMMARY
# ─────────────────────────────────────────────


class DatasetCounters(BaseModel):
    received: int = 0
    mapped: int = 0
    upserted: int = 0
    skipped: int = 0


class ApplySummary(BaseModel):
    """Per-dataset counters for one ingest call.

    Datasets that were not present in the request stay None and are left out
    of the serialized summary.
    """

    campaigns: Optional[DatasetCounters] = None
    metrics: Optional[DatasetCounters] = None
    keywords: Optional[DatasetCounters] = None
    ads: Optional[DatasetCounters] = None
    assets: Optional[DatasetCounters] = None
    search_term_insights: Optional[DatasetCounters] = None
    shopping: Optional[DatasetCounters] = None
    audience_signals: Optional[DatasetCounters] = None
    warnings: List[str] = Field(default_factory=list)

    def counters(self, dataset: Dataset) -> DatasetCounters:
        """Counters for `dataset`, created on first access."""
        current = getattr(self, dataset.value)
        if current is None:
            current = DatasetCounters()
            setattr(self, dataset.value, current)
        return current

    @property
    def records_affected(self) -> int:
        return sum(
            c.upserted
            for c in (getattr(self, d.value) for d in Dataset)
            if c is not None
        )

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ─────────────────────────────────────────────
# BULK WEBHOOK PAYLOAD
# ─────────────────────────────────────────────

BULK_ROW_FIELDS: Dict[Dataset, str] = {
    Dataset.CAMPAIGNS: "campaigns_rows",
    Dataset.METRICS: "metrics_rows",
    Dataset.KEYWORDS: "keywords_rows",
    Dataset.ADS: "ads_rows",
    Dataset.ASSETS: "assets_rows",
    Dataset.SEARCH_TERM_INSIGHTS: "search_term_insights_rows",
    Dataset.SHOPPING: "shopping_rows",
    Dataset.AUDIENCE_SIGNALS: "audience_signals_rows",
}


class BulkIngestRequest(CamelModel):
    """JSON body posted by the Google Ads Script webhook."""

    client_id: str = ""
    start: Optional[str] = None
    end: Optional[str] = None
    campaign_id: Optional[str] = None
    campaign_name: Optional[str] = None
    report_name: Optional[str] = None
    script_name: Optional[str] = None
    mcc_customer_id: Optional[str] = None
    account_customer_id: Optional[str] = None

    campaigns_rows: List[Dict[str, Any]] = Field(default_factory=list)
    metrics_rows: List[Dict[str, Any]] = Field(default_factory=list)
    keywords_rows: List[Dict[str, Any]] = Field(default_factory=list)
    ads_rows: List[Dict[str, Any]] = Field(default_factory=list)
    assets_rows: List[Dict[str, Any]] = Field(default_factory=list)
    search_term_insights_rows: List[Dict[str, Any]] = Field(default_factory=list)
    shopping_rows: List[Dict[str, Any]] = Field(default_factory=list)
    audience_signals_rows: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("client_id", mode="before")
    @classmethod
    def _coerce_client_id(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("start", "end", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Optional[str]:
        # Unparsable fallback dates count as absent
        return parse_date(value)

    @field_validator(
        "campaign_id",
        "campaign_name",
        "report_name",
        "script_name",
        "mcc_customer_id",
        "account_customer_id",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator(*BULK_ROW_FIELDS.values(), mode="before")
    @classmethod
    def _only_objects(cls, value: Any) -> List[Dict[str, Any]]:
        # Non-array payloads and non-object entries are dropped, not rejected
        if not isinstance(value, list):
            return []
        return [row for row in value if isinstance(row, dict)]

    def rows_by_dataset(self) -> Dict[Dataset, List[Dict[str, Any]]]:
        return {
            dataset: getattr(self, attr)
            for dataset, attr in BULK_ROW_FIELDS.items()
            if getattr(self, attr)
        }

    def meta(self) -> Dict[str, Any]:
        fields = ("script_name", "mcc_customer_id", "account_customer_id")
        return {
            to_camel(name): getattr(self, name)
            for name in fields
            if getattr(self, name) is not None
        }


# ─────────────────────────────────────────────
# OUTCOME
# ─────────────────────────────────────────────


class IngestOutcome(CamelModel):
    """Result of one coordinator run, shaped as the HTTP response body."""

    ok: bool
    import_id: Optional[str] = None
    applied_at: Optional[str] = None
    applied_tables: Optional[List[str]] = None
    apply_summary: Optional[Dict[str, Any]] = None
    code: Optional[str] = None
    error: Optional[str] = None
    details: Optional[Any] = None
    status_code: int = Field(default=200, exclude=True)

    def body(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
