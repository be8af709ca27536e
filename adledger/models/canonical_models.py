"""ADLEDGER — Canonical Google Ads Records (one table per dataset).

Every table carries a unique constraint on its natural key, so re-ingesting
the same business identity replaces the row instead of duplicating it.
Optional text columns that take part in a natural key are stored as "" so the
constraint also holds for rows that leave them blank.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple, Type

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field, UniqueConstraint


class Dataset(str, Enum):
    """Closed set of canonical datasets, in reconciliation order."""

    CAMPAIGNS = "campaigns"
    METRICS = "metrics"
    KEYWORDS = "keywords"
    ADS = "ads"
    ASSETS = "assets"
    SEARCH_TERM_INSIGHTS = "search_term_insights"
    SHOPPING = "shopping"
    AUDIENCE_SIGNALS = "audience_signals"


# ─────────────────────────────────────────────
# SHARED COLUMNS
# ─────────────────────────────────────────────


class CanonicalRecord(SQLModel):
    id: Optional[int] = Field(default=None, primary_key=True)
    client_id: str = Field(index=True, description="Tenant scope")
    campaign_id: str = Field(index=True)
    collected_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PerformanceRecord(CanonicalRecord):
    """Rows that report delivery over a date range."""

    date_range_start: str = Field(index=True, description="YYYY-MM-DD")
    date_range_end: str = Field(index=True, description="YYYY-MM-DD")
    impressions: int = 0
    clicks: int = 0
    cost: float = 0.0
    conversions: float = 0.0
    conversion_value: float = 0.0


# ─────────────────────────────────────────────
# TABLES
# ─────────────────────────────────────────────


class GoogleAdsCampaign(CanonicalRecord, table=True):
    __tablename__ = "google_ads_campaigns"
    NATURAL_KEY: ClassVar[Tuple[str, ...]] = ("client_id", "campaign_id")
    __table_args__ = (UniqueConstraint(*NATURAL_KEY, name="uq_google_ads_campaign"),)

    campaign_name: str
    campaign_type: Optional[str] = None
    campaign_status: Optional[str] = None
    advertising_channel_type: Optional[str] = None
    raw_json: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))


class GoogleAdsMetric(PerformanceRecord, table=True):
    """Campaign delivery for one date range. Rates are fractions (0..1)."""

    __tablename__ = "google_ads_metrics"
    NATURAL_KEY: ClassVar[Tuple[str, ...]] = (
        "client_id",
        "campaign_id",
        "date_range_start",
        "date_range_end",
    )
    __table_args__ = (UniqueConstraint(*NATURAL_KEY, name="uq_google_ads_metric"),)

    campaign_name: str
    campaign_type: Optional[str] = None
    campaign_status: Optional[str] = None
    bidding_strategy: Optional[str] = None
    ctr: float = 0.0
    avg_cpc: float = 0.0
    conversion_rate: float = 0.0
    cpa: float = 0.0
    roas: float = 0.0


class GoogleAdsKeyword(PerformanceRecord, table=True):
    __tablename__ = "google_ads_keywords"
    NATURAL_KEY: ClassVar[Tuple[str, ...]] = (
        "client_id",
        "campaign_id",
        "ad_group_id",
        "keyword_text",
        "match_type",
        "date_range_start",
        "date_range_end",
    )
    __table_args__ = (UniqueConstraint(*NATURAL_KEY, name="uq_google_ads_keyword"),)

    campaign_name: Optional[str] = None
    ad_group_id: str
    ad_group_name: Optional[str] = None
    keyword_text: str
    match_type: str = ""
    status: Optional[str] = None
    cpc_bid: Optional[float] = None
    quality_score: Optional[int] = None
    ad_relevance: Optional[str] = None
    landing_page_experience: Optional[str] = None
    expected_ctr: Optional[str] = None
    ctr: float = 0.0
    avg_cpc: float = 0.0
    cost_per_conversion: float = 0.0


class GoogleAdsAd(PerformanceRecord, table=True):
    __tablename__ = "google_ads_ads"
    NATURAL_KEY: ClassVar[Tuple[str, ...]] = (
        "client_id",
        "campaign_id",
        "ad_group_id",
        "ad_id",
        "date_range_start",
        "date_range_end",
    )
    __table_args__ = (UniqueConstraint(*NATURAL_KEY, name="uq_google_ads_ad"),)

    campaign_name: str
    ad_group_id: str
    ad_group_name: Optional[str] = None
    ad_id: str
    ad_type: Optional[str] = None
    ad_status: Optional[str] = None
    raw_json: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))


class GoogleAdsAsset(PerformanceRecord, table=True):
    """Performance Max asset row."""

    __tablename__ = "google_ads_assets"
    NATURAL_KEY: ClassVar[Tuple[str, ...]] = (
        "client_id",
        "campaign_id",
        "asset_group_id",
        "asset_resource_name",
        "field_type",
        "date_range_start",
        "date_range_end",
    )
    __table_args__ = (UniqueConstraint(*NATURAL_KEY, name="uq_google_ads_asset"),)

    campaign_name: str
    asset_group_id: str
    asset_group_name: Optional[str] = None
    asset_id: Optional[str] = None
    asset_resource_name: str
    asset_type: Optional[str] = None
    field_type: str = ""
    performance_label: Optional[str] = None
    raw_json: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))


class GoogleAdsSearchTermInsight(PerformanceRecord, table=True):
    """Performance Max search-term category."""

    __tablename__ = "google_ads_pmax_search_term_insights"
    NATURAL_KEY: ClassVar[Tuple[str, ...]] = (
        "client_id",
        "campaign_id",
        "category_label",
        "date_range_start",
        "date_range_end",
    )
    __table_args__ = (
        UniqueConstraint(*NATURAL_KEY, name="uq_google_ads_pmax_search_term"),
    )

    campaign_name: str
    category_label: str
    raw_json: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))


class GoogleAdsShoppingItem(PerformanceRecord, table=True):
    """Performance Max shopping row; at least one product dimension is set."""

    __tablename__ = "google_ads_pmax_shopping_performance"
    NATURAL_KEY: ClassVar[Tuple[str, ...]] = (
        "client_id",
        "campaign_id",
        "product_item_id",
        "product_title",
        "product_brand",
        "product_type_l1",
        "date_range_start",
        "date_range_end",
    )
    __table_args__ = (
        UniqueConstraint(*NATURAL_KEY, name="uq_google_ads_pmax_shopping"),
    )

    campaign_name: str
    product_item_id: str = ""
    product_title: str = ""
    product_brand: str = ""
    product_type_l1: str = ""
    raw_json: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))


class GoogleAdsAudienceSignal(CanonicalRecord, table=True):
    """Performance Max audience signal. Carries no delivery measures."""

    __tablename__ = "google_ads_pmax_audience_signals"
    NATURAL_KEY: ClassVar[Tuple[str, ...]] = (
        "client_id",
        "campaign_id",
        "asset_group_id",
        "signal_type",
        "signal_value",
        "date_range_start",
        "date_range_end",
    )
    __table_args__ = (
        UniqueConstraint(*NATURAL_KEY, name="uq_google_ads_pmax_audience_signal"),
    )

    campaign_name: str
    asset_group_id: str
    asset_group_name: Optional[str] = None
    signal_type: str = ""
    signal_value: str = ""
    date_range_start: str = Field(index=True)
    date_range_end: str = Field(index=True)
    raw_json: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))


# ─────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────

DATASET_MODELS: Dict[Dataset, Type[CanonicalRecord]] = {
    Dataset.CAMPAIGNS: GoogleAdsCampaign,
    Dataset.METRICS: GoogleAdsMetric,
    Dataset.KEYWORDS: GoogleAdsKeyword,
    Dataset.ADS: GoogleAdsAd,
    Dataset.ASSETS: GoogleAdsAsset,
    Dataset.SEARCH_TERM_INSIGHTS: GoogleAdsSearchTermInsight,
    Dataset.SHOPPING: GoogleAdsShoppingItem,
    Dataset.AUDIENCE_SIGNALS: GoogleAdsAudienceSignal,
}
