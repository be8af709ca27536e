"""ADLEDGER — Row Mappers.

One mapping function per dataset. Each turns a raw field-name → value row
into a canonical record, or an explicit rejection when a required field
cannot be resolved. Rejection is an expected outcome and is counted, not
raised.

Rate fields are stored as fractions (0..1). The storage schema declares them
as DECIMAL fractions, and every ingestion path (script webhook, CSV, API pull)
goes through the helpers here, so they all use the same convention.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Union

from adledger.core.field_registry import aliases_for
from adledger.ingest.normalizer import RowFields, parse_date, parse_number, round_count
from adledger.models.canonical_models import (
    CanonicalRecord,
    Dataset,
    GoogleAdsAd,
    GoogleAdsAsset,
    GoogleAdsAudienceSignal,
    GoogleAdsCampaign,
    GoogleAdsKeyword,
    GoogleAdsMetric,
    GoogleAdsSearchTermInsight,
    GoogleAdsShoppingItem,
)

MISSING_REQUIRED_FIELDS = "missing_required_fields"


@dataclass(frozen=True)
class MappingContext:
    """Tenant scope plus caller-supplied fallbacks.

    The fallbacks are used only when a row carries no value of its own.
    """

    client_id: str
    collected_at: datetime
    start: Optional[str] = None
    end: Optional[str] = None
    campaign_id: Optional[str] = None
    campaign_name: Optional[str] = None

    @classmethod
    def now(cls, client_id: str, **fallbacks: Any) -> "MappingContext":
        return cls(
            client_id=client_id, collected_at=datetime.now(timezone.utc), **fallbacks
        )


@dataclass(frozen=True)
class Mapped:
    value: CanonicalRecord
    ok: bool = True


@dataclass(frozen=True)
class Rejected:
    reason: str = MISSING_REQUIRED_FIELDS
    ok: bool = False


MapResult = Union[Mapped, Rejected]


# ─────────────────────────────────────────────
# SHARED RESOLUTION
# ─────────────────────────────────────────────


def _text(fields: RowFields, name: str) -> Optional[str]:
    return fields.resolve(aliases_for(name))


def _number(fields: RowFields, name: str) -> Optional[float]:
    return parse_number(fields.resolve_value(aliases_for(name)))


def _measure(fields: RowFields, name: str) -> float:
    """Delivery measure; absent or unparsable values count as zero."""
    value = _number(fields, name)
    return value if value is not None else 0.0


def _date_range(fields: RowFields, ctx: MappingContext) -> Optional[tuple]:
    """Resolve (start, end) for a row, or None when it cannot be resolved.

    A row-level date pins both ends of the range. The fallback range applies
    only when the row has no date at all; an unparsable row date is not
    silently replaced by it.
    """
    raw = _text(fields, "date")
    if raw is not None:
        day = parse_date(raw)
        return (day, day) if day else None
    if ctx.start and ctx.end:
        return ctx.start, ctx.end
    return None


def _campaign(fields: RowFields, ctx: MappingContext, name_as_id: bool = False):
    campaign_name = _text(fields, "campaign_name") or ctx.campaign_name
    campaign_id = _text(fields, "campaign_id") or ctx.campaign_id
    if not campaign_id and name_as_id:
        campaign_id = campaign_name
    return campaign_id, campaign_name


def _delivery(fields: RowFields) -> Dict[str, float]:
    return {
        "impressions": _measure(fields, "impressions"),
        "clicks": _measure(fields, "clicks"),
        "cost": _measure(fields, "cost"),
        "conversions": _measure(fields, "conversions"),
        "conversion_value": _measure(fields, "conversion_value"),
    }


def _delivery_columns(measures: Dict[str, float]) -> Dict[str, Any]:
    return {
        "impressions": round_count(measures["impressions"]),
        "clicks": round_count(measures["clicks"]),
        "cost": measures["cost"],
        "conversions": measures["conversions"],
        "conversion_value": measures["conversion_value"],
    }


def derived_metrics(
    impressions: float,
    clicks: float,
    cost: float,
    conversions: float,
    conversion_value: float,
) -> Dict[str, float]:
    """Campaign rates as fractions, zero whenever the denominator is zero."""
    return {
        "ctr": clicks / impressions if impressions > 0 else 0.0,
        "avg_cpc": cost / clicks if clicks > 0 else 0.0,
        "conversion_rate": conversions / clicks if clicks > 0 else 0.0,
        "cpa": cost / conversions if conversions > 0 else 0.0,
        "roas": conversion_value / cost if cost > 0 else 0.0,
    }


def _common(ctx: MappingContext) -> Dict[str, Any]:
    return {"client_id": ctx.client_id, "collected_at": ctx.collected_at}


# ─────────────────────────────────────────────
# DATASET MAPPERS
# ─────────────────────────────────────────────


def map_campaign_row(row: Mapping[str, Any], ctx: MappingContext) -> MapResult:
    fields = RowFields(row)
    campaign_id = _text(fields, "campaign_id")
    campaign_name = _text(fields, "campaign_name")
    if not campaign_id or not campaign_name:
        return Rejected()

    return Mapped(
        GoogleAdsCampaign(
            **_common(ctx),
            campaign_id=campaign_id,
            campaign_name=campaign_name,
            campaign_type=_text(fields, "campaign_type"),
            campaign_status=_text(fields, "campaign_status"),
            advertising_channel_type=_text(fields, "advertising_channel_type"),
            raw_json=dict(row),
        )
    )


def map_metrics_row(row: Mapping[str, Any], ctx: MappingContext) -> MapResult:
    fields = RowFields(row)
    dates = _date_range(fields, ctx)
    campaign_id, campaign_name = _campaign(fields, ctx, name_as_id=True)
    if not campaign_id or not campaign_name or dates is None:
        return Rejected()

    measures = _delivery(fields)
    return Mapped(
        GoogleAdsMetric(
            **_common(ctx),
            campaign_id=campaign_id,
            campaign_name=campaign_name,
            campaign_type=_text(fields, "campaign_type"),
            campaign_status=_text(fields, "campaign_status"),
            bidding_strategy=_text(fields, "bidding_strategy"),
            date_range_start=dates[0],
            date_range_end=dates[1],
            **_delivery_columns(measures),
            **derived_metrics(**measures),
        )
    )


def map_keyword_row(row: Mapping[str, Any], ctx: MappingContext) -> MapResult:
    fields = RowFields(row)
    dates = _date_range(fields, ctx)
    campaign_id, campaign_name = _campaign(fields, ctx, name_as_id=True)
    ad_group_id = _text(fields, "ad_group_id")
    keyword_text = _text(fields, "keyword_text")
    if not campaign_id or not ad_group_id or not keyword_text or dates is None:
        return Rejected()

    measures = _delivery(fields)
    rates = derived_metrics(**measures)
    quality_score = _number(fields, "quality_score")
    return Mapped(
        GoogleAdsKeyword(
            **_common(ctx),
            campaign_id=campaign_id,
            campaign_name=campaign_name,
            ad_group_id=ad_group_id,
            ad_group_name=_text(fields, "ad_group_name"),
            keyword_text=keyword_text,
            match_type=_text(fields, "match_type") or "",
            status=_text(fields, "keyword_status"),
            cpc_bid=_number(fields, "cpc_bid"),
            quality_score=round_count(quality_score) if quality_score is not None else None,
            ad_relevance=_text(fields, "ad_relevance"),
            landing_page_experience=_text(fields, "landing_page_experience"),
            expected_ctr=_text(fields, "expected_ctr"),
            date_range_start=dates[0],
            date_range_end=dates[1],
            **_delivery_columns(measures),
            ctr=rates["ctr"],
            avg_cpc=rates["avg_cpc"],
            cost_per_conversion=rates["cpa"],
        )
    )


def map_ad_row(row: Mapping[str, Any], ctx: MappingContext) -> MapResult:
    fields = RowFields(row)
    dates = _date_range(fields, ctx)
    campaign_id, campaign_name = _campaign(fields, ctx)
    ad_group_id = _text(fields, "ad_group_id")
    ad_id = _text(fields, "ad_id")
    if not (campaign_id and campaign_name and ad_group_id and ad_id) or dates is None:
        return Rejected()

    return Mapped(
        GoogleAdsAd(
            **_common(ctx),
            campaign_id=campaign_id,
            campaign_name=campaign_name,
            ad_group_id=ad_group_id,
            ad_group_name=_text(fields, "ad_group_name"),
            ad_id=ad_id,
            ad_type=_text(fields, "ad_type"),
            ad_status=_text(fields, "ad_status"),
            date_range_start=dates[0],
            date_range_end=dates[1],
            **_delivery_columns(_delivery(fields)),
            raw_json=dict(row),
        )
    )


def map_asset_row(row: Mapping[str, Any], ctx: MappingContext) -> MapResult:
    fields = RowFields(row)
    dates = _date_range(fields, ctx)
    campaign_id, campaign_name = _campaign(fields, ctx)
    asset_group_id = _text(fields, "asset_group_id")
    resource_name = _text(fields, "asset_resource_name")
    if (
        not (campaign_id and campaign_name and asset_group_id and resource_name)
        or dates is None
    ):
        return Rejected()

    return Mapped(
        GoogleAdsAsset(
            **_common(ctx),
            campaign_id=campaign_id,
            campaign_name=campaign_name,
            asset_group_id=asset_group_id,
            asset_group_name=_text(fields, "asset_group_name"),
            asset_id=_text(fields, "asset_id"),
            asset_resource_name=resource_name,
            asset_type=_text(fields, "asset_type"),
            field_type=_text(fields, "field_type") or "",
            performance_label=_text(fields, "performance_label"),
            date_range_start=dates[0],
            date_range_end=dates[1],
            **_delivery_columns(_delivery(fields)),
            raw_json=dict(row),
        )
    )


def map_search_term_insight_row(
    row: Mapping[str, Any], ctx: MappingContext
) -> MapResult:
    fields = RowFields(row)
    dates = _date_range(fields, ctx)
    campaign_id, campaign_name = _campaign(fields, ctx)
    category_label = _text(fields, "category_label")
    if not (campaign_id and campaign_name and category_label) or dates is None:
        return Rejected()

    return Mapped(
        GoogleAdsSearchTermInsight(
            **_common(ctx),
            campaign_id=campaign_id,
            campaign_name=campaign_name,
            category_label=category_label,
            date_range_start=dates[0],
            date_range_end=dates[1],
            **_delivery_columns(_delivery(fields)),
            raw_json=dict(row),
        )
    )


def map_shopping_row(row: Mapping[str, Any], ctx: MappingContext) -> MapResult:
    fields = RowFields(row)
    dates = _date_range(fields, ctx)
    campaign_id, campaign_name = _campaign(fields, ctx)
    product = {
        "product_item_id": _text(fields, "product_item_id") or "",
        "product_title": _text(fields, "product_title") or "",
        "product_brand": _text(fields, "product_brand") or "",
        "product_type_l1": _text(fields, "product_type_l1") or "",
    }
    # A shopping row is useless without at least one feed dimension
    if not (campaign_id and campaign_name and any(product.values())) or dates is None:
        return Rejected()

    return Mapped(
        GoogleAdsShoppingItem(
            **_common(ctx),
            campaign_id=campaign_id,
            campaign_name=campaign_name,
            **product,
            date_range_start=dates[0],
            date_range_end=dates[1],
            **_delivery_columns(_delivery(fields)),
            raw_json=dict(row),
        )
    )


def map_audience_signal_row(row: Mapping[str, Any], ctx: MappingContext) -> MapResult:
    fields = RowFields(row)
    dates = _date_range(fields, ctx)
    campaign_id, campaign_name = _campaign(fields, ctx)
    asset_group_id = _text(fields, "asset_group_id")
    if not (campaign_id and campaign_name and asset_group_id) or dates is None:
        return Rejected()

    return Mapped(
        GoogleAdsAudienceSignal(
            **_common(ctx),
            campaign_id=campaign_id,
            campaign_name=campaign_name,
            asset_group_id=asset_group_id,
            asset_group_name=_text(fields, "asset_group_name"),
            signal_type=_text(fields, "signal_type") or "",
            signal_value=_text(fields, "signal_value") or "",
            date_range_start=dates[0],
            date_range_end=dates[1],
            raw_json=dict(row),
        )
    )


RowMapper = Callable[[Mapping[str, Any], MappingContext], MapResult]

MAPPERS: Dict[Dataset, RowMapper] = {
    Dataset.CAMPAIGNS: map_campaign_row,
    Dataset.METRICS: map_metrics_row,
    Dataset.KEYWORDS: map_keyword_row,
    Dataset.ADS: map_ad_row,
    Dataset.ASSETS: map_asset_row,
    Dataset.SEARCH_TERM_INSIGHTS: map_search_term_insight_row,
    Dataset.SHOPPING: map_shopping_row,
    Dataset.AUDIENCE_SIGNALS: map_audience_signal_row,
}


def map_row(dataset: Dataset, row: Mapping[str, Any], ctx: MappingContext) -> MapResult:
    """Map one raw row with the mapper registered for `dataset`."""
    return MAPPERS[dataset](row, ctx)
