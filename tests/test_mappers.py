from datetime import datetime, timezone

import pytest

from adledger.ingest.mappers import (
    MISSING_REQUIRED_FIELDS,
    MappingContext,
    derived_metrics,
    map_row,
)
from adledger.models.canonical_models import (
    Dataset,
    GoogleAdsKeyword,
    GoogleAdsMetric,
    GoogleAdsShoppingItem,
)

from conftest import CLIENT_ID

COLLECTED = datetime(2025, 2, 1, tzinfo=timezone.utc)


def _ctx(**fallbacks):
    return MappingContext(client_id=CLIENT_ID, collected_at=COLLECTED, **fallbacks)


def test_metrics_row_derives_fraction_rates():
    row = {
        "campaign_id": "1",
        "campaign_name": "Brand",
        "impressions": "1000",
        "clicks": "50",
        "cost": "100,00",
        "conversions": "5",
        "conversion_value": "500",
    }
    result = map_row(Dataset.METRICS, row, _ctx(start="2025-01-01", end="2025-01-31"))

    assert result.ok
    metric = result.value
    assert isinstance(metric, GoogleAdsMetric)
    assert metric.client_id == CLIENT_ID
    assert (metric.date_range_start, metric.date_range_end) == ("2025-01-01", "2025-01-31")
    assert metric.impressions == 1000 and metric.clicks == 50
    assert metric.ctr == pytest.approx(0.05)
    assert metric.avg_cpc == pytest.approx(2.0)
    assert metric.conversion_rate == pytest.approx(0.1)
    assert metric.cpa == pytest.approx(20.0)
    assert metric.roas == pytest.approx(5.0)


def test_zero_denominators_yield_zero():
    assert derived_metrics(0, 0, 0, 0, 0) == {
        "ctr": 0.0,
        "avg_cpc": 0.0,
        "conversion_rate": 0.0,
        "cpa": 0.0,
        "roas": 0.0,
    }


def test_ui_headers_and_row_date_override_fallback():
    row = {
        "Campanha": "Marca",
        "Dia": "05/03/2025",
        "Impr.": "1234",
        "Cliques": "10,6",
        "Custo": "R$ 45,50",
    }
    result = map_row(Dataset.METRICS, row, _ctx(start="2025-01-01", end="2025-01-31"))

    metric = result.value
    # Campaign name doubles as id when no id is present
    assert metric.campaign_id == "Marca"
    assert metric.date_range_start == metric.date_range_end == "2025-03-05"
    assert metric.impressions == 1234
    assert metric.clicks == 11
    assert metric.cost == pytest.approx(45.5)
    assert metric.conversions == 0.0


def test_unparsable_row_date_rejects_instead_of_using_fallback():
    row = {"campaign_name": "Brand", "date": "13/13/2025"}
    result = map_row(Dataset.METRICS, row, _ctx(start="2025-01-01", end="2025-01-31"))
    assert not result.ok
    assert result.reason == MISSING_REQUIRED_FIELDS


def test_metrics_without_any_date_is_rejected():
    result = map_row(Dataset.METRICS, {"campaign_name": "Brand"}, _ctx())
    assert not result.ok


def test_fallback_campaign_identity_is_used_when_row_has_none():
    row = {"impressions": "10"}
    ctx = _ctx(start="2025-01-01", end="2025-01-31", campaign_id="99", campaign_name="Fallback")
    metric = map_row(Dataset.METRICS, row, ctx).value
    assert (metric.campaign_id, metric.campaign_name) == ("99", "Fallback")


def test_keyword_row_blank_match_type_stored_as_empty_string():
    row = {
        "campaign_id": "1",
        "Ad group ID": "10",
        "Keyword": "heat pump",
        "Quality Score": "7",
        "Max. CPC": "1,50",
        "impressions": "200",
        "clicks": "20",
        "cost": "30",
        "conversions": "2",
    }
    result = map_row(Dataset.KEYWORDS, row, _ctx(start="2025-01-01", end="2025-01-31"))

    keyword = result.value
    assert isinstance(keyword, GoogleAdsKeyword)
    assert keyword.match_type == ""
    assert keyword.quality_score == 7
    assert keyword.cpc_bid == pytest.approx(1.5)
    assert keyword.ctr == pytest.approx(0.1)
    assert keyword.avg_cpc == pytest.approx(1.5)
    assert keyword.cost_per_conversion == pytest.approx(15.0)


def test_keyword_requires_ad_group_and_text():
    row = {"campaign_id": "1", "keyword_text": "heat pump"}
    assert not map_row(Dataset.KEYWORDS, row, _ctx(start="2025-01-01", end="2025-01-31")).ok


def test_campaign_row_has_no_fallback():
    ctx = _ctx(campaign_id="1", campaign_name="Brand")
    assert not map_row(Dataset.CAMPAIGNS, {"status": "ENABLED"}, ctx).ok

    result = map_row(Dataset.CAMPAIGNS, {"campaignId": "1", "campaignName": "Brand"}, ctx)
    assert result.ok
    assert result.value.raw_json == {"campaignId": "1", "campaignName": "Brand"}


def test_ads_do_not_use_name_as_id():
    row = {"campaign_name": "Brand", "ad_group_id": "10", "ad_id": "100"}
    assert not map_row(Dataset.ADS, row, _ctx(start="2025-01-01", end="2025-01-31")).ok


def test_shopping_needs_one_product_dimension():
    base = {"campaign_id": "1", "campaign_name": "PMax", "date": "2025-01-02"}
    assert not map_row(Dataset.SHOPPING, base, _ctx()).ok

    result = map_row(Dataset.SHOPPING, {**base, "brand": "Acme"}, _ctx())
    item = result.value
    assert isinstance(item, GoogleAdsShoppingItem)
    assert item.product_brand == "Acme"
    assert item.product_item_id == item.product_title == item.product_type_l1 == ""


@pytest.mark.parametrize(
    "dataset, row",
    [
        (Dataset.ASSETS, {"asset_group_id": "5", "asset_resource_name": "customers/1/assets/2"}),
        (Dataset.SEARCH_TERM_INSIGHTS, {"category_label": "heat pumps"}),
        (Dataset.AUDIENCE_SIGNALS, {"asset_group_id": "5", "signal_type": "INTEREST"}),
    ],
)
def test_pmax_rows_map_with_fallbacks(dataset, row):
    ctx = _ctx(start="2025-01-01", end="2025-01-31", campaign_id="1", campaign_name="PMax")
    result = map_row(dataset, row, ctx)
    assert result.ok
    assert result.value.raw_json == row
    assert result.value.date_range_start == "2025-01-01"


def test_bare_campaign_key_is_a_campaign_id():
    result = map_row(Dataset.CAMPAIGNS, {"campaign": "Brand"}, _ctx())
    assert result.ok
    assert result.value.campaign_id == "Brand"

    row = {"campaign": "Brand", "ad_group_id": "10", "ad_id": "100"}
    assert map_row(Dataset.ADS, row, _ctx(start="2025-01-01", end="2025-01-31")).ok


def test_json_numbers_are_not_stringified():
    row = {
        "campaign_id": "1",
        "campaign_name": "Brand",
        "impressions": 1000,
        "clicks": 50,
        "cost": 12.5,
        "conversions": 0.00005,
    }
    result = map_row(Dataset.METRICS, row, _ctx(start="2025-01-01", end="2025-01-31"))

    metric = result.value
    assert metric.conversions == pytest.approx(5e-05)
    assert metric.cost == 12.5
    assert metric.impressions == 1000
