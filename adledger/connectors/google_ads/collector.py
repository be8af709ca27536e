"""ADLEDGER — Google Ads API Collector.

Pulls campaign and keyword performance for one account and hands it to the
ingest coordinator as an `api-bulk` import. Rows are aggregated over the
requested window; derived rates are left to the row mappers so every ingest
path computes them the same way.
"""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from adledger.config import settings
from adledger.connectors.google_ads.client import (
    CustomerHandle,
    GoogleAdsClient,
    micros_to_units,
)
from adledger.core.logging import get_logger
from adledger.ingest.coordinator import IngestCoordinator, IngestRequest
from adledger.ingest.storage import SQLModelStore
from adledger.models.activity_models import ActivityAction
from adledger.models.canonical_models import Dataset
from adledger.models.ingest_models import IngestOutcome
from adledger.models.raw_models import ImportSource

logger = get_logger("google_ads.collector")

CAMPAIGN_QUERY = """
SELECT campaign.id, campaign.name, campaign.status,
       campaign.advertising_channel_type, campaign.bidding_strategy_type,
       metrics.impressions, metrics.clicks, metrics.cost_micros,
       metrics.conversions, metrics.conversions_value
FROM campaign
WHERE segments.date BETWEEN '{start}' AND '{end}'
  AND campaign.status = 'ENABLED'
ORDER BY metrics.impressions DESC
"""

KEYWORD_QUERY = """
SELECT campaign.id, campaign.name, ad_group.id, ad_group.name,
       ad_group_criterion.criterion_id, ad_group_criterion.keyword.text,
       ad_group_criterion.keyword.match_type, ad_group_criterion.status,
       ad_group_criterion.quality_info.quality_score,
       ad_group_criterion.quality_info.creative_quality_score,
       ad_group_criterion.quality_info.post_click_quality_score,
       ad_group_criterion.quality_info.search_predicted_ctr,
       ad_group_criterion.cpc_bid_micros,
       metrics.impressions, metrics.clicks, metrics.cost_micros,
       metrics.conversions, metrics.conversions_value
FROM keyword_view
WHERE segments.date BETWEEN '{start}' AND '{end}'
  AND ad_group_criterion.type = 'KEYWORD'
  AND ad_group.status = 'ENABLED'{campaign_filter}
ORDER BY metrics.impressions DESC
"""

MEASURES = ("impressions", "clicks", "cost", "conversions", "conversion_value")


def lookback_window(days: int, today: Optional[date] = None) -> Tuple[str, str]:
    """Window of `days` days ending yesterday, as ISO dates."""
    end = (today or date.today()) - timedelta(days=1)
    start = end - timedelta(days=max(days, 1) - 1)
    return start.isoformat(), end.isoformat()


def _measures(metrics: Dict[str, Any]) -> Dict[str, float]:
    return {
        "impressions": float(metrics.get("impressions") or 0),
        "clicks": float(metrics.get("clicks") or 0),
        "cost": micros_to_units(metrics.get("costMicros")),
        "conversions": float(metrics.get("conversions") or 0),
        "conversion_value": float(metrics.get("conversionsValue") or 0),
    }


def _accumulate(target: Dict[str, Any], metrics: Dict[str, Any]) -> None:
    for name, value in _measures(metrics).items():
        target[name] += value


class GoogleAdsCollector:
    """Collects dataset rows for one account and date window."""

    def __init__(
        self, client: GoogleAdsClient, handle: CustomerHandle, start: str, end: str
    ):
        self.client = client
        self.handle = handle
        self.start = start
        self.end = end

    async def collect_campaign_rows(self) -> List[Dict[str, Any]]:
        """One metrics row per enabled campaign, summed over the window."""
        results = await self.client.search(
            self.handle, CAMPAIGN_QUERY.format(start=self.start, end=self.end)
        )
        by_campaign: Dict[str, Dict[str, Any]] = {}
        for result in results:
            campaign = result.get("campaign", {})
            campaign_id = str(campaign.get("id", ""))
            if campaign_id not in by_campaign:
                by_campaign[campaign_id] = {
                    "campaign_id": campaign_id,
                    "campaign_name": campaign.get("name", ""),
                    "campaign_type": campaign.get("advertisingChannelType"),
                    "advertising_channel_type": campaign.get("advertisingChannelType"),
                    "campaign_status": campaign.get("status"),
                    "bidding_strategy": campaign.get("biddingStrategyType"),
                    **{name: 0.0 for name in MEASURES},
                }
            _accumulate(by_campaign[campaign_id], result.get("metrics", {}))

        logger.info(f"Collected {len(by_campaign)} campaigns")
        return list(by_campaign.values())

    async def collect_keyword_rows(
        self, campaign_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """One row per keyword criterion, summed over the window."""
        campaign_filter = f"\n  AND campaign.id = {int(campaign_id)}" if campaign_id else ""
        results = await self.client.search(
            self.handle,
            KEYWORD_QUERY.format(
                start=self.start, end=self.end, campaign_filter=campaign_filter
            ),
        )
        by_keyword: Dict[str, Dict[str, Any]] = {}
        for result in results:
            campaign = result.get("campaign", {})
            ad_group = result.get("adGroup", {})
            criterion = result.get("adGroupCriterion", {})
            keyword = criterion.get("keyword", {})
            quality = criterion.get("qualityInfo", {})
            key = f"{campaign.get('id')}-{ad_group.get('id')}-{criterion.get('criterionId')}"
            if key not in by_keyword:
                by_keyword[key] = {
                    "campaign_id": str(campaign.get("id", "")),
                    "campaign_name": campaign.get("name", ""),
                    "ad_group_id": str(ad_group.get("id", "")),
                    "ad_group_name": ad_group.get("name", ""),
                    "keyword_text": keyword.get("text", ""),
                    "match_type": keyword.get("matchType", ""),
                    "keyword_status": criterion.get("status"),
                    "cpc_bid": micros_to_units(criterion.get("cpcBidMicros")),
                    "quality_score": quality.get("qualityScore"),
                    "ad_relevance": quality.get("creativeQualityScore"),
                    "landing_page_experience": quality.get("postClickQualityScore"),
                    "expected_ctr": quality.get("searchPredictedCtr"),
                    **{name: 0.0 for name in MEASURES},
                }
            _accumulate(by_keyword[key], result.get("metrics", {}))

        logger.info(f"Collected {len(by_keyword)} keywords")
        return list(by_keyword.values())


async def pull_account(
    store: SQLModelStore,
    client: GoogleAdsClient,
    client_id: str,
    customer_id: str,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> IngestOutcome:
    """Pull one account from the API and ingest it.

    API errors propagate as GoogleAdsAPIError; ingest failures come back on
    the outcome like any other ingest path.
    """
    if not (start and end):
        start, end = lookback_window(settings.pull_lookback_days)

    handle = client.customer(customer_id)
    collector = GoogleAdsCollector(client, handle, start, end)
    campaign_rows = await collector.collect_campaign_rows()
    keyword_rows = await collector.collect_keyword_rows()

    datasets: Dict[Dataset, List[Dict[str, Any]]] = {}
    if campaign_rows:
        datasets[Dataset.CAMPAIGNS] = campaign_rows
        datasets[Dataset.METRICS] = campaign_rows
    if keyword_rows:
        datasets[Dataset.KEYWORDS] = keyword_rows

    request = IngestRequest(
        client_id=client_id,
        source=ImportSource.API_BULK,
        action=ActivityAction.API_PULL,
        datasets=datasets,
        start=start,
        end=end,
        report_name="api-pull",
        meta={"customerId": handle.customer_id},
    )
    outcome = IngestCoordinator(store).run(request)
    logger.info(
        f"API pull for customer {handle.customer_id}: ok={outcome.ok}",
        extra={"client_id": client_id, "import_id": outcome.import_id},
    )
    return outcome
