"""ADLEDGER — Keyword Engine.

Scores stored keyword rows for:
- Wasted budget (spend without return, weak CTR, critical Quality Score)
- Growth opportunities (strong CTR or conversion rate on low volume)

All thresholds and weights come from a KeywordPolicy.
"""

from typing import Iterable, List, Optional

from adledger.core.logging import get_logger
from adledger.models.analysis_models import (
    KeywordAnalysis,
    KeywordAverages,
    KeywordOpportunity,
    KeywordPolicy,
    KeywordRef,
    KeywordSummary,
    WastefulKeyword,
)
from adledger.models.canonical_models import GoogleAdsKeyword

logger = get_logger("analyzer.keyword")


def _ref(kw: GoogleAdsKeyword) -> dict:
    return KeywordRef(
        campaign_id=kw.campaign_id,
        campaign_name=kw.campaign_name,
        ad_group_id=kw.ad_group_id,
        keyword_text=kw.keyword_text,
        match_type=kw.match_type,
        impressions=kw.impressions,
        clicks=kw.clicks,
        cost=kw.cost,
        conversions=kw.conversions,
        conversion_value=kw.conversion_value,
        ctr=kw.ctr,
        avg_cpc=kw.avg_cpc,
        quality_score=kw.quality_score,
    ).model_dump()


def _conversion_rate(kw: GoogleAdsKeyword) -> float:
    return kw.conversions / kw.clicks if kw.clicks > 0 else 0.0


def estimate_wasted_budget(kw: GoogleAdsKeyword, policy: KeywordPolicy) -> float:
    """Share of spend considered wasted."""
    if kw.conversions == 0:
        return kw.cost * policy.unconverted_waste_share

    avg_cpa = kw.cost / kw.conversions
    benchmark_cpa = kw.conversion_value / kw.conversions or avg_cpa * 0.5
    if avg_cpa > benchmark_cpa * 2:
        return (avg_cpa - benchmark_cpa) * kw.conversions
    return 0.0


def find_wasteful_keywords(
    keywords: Iterable[GoogleAdsKeyword], policy: KeywordPolicy
) -> List[WastefulKeyword]:
    weights = policy.waste_weights
    wasteful: List[WastefulKeyword] = []

    for kw in keywords:
        if kw.impressions < policy.min_impressions:
            continue

        reasons: List[str] = []
        score = 0

        if kw.cost > policy.max_cost_without_conversions and kw.conversions == 0:
            reasons.append(f"{kw.cost:.2f} spent without conversions")
            score += weights.get("cost_without_conversions", 0)

        if kw.ctr < policy.low_ctr and kw.impressions > policy.low_ctr_min_impressions:
            reasons.append(f"Very low CTR: {kw.ctr * 100:.2f}%")
            score += weights.get("low_ctr", 0)

        if kw.quality_score and kw.quality_score < policy.critical_quality_score:
            reasons.append(f"Critical Quality Score: {kw.quality_score}/10")
            score += weights.get("critical_quality_score", 0)

        if kw.avg_cpc > policy.max_cpc and kw.conversions < 1:
            reasons.append(f"High CPC without conversions: {kw.avg_cpc:.2f}")
            score += weights.get("high_cpc_without_return", 0)

        if kw.clicks > policy.click_waste_threshold and kw.conversions == 0:
            reasons.append(f"{kw.clicks} clicks without a conversion")
            score += weights.get("clicks_without_conversions", 0)

        if reasons and score >= policy.min_waste_score:
            wasteful.append(
                WastefulKeyword(
                    **_ref(kw),
                    waste_reasons=reasons,
                    waste_score=min(score, 100),
                    estimated_waste=estimate_wasted_budget(kw, policy),
                )
            )

    return sorted(wasteful, key=lambda w: w.waste_score, reverse=True)


def estimate_opportunity_impact(kw: GoogleAdsKeyword, policy: KeywordPolicy) -> int:
    """Impact score 0-100."""
    w = policy.impact_weights
    impact = 0

    if kw.clicks > 50:
        impact += w.get("clicks_high", 0)
    elif kw.clicks > 20:
        impact += w.get("clicks_mid", 0)
    else:
        impact += w.get("clicks_low", 0)

    conv_rate = _conversion_rate(kw)
    if conv_rate >= 0.05:
        impact += w.get("conversion_rate_high", 0)
    elif conv_rate >= 0.02:
        impact += w.get("conversion_rate_mid", 0)
    elif kw.ctr >= 0.05:
        impact += w.get("ctr_only", 0)

    quality = kw.quality_score or 0
    if quality >= 8:
        impact += w.get("quality_score_high", 0)
    elif quality >= 6:
        impact += w.get("quality_score_mid", 0)

    if kw.impressions < 500:
        impact += w.get("growth_room", 0)

    return min(impact, 100)


def find_opportunities(
    keywords: Iterable[GoogleAdsKeyword], policy: KeywordPolicy
) -> List[KeywordOpportunity]:
    opportunities: List[KeywordOpportunity] = []

    for kw in keywords:
        if kw.impressions < policy.min_impressions:
            continue

        reasons: List[str] = []

        if (
            kw.ctr >= policy.opportunity_high_ctr
            and kw.impressions < policy.opportunity_max_impressions
        ):
            reasons.append("High CTR, raise bids for more impressions")

        if (
            _conversion_rate(kw) >= policy.opportunity_conversion_rate
            and kw.clicks < policy.opportunity_max_clicks
        ):
            reasons.append("Strong conversion rate, expand for more clicks")

        if (
            (kw.quality_score or 0) >= policy.opportunity_quality_score
            and kw.avg_cpc < policy.max_cpc / 2
        ):
            reasons.append("High Quality Score, bids can rise cost-effectively")

        if (
            kw.match_type.upper() == "EXACT"
            and kw.conversions > policy.opportunity_exact_min_conversions
            and kw.ctr >= policy.opportunity_exact_min_ctr
        ):
            reasons.append("Test PHRASE match to widen reach")

        if reasons:
            opportunities.append(
                KeywordOpportunity(
                    **_ref(kw),
                    opportunity_reasons=reasons,
                    potential_impact=estimate_opportunity_impact(kw, policy),
                )
            )

    return sorted(opportunities, key=lambda o: o.potential_impact, reverse=True)


def analyze_keywords(
    keywords: List[GoogleAdsKeyword],
    client_id: str,
    policy: Optional[KeywordPolicy] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> KeywordAnalysis:
    """Run waste and opportunity detection over one client's keywords."""
    policy = policy or KeywordPolicy.from_settings()
    wasteful = find_wasteful_keywords(keywords, policy)
    opportunities = find_opportunities(keywords, policy)

    total_cost = sum(k.cost for k in keywords)
    total_clicks = sum(k.clicks for k in keywords)
    total_impressions = sum(k.impressions for k in keywords)
    total_conversions = sum(k.conversions for k in keywords)
    scored = [k.quality_score for k in keywords if k.quality_score]

    summary = KeywordSummary(
        total=len(keywords),
        with_data=sum(1 for k in keywords if k.impressions >= policy.min_impressions),
        opportunities=len(opportunities),
        wasteful=len(wasteful),
        total_cost=total_cost,
        estimated_waste=sum(w.estimated_waste for w in wasteful),
        averages=KeywordAverages(
            quality_score=sum(scored) / len(scored) if scored else 0.0,
            ctr=total_clicks / total_impressions if total_impressions else 0.0,
            cpc=total_cost / total_clicks if total_clicks else 0.0,
            conversion_rate=total_conversions / total_clicks if total_clicks else 0.0,
            cpa=total_cost / total_conversions if total_conversions else 0.0,
        ),
    )

    logger.info(
        f"Keyword analysis: {summary.wasteful} wasteful, "
        f"{summary.opportunities} opportunities across {summary.total} keywords",
        extra={"client_id": client_id},
    )
    return KeywordAnalysis(
        client_id=client_id,
        date_range_start=start,
        date_range_end=end,
        summary=summary,
        wasteful=wasteful,
        opportunities=opportunities,
    )
