"""ADLEDGER — Keyword Analysis Models."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from adledger.config import Settings, settings


# ─────────────────────────────────────────────
# POLICY — thresholds and weights for scoring
# ─────────────────────────────────────────────


class KeywordPolicy(BaseModel):
    """Scoring thresholds. Rates are fractions, money is account currency."""

    min_impressions: int = 100
    max_cpc: float = 5.0
    max_cost_without_conversions: float = 50.0
    low_ctr: float = 0.01
    low_ctr_min_impressions: int = 1000
    critical_quality_score: int = 3
    click_waste_threshold: int = 50
    min_waste_score: int = 30
    waste_weights: Dict[str, int] = Field(
        default_factory=lambda: {
            "cost_without_conversions": 40,
            "low_ctr": 25,
            "critical_quality_score": 25,
            "high_cpc_without_return": 30,
            "clicks_without_conversions": 20,
        }
    )
    unconverted_waste_share: float = 0.8

    opportunity_high_ctr: float = 0.04
    opportunity_max_impressions: int = 1000
    opportunity_conversion_rate: float = 0.05
    opportunity_max_clicks: int = 100
    opportunity_quality_score: int = 8
    opportunity_exact_min_conversions: float = 3
    opportunity_exact_min_ctr: float = 0.03
    impact_weights: Dict[str, int] = Field(
        default_factory=lambda: {
            "clicks_high": 30,
            "clicks_mid": 20,
            "clicks_low": 10,
            "conversion_rate_high": 40,
            "conversion_rate_mid": 25,
            "ctr_only": 15,
            "quality_score_high": 20,
            "quality_score_mid": 10,
            "growth_room": 10,
        }
    )

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "KeywordPolicy":
        """Build the policy from KEYWORD_* settings."""
        source = source or settings
        prefix = "keyword_"
        values = {
            name: getattr(source, prefix + name)
            for name in cls.model_fields
            if hasattr(source, prefix + name)
        }
        return cls(**values)


# ─────────────────────────────────────────────
# OUTPUT
# ─────────────────────────────────────────────


class KeywordRef(BaseModel):
    campaign_id: str
    campaign_name: Optional[str] = None
    ad_group_id: str
    keyword_text: str
    match_type: str = ""
    impressions: int = 0
    clicks: int = 0
    cost: float = 0.0
    conversions: float = 0.0
    conversion_value: float = 0.0
    ctr: float = 0.0
    avg_cpc: float = 0.0
    quality_score: Optional[int] = None


class WastefulKeyword(KeywordRef):
    waste_reasons: List[str] = Field(default_factory=list)
    waste_score: int = 0
    estimated_waste: float = 0.0


class KeywordOpportunity(KeywordRef):
    opportunity_reasons: List[str] = Field(default_factory=list)
    potential_impact: int = 0


class KeywordAverages(BaseModel):
    quality_score: float = 0.0
    ctr: float = 0.0
    cpc: float = 0.0
    conversion_rate: float = 0.0
    cpa: float = 0.0


class KeywordSummary(BaseModel):
    total: int = 0
    with_data: int = 0
    opportunities: int = 0
    wasteful: int = 0
    total_cost: float = 0.0
    estimated_waste: float = 0.0
    averages: KeywordAverages = Field(default_factory=KeywordAverages)


class KeywordAnalysis(BaseModel):
    """Full keyword analysis for one client and window."""

    client_id: str
    date_range_start: Optional[str] = None
    date_range_end: Optional[str] = None
    summary: KeywordSummary
    wasteful: List[WastefulKeyword] = Field(default_factory=list)
    opportunities: List[KeywordOpportunity] = Field(default_factory=list)
