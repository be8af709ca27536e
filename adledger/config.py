"""ADLEDGER — Central Configuration via Pydantic Settings."""

import os
from typing import Dict, List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Database ──
    database_url: str = ""

    # ── Ingest ──
    script_import_key: str = ""  # shared secret for POST /ingest/bulk
    ingest_batch_size: int = 500
    raw_import_migration: str = "google-ads-raw-imports.sql"

    # ── Exports / read-side access ──
    export_tokens: Dict[str, List[str]] = {}  # bearer token -> owned client ids

    # ── Google Ads API ──
    google_ads_developer_token: str = ""
    google_ads_client_id: str = ""
    google_ads_client_secret: str = ""
    google_ads_refresh_token: str = ""
    google_ads_login_customer_id: Optional[str] = None
    google_ads_api_version: str = "v17"
    google_ads_base_url: str = "https://googleads.googleapis.com"
    google_oauth_token_url: str = "https://oauth2.googleapis.com/token"

    # ── App ──
    log_level: str = "INFO"
    scheduler_enabled: bool = False
    pull_hour: int = 3  # Daily pull at 3 AM UTC
    pull_lookback_days: int = 30
    pull_accounts: Dict[str, str] = {}  # client_id -> Google Ads customer id

    # ── Keyword analysis policy ──
    keyword_min_impressions: int = 100
    keyword_max_cpc: float = 5.0
    keyword_max_cost_without_conversions: float = 50.0
    keyword_low_ctr: float = 0.01
    keyword_low_ctr_min_impressions: int = 1000
    keyword_critical_quality_score: int = 3
    keyword_click_waste_threshold: int = 50
    keyword_min_waste_score: int = 30
    keyword_waste_weights: Dict[str, int] = {
        "cost_without_conversions": 40,
        "low_ctr": 25,
        "critical_quality_score": 25,
        "high_cpc_without_return": 30,
        "clicks_without_conversions": 20,
    }
    keyword_unconverted_waste_share: float = 0.8
    keyword_opportunity_high_ctr: float = 0.04
    keyword_opportunity_max_impressions: int = 1000
    keyword_opportunity_conversion_rate: float = 0.05
    keyword_opportunity_max_clicks: int = 100
    keyword_opportunity_quality_score: int = 8
    keyword_opportunity_exact_min_conversions: float = 3
    keyword_opportunity_exact_min_ctr: float = 0.03
    keyword_impact_weights: Dict[str, int] = {
        "clicks_high": 30,  # > 50 clicks
        "clicks_mid": 20,  # > 20 clicks
        "clicks_low": 10,
        "conversion_rate_high": 40,  # >= 5%
        "conversion_rate_mid": 25,  # >= 2%
        "ctr_only": 15,  # ctr >= 5%
        "quality_score_high": 20,  # >= 8
        "quality_score_mid": 10,  # >= 6
        "growth_room": 10,  # < 500 impressions
    }

    @property
    def effective_database_url(self) -> str:
        """Return PostgreSQL URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        # Vercel has a read-only filesystem; use /tmp for SQLite
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/adledger.db"
        return "sqlite:///./adledger.db"

    @property
    def google_ads_configured(self) -> bool:
        return bool(
            self.google_ads_developer_token
            and self.google_ads_client_id
            and self.google_ads_client_secret
            and self.google_ads_refresh_token
        )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
