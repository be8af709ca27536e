"""ADLEDGER — Scheduler Jobs.

APScheduler daily job that pulls every configured Google Ads account at the
configured hour.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from adledger.config import settings
from adledger.connectors.google_ads.client import (
    CustomerCache,
    GoogleAdsAPIError,
    GoogleAdsClient,
)
from adledger.connectors.google_ads.collector import pull_account
from adledger.core.logging import get_logger
from adledger.database import get_session
from adledger.ingest.storage import SQLModelStore

logger = get_logger("scheduler")

scheduler = AsyncIOScheduler()
customer_cache = CustomerCache()


async def daily_pull_job() -> int:
    """Pull yesterday's lookback window for every account in PULL_ACCOUNTS.

    One failing account is logged and skipped. Returns the number of accounts
    that ingested successfully.
    """
    accounts = settings.pull_accounts
    logger.info(f"Scheduled pull starting for {len(accounts)} accounts...")
    client = GoogleAdsClient(cache=customer_cache)
    succeeded = 0
    try:
        for client_id, customer_id in accounts.items():
            session = next(get_session())
            try:
                outcome = await pull_account(
                    SQLModelStore(session), client, client_id, customer_id
                )
                if outcome.ok:
                    succeeded += 1
                else:
                    logger.error(
                        f"Pull for customer {customer_id} failed: {outcome.code} {outcome.error}",
                        extra={"client_id": client_id},
                    )
            except GoogleAdsAPIError as e:
                logger.error(
                    f"Google Ads API error for customer {customer_id}: {e}",
                    extra={"client_id": client_id, "status_code": e.status_code},
                )
            finally:
                session.close()
    finally:
        await client.close()

    logger.info(f"Scheduled pull complete. {succeeded}/{len(accounts)} accounts ingested")
    return succeeded


def start_scheduler():
    """Configure and start the scheduler."""
    if not settings.scheduler_enabled:
        logger.info("Scheduler disabled via config")
        return
    if not settings.google_ads_configured:
        logger.warning("Scheduler enabled but Google Ads credentials are missing")
        return

    scheduler.add_job(
        daily_pull_job,
        "cron",
        hour=settings.pull_hour,
        minute=0,
        id="daily_google_ads_pull",
        replace_existing=True,
        misfire_grace_time=3600,
    )
    scheduler.start()
    logger.info(f"Scheduler started. Daily pull at {settings.pull_hour}:00 UTC")


def stop_scheduler():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
