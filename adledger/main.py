"""ADLEDGER — FastAPI Application Entry Point.

Google Ads ingest, reconciliation and export service.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adledger.api.analysis_routes import router as analysis_router
from adledger.api.deps import APIError, api_error_handler
from adledger.api.export_routes import router as export_router
from adledger.api.ingest_routes import router as ingest_router
from adledger.config import settings
from adledger.core.logging import get_logger
from adledger.database import db_url, init_db, is_sqlite, mask_url, test_connection
from adledger.scheduler.jobs import scheduler, start_scheduler, stop_scheduler

logger = get_logger("main")

VERSION = "1.0.0"

# Serverless platforms freeze the process between requests; no scheduler there
IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Check the database, create tables, run the daily pull scheduler."""
    logger.info(f"🚀 ADLEDGER {VERSION} starting ({'serverless' if IS_SERVERLESS else 'local'})")
    if not test_connection():
        logger.error("❌ Database unreachable; ingest and export requests will fail")
    else:
        try:
            init_db()
        except Exception as e:
            logger.error(f"❌ Table creation failed: {e}")
    if not settings.script_import_key:
        logger.warning("SCRIPT_IMPORT_KEY is not set; /ingest/bulk will answer 500")

    if not IS_SERVERLESS:
        start_scheduler()
    yield
    if not IS_SERVERLESS:
        stop_scheduler()
    logger.info("ADLEDGER shut down")


app = FastAPI(
    title="ADLEDGER",
    description=(
        "Google Ads ingest service. Normalizes CSV exports, script webhooks and "
        "API pulls into idempotent canonical tables with a raw audit trail."
    ),
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(APIError, api_error_handler)

app.include_router(ingest_router)
app.include_router(export_router)
app.include_router(analysis_router)


@app.get("/health", tags=["System"])
async def health_check():
    return {
        "status": "healthy",
        "service": "adledger",
        "version": VERSION,
        "scheduler": "running" if scheduler.running else "off",
        "google_ads_configured": settings.google_ads_configured,
    }


@app.get("/debug/db", tags=["System"])
async def debug_db():
    """Database connectivity and backend, with the password masked."""
    error = None
    connected = False
    try:
        connected = test_connection()
    except Exception as e:
        error = str(e)

    return {
        "connected": connected,
        "backend": "sqlite" if is_sqlite(db_url) else "postgresql",
        "url": mask_url(db_url),
        "environment": "serverless" if IS_SERVERLESS else "local",
        "error": error,
    }
