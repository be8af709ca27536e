"""ADLEDGER — Database Engine & Session Factory.

SQLite for local runs and tests, PostgreSQL when DATABASE_URL is set.
"""

from typing import Any, Dict

from sqlalchemy import text
from sqlalchemy.engine import Engine, make_url
from sqlmodel import SQLModel, Session, create_engine

from adledger.config import settings
from adledger.core.logging import get_logger

logger = get_logger("database")

db_url = settings.effective_database_url


def mask_url(url: str) -> str:
    """DB URL with the password hidden, for logs and /debug/db."""
    try:
        return make_url(url).render_as_string(hide_password=True)
    except Exception:
        return "<unparsable database url>"


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def engine_options(url: str) -> Dict[str, Any]:
    if is_sqlite(url):
        # Sessions are used from FastAPI's threadpool and the scheduler loop
        return {"echo": False, "connect_args": {"check_same_thread": False}}
    return {
        "echo": False,
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 300,
    }


def build_engine(url: str) -> Engine:
    backend = "SQLite" if is_sqlite(url) else "PostgreSQL"
    logger.info(f"📦 Database backend: {backend} ({mask_url(url)})")
    return create_engine(url, **engine_options(url))


engine = build_engine(db_url)


def test_connection() -> bool:
    """Run SELECT 1 against the configured database."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("✅ Database connection OK")
        return True
    except Exception as e:
        logger.error(f"❌ Database connection failed: {e}")
        return False


def init_db() -> None:
    """Create raw import, canonical and activity tables if missing."""
    import adledger.models.activity_models  # noqa: F401
    import adledger.models.canonical_models  # noqa: F401
    import adledger.models.raw_models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info(f"✅ {len(SQLModel.metadata.tables)} tables ready")


def get_session():
    """Dependency — yields a DB session."""
    with Session(engine) as session:
        yield session
