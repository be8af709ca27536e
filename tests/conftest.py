import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import adledger.models.activity_models  # noqa: F401
import adledger.models.canonical_models  # noqa: F401
import adledger.models.raw_models  # noqa: F401
from adledger.config import settings
from adledger.database import get_session
from adledger.ingest.storage import SQLModelStore

CLIENT_ID = "3f2b8c1e-9a4d-4c6e-8b1f-2d7a5e9c0b14"
OTHER_CLIENT_ID = "a1b2c3d4-e5f6-4a7b-8c9d-0e1f2a3b4c5d"
IMPORT_KEY = "script-secret"
EXPORT_TOKEN = "agency-token"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def store(session):
    return SQLModelStore(session)


@pytest.fixture
def api(engine, monkeypatch):
    from adledger.main import app

    def _session():
        with Session(engine) as session:
            yield session

    monkeypatch.setattr(settings, "script_import_key", IMPORT_KEY)
    monkeypatch.setattr(settings, "export_tokens", {EXPORT_TOKEN: [CLIENT_ID]})
    app.dependency_overrides[get_session] = _session
    yield TestClient(app)
    app.dependency_overrides.clear()
