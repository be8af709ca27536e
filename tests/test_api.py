import csv
import io
import zipfile

from sqlmodel import select

from adledger.export.csv_export import EXPORT_COLUMNS
from adledger.models.canonical_models import Dataset, GoogleAdsMetric

from conftest import CLIENT_ID, EXPORT_TOKEN, IMPORT_KEY, OTHER_CLIENT_ID

E2E_PAYLOAD = {
    "clientId": CLIENT_ID,
    "start": "2025-01-01",
    "end": "2025-01-31",
    "scriptName": "daily-export",
    "metricsRows": [
        {
            "campaign_id": "1",
            "campaign_name": "Brand",
            "impressions": "1000",
            "clicks": "50",
            "cost": "100,00",
            "conversions": "5",
            "conversion_value": "500",
        }
    ],
}


def _post(api, payload, key=IMPORT_KEY):
    headers = {"x-import-key": key} if key is not None else {}
    return api.post("/ingest/bulk", json=payload, headers=headers)


def _auth(token=EXPORT_TOKEN):
    return {"Authorization": f"Bearer {token}"}


# ── Bulk ingest ──


def test_health(api):
    assert api.get("/health").json()["status"] == "healthy"


def test_bulk_requires_import_key(api):
    resp = _post(api, E2E_PAYLOAD, key=None)
    assert resp.status_code == 401
    assert resp.json()["code"] == "IMPORT_KEY_REQUIRED"


def test_bulk_rejects_wrong_import_key(api):
    resp = _post(api, E2E_PAYLOAD, key="nope")
    assert resp.status_code == 403
    assert resp.json()["code"] == "IMPORT_KEY_INVALID"


def test_bulk_without_server_key_is_500(api, monkeypatch):
    from adledger.config import settings

    monkeypatch.setattr(settings, "script_import_key", "")
    resp = _post(api, E2E_PAYLOAD)
    assert resp.status_code == 500
    assert resp.json()["code"] == "IMPORT_KEY_MISSING_ON_SERVER"


def test_bulk_end_to_end(api):
    resp = _post(api, E2E_PAYLOAD)
    body = resp.json()

    assert resp.status_code == 200
    assert body["ok"] is True
    assert body["importId"]
    assert body["appliedAt"]
    assert body["appliedTables"] == ["google_ads_metrics"]
    assert body["applySummary"]["metrics"] == {
        "received": 1,
        "mapped": 1,
        "upserted": 1,
        "skipped": 0,
    }


def test_bulk_validation_codes(api):
    resp = _post(api, {**E2E_PAYLOAD, "clientId": "abc"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "CLIENT_ID_REQUIRED"

    resp = _post(api, {"clientId": CLIENT_ID, "metricsRows": "not-a-list", "adsRows": [1, "x"]})
    assert resp.status_code == 400
    assert resp.json()["code"] == "NO_ROWS"


def test_bulk_non_object_body_is_client_id_required(api):
    for body in ([], "text", 42, None):
        resp = _post(api, body)
        assert resp.status_code == 400
        assert resp.json()["code"] == "CLIENT_ID_REQUIRED"


def test_bulk_fallback_dates_share_one_natural_key(api, session):
    _post(api, E2E_PAYLOAD)
    resp = _post(api, {**E2E_PAYLOAD, "start": "01/01/2025", "end": "31/01/2025"})
    assert resp.json()["applySummary"]["metrics"]["upserted"] == 1

    resp = _post(api, {**E2E_PAYLOAD, "start": "garbage", "end": "nope"})
    body = resp.json()
    assert body["applySummary"]["metrics"]["skipped"] == 1
    assert body["applySummary"]["warnings"]

    (metric,) = session.exec(select(GoogleAdsMetric)).all()
    assert (metric.date_range_start, metric.date_range_end) == ("2025-01-01", "2025-01-31")


# ── Exports ──


def test_export_requires_known_token(api):
    resp = api.get("/exports/metrics.csv", params={"clientId": CLIENT_ID})
    assert resp.status_code == 401

    resp = api.get(
        "/exports/metrics.csv", params={"clientId": CLIENT_ID}, headers=_auth("other")
    )
    assert resp.status_code == 401


def test_export_rejects_unowned_client(api):
    resp = api.get(
        "/exports/metrics.csv", params={"clientId": OTHER_CLIENT_ID}, headers=_auth()
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "FORBIDDEN"


def test_export_metrics_csv_column_order(api):
    _post(api, E2E_PAYLOAD)
    resp = api.get("/exports/metrics.csv", params={"clientId": CLIENT_ID}, headers=_auth())

    assert resp.status_code == 200
    rows = list(csv.reader(io.StringIO(resp.text)))
    assert tuple(rows[0]) == EXPORT_COLUMNS[Dataset.METRICS]
    assert len(rows) == 2
    record = dict(zip(rows[0], rows[1]))
    assert record["campaign_id"] == "1"
    assert float(record["ctr"]) == 0.05
    assert record["client_id"] == CLIENT_ID


def test_export_bundle_zip(api):
    _post(api, E2E_PAYLOAD)
    resp = api.get("/exports/bundle.zip", params={"clientId": CLIENT_ID}, headers=_auth())

    assert resp.status_code == 200
    archive = zipfile.ZipFile(io.BytesIO(resp.content))
    names = archive.namelist()
    assert len(names) == len(Dataset)
    metrics_name = next(n for n in names if n.startswith("google_ads_metrics_"))
    assert archive.read(metrics_name).decode("utf-8").count("\n") == 2


def test_keyword_analysis_endpoint(api):
    payload = {
        "clientId": CLIENT_ID,
        "start": "2025-01-01",
        "end": "2025-01-31",
        "keywordsRows": [
            {
                "campaign_id": "1",
                "ad_group_id": "10",
                "keyword_text": "cheap heat pump",
                "match_type": "BROAD",
                "impressions": "500",
                "clicks": "60",
                "cost": "120",
                "conversions": "0",
            }
        ],
    }
    assert _post(api, payload).status_code == 200

    resp = api.get("/analysis/keywords", params={"clientId": CLIENT_ID}, headers=_auth())
    body = resp.json()
    assert resp.status_code == 200
    assert body["summary"]["wasteful"] == 1
    assert body["wasteful"][0]["keyword_text"] == "cheap heat pump"
