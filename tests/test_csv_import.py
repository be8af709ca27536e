import pytest
from sqlmodel import select

from adledger.ingest.csv_import import import_csv_file, infer_dataset, resolve_apply_mode
from adledger.ingest.decoder import DecodeError
from adledger.models.activity_models import ActivityLogEntry
from adledger.models.canonical_models import Dataset, GoogleAdsKeyword, GoogleAdsMetric
from adledger.models.raw_models import RawImport, RawImportRow

from conftest import CLIENT_ID

METRICS_CSV = (
    "\ufeffCampanha;ID da campanha;Dia;Impr.;Cliques;Custo;Conversões\r\n"
    '"Marca; Institucional";111;05/01/2025;1000;40;R$ 1.234,56;4\r\n'
    "Genérica;222;05/01/2025;500;10;R$ 80,00;0\r\n"
    ";;;;;;\r\n"
)

KEYWORD_CSV = (
    "Campaign ID,Campaign,Ad group ID,Keyword,Match type,Impr.,Clicks,Cost\n"
    "111,Brand,10,heat pump,EXACT,300,30,45.00\n"
    "111,Brand,10,heat pump installer,PHRASE,120,6,9.00\n"
)


def _write(tmp_path, name, text, encoding="utf-8"):
    path = tmp_path / name
    path.write_bytes(text.encode(encoding))
    return path


def test_infer_dataset_from_headers():
    assert infer_dataset(["Campaign", "Search keyword", "Cost"]) == Dataset.KEYWORDS
    assert infer_dataset(["Campanha", "Palavra-chave"]) == Dataset.KEYWORDS
    assert infer_dataset(["Campaign", "Impr."]) == Dataset.METRICS


def test_unknown_apply_mode_falls_back_to_none():
    assert resolve_apply_mode("KEYWORDS ") == "keywords"
    assert resolve_apply_mode("everything") == "none"
    assert resolve_apply_mode(None) == "none"


def test_import_metrics_csv_pt_br(tmp_path, store, session):
    path = _write(tmp_path, "campanhas.csv", METRICS_CSV)
    outcome = import_csv_file(path, CLIENT_ID, store, report_name="Campanhas", apply_to="metrics")

    assert outcome.ok
    assert outcome.apply_summary["metrics"] == {
        "received": 2,
        "mapped": 2,
        "upserted": 2,
        "skipped": 0,
    }
    metrics = {m.campaign_id: m for m in session.exec(select(GoogleAdsMetric)).all()}
    brand = metrics["111"]
    assert brand.campaign_name == "Marca; Institucional"
    assert brand.date_range_start == "2025-01-05"
    assert brand.cost == pytest.approx(1234.56)
    assert brand.impressions == 1000
    assert brand.ctr == pytest.approx(0.04)

    raw_import = session.get(RawImport, outcome.import_id)
    assert raw_import.source == "ui-csv"
    assert raw_import.encoding == "utf8-bom"
    assert raw_import.delimiter == ";"
    assert raw_import.file_name == "campanhas.csv"
    assert raw_import.row_count == 2
    assert raw_import.headers[0] == "Campanha"

    rows = session.exec(select(RawImportRow).order_by(RawImportRow.row_index)).all()
    # CSV rows are stored verbatim, without a dataset tag
    assert rows[0].row_json["Campanha"] == "Marca; Institucional"
    assert "__kind" not in rows[0].row_json

    (entry,) = session.exec(select(ActivityLogEntry)).all()
    assert entry.action == "csv_sync"


def test_auto_mode_picks_keywords(tmp_path, store, session):
    path = _write(tmp_path, "keywords.csv", KEYWORD_CSV)
    outcome = import_csv_file(
        path, CLIENT_ID, store, start="2025-01-01", end="2025-01-31", apply_to="auto"
    )

    assert outcome.ok
    assert outcome.applied_tables == ["google_ads_keywords"]
    keywords = session.exec(select(GoogleAdsKeyword)).all()
    assert {k.match_type for k in keywords} == {"EXACT", "PHRASE"}
    assert session.exec(select(GoogleAdsMetric)).all() == []


def test_none_mode_stores_raw_rows_only(tmp_path, store, session):
    path = _write(tmp_path, "keywords.csv", KEYWORD_CSV, encoding="utf-16")
    outcome = import_csv_file(path, CLIENT_ID, store)

    assert outcome.ok
    assert outcome.applied_tables == []
    assert len(session.exec(select(RawImportRow)).all()) == 2
    assert session.exec(select(GoogleAdsKeyword)).all() == []
    assert session.get(RawImport, outcome.import_id).encoding == "utf16le-bom"


def test_decode_error_creates_no_import(tmp_path, store, session):
    path = _write(tmp_path, "empty.csv", "\n\n")
    with pytest.raises(DecodeError):
        import_csv_file(path, CLIENT_ID, store, apply_to="auto")
    assert session.exec(select(RawImport)).all() == []
