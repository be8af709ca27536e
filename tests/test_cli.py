from adledger import cli

from conftest import CLIENT_ID


def _patch_db(monkeypatch, session):
    def fake_session():
        yield session

    monkeypatch.setattr(cli, "get_session", fake_session)
    monkeypatch.setattr(cli, "init_db", lambda: None)


def test_import_then_export_round(tmp_path, session, monkeypatch, capsys):
    _patch_db(monkeypatch, session)
    report = tmp_path / "report.csv"
    report.write_text(
        "Campaign ID,Campaign,Day,Impr.,Clicks,Cost\n111,Brand,2025-01-05,200,10,12.50\n",
        encoding="utf-8",
    )

    code = cli.main(
        ["import-csv", "--client-id", CLIENT_ID, "--file", str(report), "--apply-to", "metrics"]
    )
    assert code == 0
    assert '"ok": true' in capsys.readouterr().out

    out_dir = tmp_path / "exports"
    code = cli.main(
        ["export-csv", "--client-id", CLIENT_ID, "--out-dir", str(out_dir), "--dataset", "metrics"]
    )
    assert code == 0
    (exported,) = out_dir.glob("google_ads_metrics_*.csv")
    lines = exported.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert lines[1].startswith("111,Brand,")


def test_unreadable_file_exits_with_1(tmp_path, session, monkeypatch, capsys):
    _patch_db(monkeypatch, session)
    empty = tmp_path / "empty.csv"
    empty.write_text("", encoding="utf-8")

    assert cli.main(["import-csv", "--client-id", CLIENT_ID, "--file", str(empty)]) == 1
    assert cli.main(["import-csv", "--client-id", CLIENT_ID, "--file", str(tmp_path / "nope.csv")]) == 1
    assert "Could not" in capsys.readouterr().err
