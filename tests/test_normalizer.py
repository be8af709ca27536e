from datetime import date, datetime

import pytest

from adledger.ingest.normalizer import (
    RowFields,
    normalize_key,
    parse_date,
    parse_number,
    resolve_field,
    round_count,
)


def test_normalize_key_folds_case_accents_and_punctuation():
    assert normalize_key("Impressões") == "impressoes"
    assert normalize_key("Campaign ID") == normalize_key("campaign_id") == "campaign id"
    assert normalize_key("  Conv. value ") == "conv value"
    assert normalize_key(None) == ""


def test_resolve_field_picks_first_candidate_with_value():
    row = {"Campaign ID": "  ", "campaignId": "42", "Campanha": " Marca "}
    assert resolve_field(row, ["campaign_id", "campaignId"]) == "42"
    assert resolve_field(row, ["campaign_name", "campanha"]) == "Marca"
    assert resolve_field(row, ["missing"]) is None


def test_row_fields_first_folded_header_wins():
    fields = RowFields({"Cost": "1", "cost": "2"})
    assert fields.resolve(["COST"]) == "1"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1.234,56", 1234.56),
        ("1,234.56", 1234.56),
        ("45,5%", 45.5),
        ("R$ 1.000,00", 1000.0),
        ("R$\u00a01.000,00", 1000.0),
        ("USD 12.5", 12.5),
        ("€3,20", 3.2),
        ("1000", 1000.0),
        ("-2,5", -2.5),
        (7, 7.0),
        (0.25, 0.25),
    ],
)
def test_parse_number_locales(raw, expected):
    assert parse_number(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [None, "", "--", "abc", True, float("nan"), float("inf")])
def test_parse_number_unresolvable(raw):
    assert parse_number(raw) is None


def test_parse_date_formats():
    assert parse_date("05/03/2025") == "2025-03-05"
    assert parse_date("5-3-2025") == "2025-03-05"
    assert parse_date("2025-03-05") == "2025-03-05"
    assert parse_date(date(2025, 3, 5)) == "2025-03-05"
    assert parse_date(datetime(2025, 3, 5, 10, 30)) == "2025-03-05"


@pytest.mark.parametrize("raw", ["13/13/2025", "31/02/2025", "2025/03/05", "Mar 5, 2025", "", None])
def test_parse_date_rejects_invalid(raw):
    assert parse_date(raw) is None


def test_round_count_is_half_up():
    assert round_count(2.5) == 3
    assert round_count(3.5) == 4
    assert round_count(2.49) == 2
    assert round_count(0.0) == 0
