import pytest

from adledger.ingest.decoder import (
    DecodeError,
    count_unquoted,
    decode_table,
    detect_delimiter,
    detect_encoding,
    parse_csv,
    row_to_record,
)


def test_detect_encoding_labels():
    assert detect_encoding(b"\xef\xbb\xbfa,b")[1] == "utf8-bom"
    assert detect_encoding(b"\xff\xfe" + "a,b".encode("utf-16-le"))[1] == "utf16le-bom"
    assert detect_encoding(b"\xfe\xff" + "a,b".encode("utf-16-be"))[1] == "utf16be-bom"
    assert detect_encoding(b"a,b") == ("a,b", "utf8")


def test_invalid_utf8_raises_decode_error():
    with pytest.raises(DecodeError):
        detect_encoding(b"\xff\xff\xfe")


def test_delimiter_ignores_quoted_content():
    # Three commas inside quotes, two real semicolons
    assert detect_delimiter('"a,b,c,d";x;y\n1;2;3') == ";"
    assert count_unquoted('"a;""b"";c",d', ";") == 0


def test_delimiter_tie_keeps_comma_and_defaults_to_comma():
    assert detect_delimiter("a,b;c\n") == ","
    assert detect_delimiter("single\n") == ","


def test_quoted_field_keeps_comma_newline_and_quote():
    text = 'name,notes\r\n"Brand","one, two\nthree ""quoted"""\r\n'
    rows = parse_csv(text, ",")
    assert rows == [["name", "notes"], ["Brand", 'one, two\nthree "quoted"']]


def test_blank_rows_are_dropped():
    rows = parse_csv("a,b\n1,2\n , \n\n", ",")
    assert rows == [["a", "b"], ["1", "2"]]


def test_bom_semicolon_matches_plain_comma():
    plain = decode_table(b"Campaign,Cost\nBrand,10\nGeneric,20\n")
    bom = decode_table(b"\xef\xbb\xbfCampaign;Cost\r\nBrand;10\r\nGeneric;20\r\n")
    assert bom.encoding == "utf8-bom"
    assert bom.delimiter == ";"
    assert plain.headers == bom.headers
    assert plain.rows == bom.rows


def test_utf16_tab_export():
    data = b"\xff\xfe" + "Campanha\tCusto\nMarca\t1.234,56\n".encode("utf-16-le")
    table = decode_table(data)
    assert table.encoding == "utf16le-bom"
    assert table.delimiter_label == "TAB"
    assert table.headers == ["Campanha", "Custo"]
    assert table.rows == [["Marca", "1.234,56"]]


def test_headers_are_trimmed():
    table = decode_table(b" Campaign , Cost \nA,1\n")
    assert table.headers == ["Campaign", "Cost"]


@pytest.mark.parametrize("data", [b"", b"\n\n", b" , ,\n"])
def test_empty_inputs_raise(data):
    with pytest.raises(DecodeError):
        decode_table(data)


def test_row_to_record_fills_missing_and_names_blank_headers():
    record = row_to_record(["Campaign", "", "Cost"], ["Brand", "x"])
    assert record == {"Campaign": "Brand", "col_2": "x", "Cost": ""}


def test_quote_inside_unquoted_field_opens_quoting():
    table = decode_table(b'a,b\nx"y,z"w,end\n')
    assert table.rows == [["xy,zw", "end"]]


def test_unicode_line_separators_stay_in_header_line():
    # U+2028 is not a row break, so the commas after it count
    assert detect_delimiter(";x\u2028a,b,c\n1,2,3") == ","
    table = decode_table("Campaign\u2028Name,Cost\nBrand,1\n".encode("utf-8"))
    assert table.headers == ["Campaign\u2028Name", "Cost"]


def test_bare_cr_ends_rows():
    assert parse_csv("a,b\r1,2\r", ",") == [["a", "b"], ["1", "2"]]
