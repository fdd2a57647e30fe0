import pytest

from import_engine.csv_parser import decode_rows
from import_engine.errors import DecodeError


def test_rows_keyed_by_stripped_headers():
    """Header whitespace is stripped and rows keep column order."""
    rows = decode_rows(" Name , Priority\nLogin works,High\n")
    assert rows == [{"Name": "Login works", "Priority": "High"}]
    assert list(rows[0]) == ["Name", "Priority"]


def test_bom_and_blank_lines_are_ignored():
    rows = decode_rows(b"\xef\xbb\xbfName\n\nCase A\n\nCase B\n")
    assert [r["Name"] for r in rows] == ["Case A", "Case B"]
    rows = decode_rows("\ufeffName\nCase C\n")
    assert rows == [{"Name": "Case C"}]


def test_custom_delimiter_and_quoted_newlines():
    text = 'Name;Steps\n"Case";"1. Open | Page shown\n2. Click | Done"\n'
    rows = decode_rows(text, delimiter=";")
    assert rows[0]["Steps"] == "1. Open | Page shown\n2. Click | Done"


def test_headerless_rows_use_column_numbers():
    rows = decode_rows("Case A,High\nCase B\n", has_headers=False)
    assert rows == [
        {"Column 1": "Case A", "Column 2": "High"},
        {"Column 1": "Case B", "Column 2": ""},
    ]


def test_unterminated_quote_is_a_decode_error():
    with pytest.raises(DecodeError):
        decode_rows('Name,Description\n"Case A,oops\n')


def test_multi_character_delimiter_is_a_decode_error():
    with pytest.raises(DecodeError):
        decode_rows("Name||Description\nA||B\n", delimiter="||")


def test_empty_file_is_a_decode_error():
    with pytest.raises(DecodeError):
        decode_rows("   \n")


def test_bytes_in_wrong_encoding():
    with pytest.raises(DecodeError):
        decode_rows("Name\nCafé\n".encode("latin-1"), encoding="utf-8")
    rows = decode_rows("Name\nCafé\n".encode("latin-1"), encoding="latin-1")
    assert rows[0]["Name"] == "Café"
