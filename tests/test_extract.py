# WORKFLOW: Tests for PPRRVU CSV extraction.
# Test scenarios:
# 1. Title block skipped, data starts right after the header
# 2. Header search window and case-insensitive sentinel
# 3. CR-only / CRLF line endings, BOM, NUL bytes and invalid UTF-8

import pytest

from etl.errors import ArchiveError, ExtractError, HeaderNotFoundError
from etl.extract import extract_rows, find_header, normalize_text, read_rows
from tests.conftest import PPRRVU_HEADER, TITLE_BLOCK, build_row, csv_bytes


def test_title_block_is_skipped(make_csv):
    content = make_csv([build_row(), build_row(c0="99214")])

    rows = read_rows(normalize_text(content))
    assert find_header(rows) == len(TITLE_BLOCK)

    data = extract_rows(content)
    assert [row[0] for row in data] == ["99213", "99214"]
    assert len(data[0]) == len(PPRRVU_HEADER)


def test_header_on_first_row(make_csv):
    data = extract_rows(make_csv([build_row()], preamble=[]))
    assert len(data) == 1


def test_header_outside_scan_window_is_not_found(make_csv):
    preamble = [[f"note {i}"] for i in range(20)]
    content = make_csv([build_row()], preamble=preamble)

    with pytest.raises(HeaderNotFoundError):
        extract_rows(content)

    # a wider window finds it at row 21
    assert len(extract_rows(content, scan_limit=21)) == 1


def test_missing_header_raises():
    content = csv_bytes([["not", "a", "pprrvu"], build_row()])
    with pytest.raises(HeaderNotFoundError) as exc_info:
        extract_rows(content)
    assert "HCPCS" in str(exc_info.value)


def test_sentinel_is_case_insensitive_and_trimmed():
    content = csv_bytes([["  hcpcs ", "MOD"], build_row()])
    assert len(extract_rows(content)) == 1


def test_custom_sentinel():
    content = csv_bytes([["CODE", "MOD"], build_row()])
    assert len(extract_rows(content, sentinel="code")) == 1


def test_carriage_return_only_line_endings(make_csv):
    content = make_csv([build_row(), build_row(c0="99215")], line_terminator="\r")
    data = extract_rows(content)
    assert [row[0] for row in data] == ["99213", "99215"]


def test_mixed_line_endings_count_once():
    text = "Title\r\n\r\nHCPCS,MOD\n" + ",".join(build_row()) + "\r"
    rows = read_rows(normalize_text(text.encode("utf-8")))
    assert find_header(rows) == 2


def test_blank_data_rows_are_dropped(make_csv):
    content = make_csv([build_row(), [], ["", "  ", ""], build_row(c0="99214")])
    data = extract_rows(content)
    assert [row[0] for row in data] == ["99213", "99214"]


def test_short_rows_are_kept_for_the_decoder(make_csv):
    content = make_csv([build_row(), ["Footnote"]])
    data = extract_rows(content)
    assert data[-1] == ["Footnote"]


def test_bom_nul_and_invalid_bytes_are_dropped():
    body = b"HCPCS,MOD\r\n99\x0021\xff3,26\r\n"
    rows = extract_rows(b"\xef\xbb\xbf" + body)
    assert rows == [["99213", "26"]]


def test_oversized_field_raises_extract_error():
    content = csv_bytes([["HCPCS"], build_row(c2="x" * 200000)])
    with pytest.raises(ExtractError) as exc_info:
        extract_rows(content)
    assert isinstance(exc_info.value, ArchiveError)


def test_unbalanced_quote_swallowing_the_file_raises_extract_error():
    body = "HCPCS,MOD\r\n" + '99213,"' + ("filler text " * 20000)
    with pytest.raises(ExtractError):
        extract_rows(body.encode("utf-8"))
