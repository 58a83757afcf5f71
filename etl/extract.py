# WORKFLOW: Turn the PPRRVU member's bytes into data rows.
# Used by: etl.pipeline between etl.archive and etl.decoder
# Functions:
# 1. normalize_text() - decode bytes, drop NULs and invalid UTF-8, unify line endings
# 2. read_rows() - CSV tokenization of the normalized text
# 3. find_header() - locate the header row inside the scan window
# 4. extract_rows() - everything after the header, blank rows dropped
#
# The published CSVs open with a title block of variable length and have mixed
# CR / CRLF / LF line endings across releases.

"""
Tabular extraction for CMS PPRRVU CSV files.
"""

import csv
import io
import logging
from typing import List, Sequence

from etl.errors import ExtractError, HeaderNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_HEADER_SENTINEL = "HCPCS"
DEFAULT_HEADER_SCAN_LIMIT = 20


def normalize_text(content: bytes) -> str:
    """
    Decode member bytes and normalize line terminators.

    Invalid UTF-8 sequences and NUL bytes are dropped. Every carriage return is
    a row terminator: CRLF counts once, a bare CR becomes LF.
    """
    text = content.replace(b"\x00", b"").decode("utf-8-sig", errors="ignore")
    return text.replace("\r\n", "\n").replace("\r", "\n")


def read_rows(text: str) -> List[List[str]]:
    """
    Tokenize normalized text as CSV.

    Raises:
        ExtractError: If the csv module rejects the input (oversized field,
            runaway quoting)
    """
    reader = csv.reader(io.StringIO(text, newline=""))
    try:
        return list(reader)
    except csv.Error as e:
        raise ExtractError(f"Cannot tokenize CSV near line {reader.line_num}: {e}") from e


def _is_blank(row: Sequence[str]) -> bool:
    return all(not cell.strip() for cell in row)


def find_header(
    rows: Sequence[Sequence[str]],
    sentinel: str = DEFAULT_HEADER_SENTINEL,
    scan_limit: int = DEFAULT_HEADER_SCAN_LIMIT,
) -> int:
    """
    Find the index of the header row.

    Args:
        rows: Tokenized rows of the file
        sentinel: Expected first cell of the header row, compared case-insensitively
        scan_limit: Number of leading rows to examine

    Returns:
        Index of the header row within ``rows``

    Raises:
        HeaderNotFoundError: If the sentinel is not within the first ``scan_limit`` rows
    """
    wanted = sentinel.strip().casefold()
    for index, row in enumerate(rows[:scan_limit]):
        if row and row[0].strip().casefold() == wanted:
            return index

    raise HeaderNotFoundError(
        f"Header row starting with {sentinel!r} not found in first {scan_limit} rows"
    )


def extract_rows(
    content: bytes,
    sentinel: str = DEFAULT_HEADER_SENTINEL,
    scan_limit: int = DEFAULT_HEADER_SCAN_LIMIT,
) -> List[List[str]]:
    """
    Extract data rows from a PPRRVU CSV member.

    Args:
        content: Member bytes as stored in the archive
        sentinel: First cell of the header row
        scan_limit: Number of leading rows searched for the header

    Returns:
        Data rows following the header; fully blank rows removed. Short rows are
        kept so the decoder can report them.

    Raises:
        HeaderNotFoundError: If no header row is found in the scan window
        ExtractError: If the content cannot be tokenized as CSV
    """
    rows = read_rows(normalize_text(content))
    header_index = find_header(rows, sentinel, scan_limit)

    if header_index:
        logger.debug(f"Skipped {header_index} preamble rows before header")

    data_rows = [row for row in rows[header_index + 1:] if not _is_blank(row)]
    logger.info(f"Extracted {len(data_rows)} data rows")
    return data_rows
