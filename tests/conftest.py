# WORKFLOW: Shared fixtures for the RVU ingest test suite.
# Used by: every test module under tests/
# Fixtures:
# 1. office_visit_row - a complete PPRRVU data row
# 2. make_csv - build PPRRVU CSV bytes with a title block
# 3. make_zip - build an in-memory zip archive
# 4. sqlite_engine / session_factory - throwaway SQLite database with the rvu table

import csv
import io
import zipfile
from datetime import date
from typing import Dict, List, Optional, Sequence

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from db.session import ensure_rvu_table

PPRRVU_HEADER = [
    "HCPCS", "MOD", "DESCRIPTION", "STATUS CODE", "NOT USED FOR MEDICARE PAYMENT",
    "WORK RVU", "NON-FAC PE RVU", "NON-FAC NA INDICATOR", "FACILITY PE RVU",
    "FACILITY NA INDICATOR", "MP RVU", "NON-FACILITY TOTAL", "FACILITY TOTAL",
    "PCTC IND", "GLOB DAYS", "PRE OP", "INTRA OP", "POST OP", "MULT PROC",
    "BILAT SURG", "ASST SURG", "CO-SURG", "TEAM SURG", "ENDO BASE", "CONV FACTOR",
    "PHYSICIAN SUPERVISION OF DIAGNOSTIC PROCEDURES", "CALCULATION FLAG",
    "DIAGNOSTIC IMAGING FAMILY INDICATOR", "NON-FACILITY PE USED FOR OPPS PAYMENT AMOUNT",
    "FACILITY PE USED FOR OPPS PAYMENT AMOUNT", "MP USED FOR OPPS PAYMENT AMOUNT",
]

TITLE_BLOCK = [
    ["2024 National Physician Fee Schedule Relative Value File January Release"],
    [],
    ["CPT codes and descriptions only are copyright 2023 American Medical Association."],
    [],
    ["", "", "", "", "", "", "", "", "", "", "", "", "", "", "", "", "", "", "", "", "", "", "", "", "CONV"],
    [],
]

EFFECTIVE = date(2024, 1, 1)


def build_row(**overrides) -> List[str]:
    """A 31-column data row; overrides are keyed by column position, e.g. c3="B"."""
    row = [
        "99213", "", "Office visit", "A", "", "1.30", "2.11", "", "1.50", "", "0.10",
        "3.51", "2.90", "0", "XXX", "0.00", "0.00", "0.00", "0", "0", "2", "0", "0",
        "", "32.7442", "09", "", "99", "0.00", "0.00", "0.00",
    ]
    for key, value in overrides.items():
        row[int(key[1:])] = value
    return row


@pytest.fixture
def office_visit_row():
    return [
        "99213", "", "Office visit", "A", "", 0, "2.11", "1.50", "", "0.80", "", "4.41", "", 0,
        "000", "0", "0", "0", 0, 0, 0, 0, 0, "", "1.0", "01", "", 0, 0, 0, 0, 0, 0,
    ]


def csv_bytes(rows: Sequence[Sequence[str]], line_terminator: str = "\r\n") -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator=line_terminator)
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue().encode("utf-8")


@pytest.fixture
def make_csv():
    def _make_csv(
        data_rows: Sequence[Sequence[str]],
        preamble: Optional[Sequence[Sequence[str]]] = None,
        line_terminator: str = "\r\n",
    ) -> bytes:
        preamble = TITLE_BLOCK if preamble is None else preamble
        return csv_bytes([*preamble, PPRRVU_HEADER, *data_rows], line_terminator)
    return _make_csv


@pytest.fixture
def make_zip():
    def _make_zip(members: Dict[str, bytes]) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for name, content in members.items():
                archive.writestr(name, content)
        return buffer.getvalue()
    return _make_zip


@pytest.fixture
def sqlite_engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'rvu.db'}", connect_args={"check_same_thread": False})
    ensure_rvu_table(engine, "cmsrvu", "rvu")
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine):
    return sessionmaker(bind=sqlite_engine, autocommit=False, autoflush=False)


@pytest.fixture
def make_row():
    return build_row
