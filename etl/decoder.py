# WORKFLOW: Decode PPRRVU data rows into RelativeValueUnit records.
# Used by: etl.pipeline after etl.extract has located the data rows
# Functions:
# 1. clean_string() / to_optional_str() - encoding noise and whitespace removal
# 2. to_optional_float() / to_optional_int() - lenient numeric parsing
# 3. decode_row() - one row -> one record (or None for trailer rows)
# 4. decode_rows() - whole table, collecting per-row errors
#
# Decode flow: raw cells -> typed values (PPRRVU_COLUMNS) -> code labels -> record
# Unparseable numbers become None; only short rows raise RowDecodeError.

"""
Row decoder for CMS PPRRVU files.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence

from etl import code_tables
from etl.errors import RowDecodeError
from etl.record import Provenance, RelativeValueUnit

logger = logging.getLogger(__name__)

PPRRVU_LAYOUT_VERSION = 1

STRING = "string"
REQUIRED_STRING = "required_string"
FLOAT = "float"
INT = "int"
FLAG = "flag"
NA_FLAG = "na_flag"


class ColumnSpec(NamedTuple):
    position: int
    field: str
    kind: str


PPRRVU_COLUMNS = (
    ColumnSpec(0, "hcpcs", REQUIRED_STRING),
    ColumnSpec(1, "modifier_code", STRING),
    ColumnSpec(2, "description", STRING),
    ColumnSpec(3, "status_code", STRING),
    ColumnSpec(4, "not_used_for_medicare_payment", FLAG),
    ColumnSpec(5, "wrvu", FLOAT),
    ColumnSpec(6, "nonfacility_pervu", FLOAT),
    ColumnSpec(7, "nonfacility_na_indicator", NA_FLAG),
    ColumnSpec(8, "facility_pervu", FLOAT),
    ColumnSpec(9, "facility_na_indicator", NA_FLAG),
    ColumnSpec(10, "malpractice_rvu", FLOAT),
    ColumnSpec(11, "total_nonfacility_rvu", FLOAT),
    ColumnSpec(12, "total_facility_rvu", FLOAT),
    ColumnSpec(13, "pctc_indicator", INT),
    ColumnSpec(14, "global_surgery_code", STRING),
    ColumnSpec(15, "preoperative_percentage", FLOAT),
    ColumnSpec(16, "intraoperative_percentage", FLOAT),
    ColumnSpec(17, "postoperative_percentage", FLOAT),
    ColumnSpec(18, "multiple_procedure_code", INT),
    ColumnSpec(19, "bilateral_surgery_code", INT),
    ColumnSpec(20, "assistant_at_surgery_code", INT),
    ColumnSpec(21, "cosurgeons_code", INT),
    ColumnSpec(22, "team_surgery_code", INT),
    ColumnSpec(23, "endoscopic_base_code", STRING),
    ColumnSpec(24, "conversion_factor", FLOAT),
    ColumnSpec(25, "physician_supervision_code", STRING),
    ColumnSpec(26, "calculation_flag", INT),
    ColumnSpec(27, "diagnostic_imaging_family_indicator", INT),
    ColumnSpec(28, "nonfacility_pe_used_for_opps_payment_amount", FLOAT),
    ColumnSpec(29, "facility_pe_used_for_opps_payment_amount", FLOAT),
    ColumnSpec(30, "malpractice_used_for_opps_payment_amount", FLOAT),
)

REQUIRED_COLUMNS = max(spec.position for spec in PPRRVU_COLUMNS) + 1

# code field -> (label field, translator)
LABELED_FIELDS: Mapping[str, tuple] = {
    "modifier_code": ("modifier", code_tables.to_modifier),
    "status_code": ("status", code_tables.to_status),
    "pctc_indicator": ("pctc", code_tables.to_pctc),
    "global_surgery_code": ("global_surgery", code_tables.to_global_surgery),
    "multiple_procedure_code": ("multiple_procedure", code_tables.to_multiple_procedure),
    "bilateral_surgery_code": ("bilateral_surgery", code_tables.to_bilateral_surgery),
    "assistant_at_surgery_code": ("assistant_at_surgery", code_tables.to_assistant_at_surgery),
    "cosurgeons_code": ("cosurgeons", code_tables.to_cosurgeons),
    "team_surgery_code": ("team_surgery", code_tables.to_team_surgery),
    "physician_supervision_code": ("physician_supervision", code_tables.to_physician_supervision),
    "diagnostic_imaging_family_indicator": ("diagnostic_imaging_family", code_tables.to_diagnostic_imaging_family),
}

_INVALID_TEXT = re.compile("[\ud800-\udfff\ufffd]")
_NON_FLOAT = re.compile(r"[^0-9.]+")
_NON_INT = re.compile(r"[^0-9]+")

# signed 64-bit, the widest integer column the sink stores
INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1


def clean_string(value: Any) -> str:
    """Drop invalid-encoding characters and surrounding whitespace."""
    if value is None:
        return ""
    if not isinstance(value, str):
        value = str(value)
    return _INVALID_TEXT.sub("", value).strip()


def to_optional_str(value: Any) -> Optional[str]:
    cleaned = clean_string(value)
    return cleaned or None


def to_optional_float(value: Any) -> Optional[float]:
    """
    Parse a float leniently.

    Everything but digits and '.' is removed before parsing, so "1.2a3" reads as
    1.23. Blank, unparseable or non-finite input gives None instead of an error.
    """
    cleaned = _NON_FLOAT.sub("", clean_string(value))
    if not cleaned:
        return None
    try:
        parsed = float(cleaned)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def to_optional_int(value: Any) -> Optional[int]:
    """
    Parse an integer leniently.

    All non-digit characters are removed first, including a leading '-'. CMS
    codes are never negative, and downstream consumers rely on this behaviour.
    Values outside the signed 64-bit range give None.
    """
    cleaned = _NON_INT.sub("", clean_string(value))
    if not cleaned:
        return None
    try:
        parsed = int(cleaned)
    except ValueError:
        return None
    return parsed if INT_MIN <= parsed <= INT_MAX else None


_CONVERTERS: Dict[str, Callable[[Any], Any]] = {
    STRING: to_optional_str,
    REQUIRED_STRING: clean_string,
    FLOAT: to_optional_float,
    INT: to_optional_int,
    FLAG: lambda value: clean_string(value) != "",
    NA_FLAG: lambda value: clean_string(value) == "NA",
}


def decode_row(
    row: Sequence[Any],
    provenance: Optional[Provenance] = None,
    row_number: Optional[int] = None,
) -> Optional[RelativeValueUnit]:
    """
    Decode one PPRRVU data row.

    Args:
        row: Cells in file order
        provenance: Source metadata copied onto the record
        row_number: Position of the row in the data section, for error reporting

    Returns:
        A RelativeValueUnit, or None when the row has no status code
        (trailer and footnote lines)

    Raises:
        RowDecodeError: If the row has fewer columns than the layout needs
    """
    if len(row) < REQUIRED_COLUMNS:
        raise RowDecodeError(
            f"Row {row_number if row_number is not None else '?'} has {len(row)} columns, "
            f"expected at least {REQUIRED_COLUMNS}",
            row_number=row_number,
            column_count=len(row),
        )

    values: Dict[str, Any] = {}
    for spec in PPRRVU_COLUMNS:
        values[spec.field] = _CONVERTERS[spec.kind](row[spec.position])

    if values["status_code"] is None:
        return None

    for code_field, (label_field, translate) in LABELED_FIELDS.items():
        values[label_field] = translate(values[code_field])

    if provenance is not None:
        values.update(
            source=provenance.source,
            extract_time=provenance.extract_time,
            last_modified=provenance.last_modified,
            effective_date=provenance.effective_date,
        )

    return RelativeValueUnit(**values)


@dataclass
class DecodeResult:
    """Outcome of decoding every data row of one file."""
    records: List[RelativeValueUnit] = field(default_factory=list)
    skipped: int = 0
    errors: List[RowDecodeError] = field(default_factory=list)


def decode_rows(rows: Sequence[Sequence[Any]], provenance: Optional[Provenance] = None) -> DecodeResult:
    """
    Decode all data rows, collecting structural row errors instead of aborting.

    Args:
        rows: Data rows following the header row
        provenance: Source metadata applied to every record

    Returns:
        DecodeResult with records, skipped row count and row errors
    """
    result = DecodeResult()

    for row_number, row in enumerate(rows, start=1):
        try:
            record = decode_row(row, provenance, row_number=row_number)
        except RowDecodeError as e:
            logger.warning(f"Skipping undecodable row: {e}")
            result.errors.append(e)
            continue

        if record is None:
            result.skipped += 1
            continue

        result.records.append(record)

    logger.info(
        f"Decoded {len(result.records)} records "
        f"({result.skipped} skipped, {len(result.errors)} errors)"
    )
    return result
