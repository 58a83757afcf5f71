# WORKFLOW: Content identity key for decoded RVU records.
# Used by: etl.pipeline before records are handed to etl.load
# Functions:
# 1. id_hash_payload() - canonical, ordered serialization of the keyed fields
# 2. compute_id_hash() - SHA-256 of that payload
# 3. assign_id_hash() - frozen copy of the record carrying its key
#
# The key covers the effective date and every business field, never fetch-time
# provenance, so re-downloading an archive yields the same keys and the
# insert-or-ignore load becomes a no-op.

"""
Deterministic identity keys for RelativeValueUnit records.
"""

import hashlib
import json
from datetime import date, datetime
from typing import Any, List

from etl.errors import MissingEffectiveDateError
from etl.record import RelativeValueUnit

ID_HASH_VERSION = "rvu-id-v1"

# Changing this tuple changes every key; bump ID_HASH_VERSION with it.
ID_HASH_FIELDS = (
    "effective_date",
    "hcpcs",
    "modifier_code",
    "modifier",
    "description",
    "status_code",
    "status",
    "wrvu",
    "nonfacility_pervu",
    "nonfacility_na_indicator",
    "facility_pervu",
    "facility_na_indicator",
    "malpractice_rvu",
    "total_nonfacility_rvu",
    "total_facility_rvu",
    "pctc_indicator",
    "pctc",
    "global_surgery_code",
    "global_surgery",
    "preoperative_percentage",
    "intraoperative_percentage",
    "postoperative_percentage",
    "multiple_procedure_code",
    "multiple_procedure",
    "bilateral_surgery_code",
    "bilateral_surgery",
    "assistant_at_surgery_code",
    "assistant_at_surgery",
    "cosurgeons_code",
    "cosurgeons",
    "team_surgery_code",
    "team_surgery",
    "endoscopic_base_code",
    "conversion_factor",
    "physician_supervision_code",
    "physician_supervision",
    "calculation_flag",
    "diagnostic_imaging_family_indicator",
    "diagnostic_imaging_family",
    "nonfacility_pe_used_for_opps_payment_amount",
    "facility_pe_used_for_opps_payment_amount",
    "malpractice_used_for_opps_payment_amount",
)


def _canonical(value: Any) -> Any:
    # datetime is a date subclass; both render as ISO-8601 text
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def id_hash_payload(record: RelativeValueUnit) -> str:
    """
    Serialize the keyed fields of a record.

    The payload is compact JSON: the version tag followed by ``[name, value]``
    pairs in ID_HASH_FIELDS order. None is ``null``, floats use their shortest
    round-trip form and dates are ISO-8601.

    Raises:
        MissingEffectiveDateError: If the record has no effective date
    """
    if record.effective_date is None:
        raise MissingEffectiveDateError(
            f"Cannot compute identity key for HCPCS {record.hcpcs!r}: effective_date is not set"
        )

    pairs: List[list] = [[name, _canonical(getattr(record, name))] for name in ID_HASH_FIELDS]
    return json.dumps([ID_HASH_VERSION, pairs], separators=(",", ":"), ensure_ascii=True)


def compute_id_hash(record: RelativeValueUnit) -> str:
    """Return the 64-character hex SHA-256 identity key of a record."""
    payload = id_hash_payload(record)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def assign_id_hash(record: RelativeValueUnit) -> RelativeValueUnit:
    """Return a copy of ``record`` with ``id_hash`` populated."""
    return record.model_copy(update={"id_hash": compute_id_hash(record)})
