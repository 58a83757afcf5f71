# WORKFLOW: Code translation tables for the PPRRVU file.
# Used by: etl.decoder to fill the label companion of each coded column
# Domains:
# 1. modifier, status
# 2. PC/TC indicator, global surgery days
# 3. multiple procedure, bilateral, assistant, co-surgeon, team surgery
# 4. physician supervision of diagnostic procedures
# 5. diagnostic imaging family
#
# Labels follow the CMS PFS relative value file documentation. Every lookup is
# total: an unknown, missing or malformed code returns None.

"""
Static code -> label tables for CMS physician fee schedule RVU files.
"""

from types import MappingProxyType
from typing import Any, Mapping, Optional


MODIFIER_LABELS: Mapping[str, str] = MappingProxyType({
    "26": "Professional Component",
    "TC": "Technical Component",
    "53": "Discontinued Procedure",
})

STATUS_LABELS: Mapping[str, str] = MappingProxyType({
    "A": "Active",
    "B": "Bundled",
    "C": "Contractors Price the Code",
    "D": "Deleted",
    "E": "Excluded from PFS by Regulation",
    "F": "Deleted/Discontinued (no grace period)",
    "G": "Not Valid for Medicare",
    "H": "Deleted Modifier",
    "I": "Not Valid for Medicare (no grace period)",
    "J": "Anesthesia Services",
    "M": "Measurement - For Reporting Purposes Only",
    "N": "Non-Covered Services",
    "P": "Bundled/Excluded",
    "R": "Restricted Coverage",
    "T": "Injections",
    "X": "Statutory Exclusion",
})

PCTC_LABELS: Mapping[int, str] = MappingProxyType({
    0: "Physician Service",
    1: "Diagnostic Tests for Radiology Services",
    2: "Professional Component Only",
    3: "Technical Component Only",
    4: "Global Test Only",
    5: "Incident To",
    6: "Laboratory Physician Interpretation",
    7: "Physical Therapy Service",
    8: "Physician Interpretation",
    9: "Not Applicable",
})

_ENDOSCOPIC_MINOR = (
    "Endoscopic/Minor: includes 1 day preoperative, 1 day postoperative, "
    "excludes evaluation and management"
)
_MINOR = "Minor: includes 1 day preoperative, 10 day postoperative"
_MAJOR = "Major: includes 1 day preoperative, 90 day postoperative"

GLOBAL_SURGERY_LABELS: Mapping[str, str] = MappingProxyType({
    "0": _ENDOSCOPIC_MINOR,
    "000": _ENDOSCOPIC_MINOR,
    "10": _MINOR,
    "010": _MINOR,
    "90": _MAJOR,
    "090": _MAJOR,
    "MMM": "Maternity: global period does not apply",
    "XXX": "Not Applicable",
    "YYY": "Determined by Carrier",
    "ZZZ": "Part of Another Service",
})

MULTIPLE_PROCEDURE_LABELS: Mapping[int, str] = MappingProxyType({
    0: "No Adjustment",
    1: "Standard Adjustment Rank 1",
    2: "Standard Adjustment Rank 2",
    3: "Group by Endoscopic Base Code",
    4: "Group by Diagnostic Imaging Code",
    5: "Therapy Service - 50% Practice Expense",
    6: "Diagnostic Cardiovascular Service - 25% Reduction to non-maximum and subsequent",
    7: "Diagnostic Ophthalmology Service - 20% Reduction to non-maximum and subsequent",
    9: "Not Applicable",
})

_BILATERAL_NOT_APPLIED = "Bilateral Adjustment Does Not Apply - See CMS Documents for Details"

BILATERAL_SURGERY_LABELS: Mapping[int, str] = MappingProxyType({
    0: _BILATERAL_NOT_APPLIED,
    1: "150% Bilateral Adjustment",
    2: _BILATERAL_NOT_APPLIED,
    3: _BILATERAL_NOT_APPLIED,
    9: "Not Applicable",
})

ASSISTANT_AT_SURGERY_LABELS: Mapping[int, str] = MappingProxyType({
    0: "Proof of Medical Necessity Required for Assistants at Surgery",
    1: "Statutory Payment Restriction for Assistants at Surgery",
    2: "No Payment Restriction for Assistants at Surgery",
    9: "Not Applicable",
})

COSURGEONS_LABELS: Mapping[int, str] = MappingProxyType({
    0: "Co-surgeons Not Permitted",
    1: "Proof of Medical Necessity Required for Co-surgeons",
    2: "Co-surgeons Permitted",
    9: "Not Applicable",
})

TEAM_SURGERY_LABELS: Mapping[int, str] = MappingProxyType({
    0: "Team Surgeons Not Permitted",
    1: "Proof of Medical Necessity Required for Team Surgeons",
    2: "Team Surgeons Permitted",
    9: "Not Applicable",
})

_GENERAL = "General Supervision Required"
_DIRECT = "Direct Supervision Required"
_PERSONAL = "Personal Supervision Required"
_PSYCHOLOGIST = "Not Required for Psychologist - Otherwise General Supervision Required"
_AUDIOLOGIST = "Not Required for Audiologist - Otherwise General Supervision Required"
_ABPTS = "Must Be Performed by ABPTS Electrophysiological Specialist PT or Physician"

PHYSICIAN_SUPERVISION_LABELS: Mapping[str, str] = MappingProxyType({
    "1": _GENERAL,
    "01": _GENERAL,
    "2": _DIRECT,
    "02": _DIRECT,
    "3": _PERSONAL,
    "03": _PERSONAL,
    "4": _PSYCHOLOGIST,
    "04": _PSYCHOLOGIST,
    "5": _AUDIOLOGIST,
    "05": _AUDIOLOGIST,
    "6": _ABPTS,
    "06": _ABPTS,
    "21": "General Required for Technician - Otherwise Direct Supervision Required",
    "22": "May Be Performed by Technician with Online Real-Time Contact with Physician",
    "66": "May Be Performed by Physician or PT with Appropriate ABPTS Certification",
    "6A": "Extension of Code 66 - Additionally Certified PT may Supervise Another PT",
    "77": (
        "May Be Performed by: PT with ABPTS Certification, PT Under Direct Physician "
        "Supervision, Technician with Certification under General Supervision"
    ),
    "7A": "Extension of Code 77 - Additionally Certified PT may Supervise Another PT",
    "09": "Not Applicable",
})

DIAGNOSTIC_IMAGING_FAMILY_LABELS: Mapping[int, str] = MappingProxyType({
    1: "Ultrasound (Chest/Abdomen/Pelvis-Non-Obstetrical)",
    2: "CT and CTA (Chest/Thorax/Abd/Pelvis)",
    3: "CT and CTA (Head/Brain/Orbit/Maxillofacial/Neck)",
    4: "MRI and MRA (Chest/Abd/Pelvis)",
    5: "MRI and MRA (Head/Brain/Neck)",
    6: "MRI and MRA (Spine)",
    7: "CT (Spine)",
    8: "MRI and MRA (Lower Extremities)",
    9: "CT and CTA (Lower Extremities)",
    10: "MR and MRI (Upper Extremities and Joints)",
    11: "CT and CTA (Upper Extremities)",
    88: "Subject to Reduction of TC after 2011-01-01 and PC 2012-01-01",
    99: "Not Applicable",
})


def _lookup_str(table: Mapping[str, str], code: Any) -> Optional[str]:
    if not isinstance(code, str):
        return None
    return table.get(code.strip())


def _lookup_int(table: Mapping[int, str], code: Any) -> Optional[str]:
    # bool is an int subclass but never a valid code
    if isinstance(code, bool):
        return None
    if isinstance(code, str):
        code = code.strip()
        if not code.isascii() or not code.isdigit():
            return None
        code = int(code)
    if not isinstance(code, int):
        return None
    return table.get(code)


def to_modifier(code: Any) -> Optional[str]:
    return _lookup_str(MODIFIER_LABELS, code)


def to_status(code: Any) -> Optional[str]:
    return _lookup_str(STATUS_LABELS, code)


def to_pctc(code: Any) -> Optional[str]:
    return _lookup_int(PCTC_LABELS, code)


def to_global_surgery(code: Any) -> Optional[str]:
    return _lookup_str(GLOBAL_SURGERY_LABELS, code)


def to_multiple_procedure(code: Any) -> Optional[str]:
    return _lookup_int(MULTIPLE_PROCEDURE_LABELS, code)


def to_bilateral_surgery(code: Any) -> Optional[str]:
    return _lookup_int(BILATERAL_SURGERY_LABELS, code)


def to_assistant_at_surgery(code: Any) -> Optional[str]:
    return _lookup_int(ASSISTANT_AT_SURGERY_LABELS, code)


def to_cosurgeons(code: Any) -> Optional[str]:
    return _lookup_int(COSURGEONS_LABELS, code)


def to_team_surgery(code: Any) -> Optional[str]:
    return _lookup_int(TEAM_SURGERY_LABELS, code)


def to_physician_supervision(code: Any) -> Optional[str]:
    return _lookup_str(PHYSICIAN_SUPERVISION_LABELS, code)


def to_diagnostic_imaging_family(code: Any) -> Optional[str]:
    return _lookup_int(DIAGNOSTIC_IMAGING_FAMILY_LABELS, code)
