# WORKFLOW: Pydantic models for decoded RVU rows and their provenance.
# Used by: etl.decoder (construction), etl.id_hash (key assignment), etl.load, etl.export
# Models:
# 1. Provenance - where and when an archive was fetched, and the period it covers
# 2. RelativeValueUnit - one normalized PPRRVU row
#
# Records are frozen. The identity key is attached by etl.id_hash.assign_id_hash,
# which returns a copy rather than mutating the instance.

"""
Normalized record models for CMS physician fee schedule RVU files.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Provenance(BaseModel):
    """Metadata attached to every record decoded from one archive."""
    model_config = ConfigDict(frozen=True)

    source: str = Field(..., description="URL the archive was retrieved from")
    extract_time: Optional[datetime] = Field(None, description="Time the archive was retrieved")
    last_modified: Optional[datetime] = Field(None, description="Last-Modified timestamp declared by the publisher")
    effective_date: Optional[date] = Field(None, description="Start of the period the data applies to")


class RelativeValueUnit(BaseModel):
    """
    One expanded line from a CMS PPRRVU file.

    Coded columns are kept under ``*_code`` (or ``*_indicator``) names and paired
    with a label field resolved from etl.code_tables. Numeric columns are None
    when the source cell is blank or unparseable.
    """
    model_config = ConfigDict(frozen=True)

    # provenance
    source: str = ""
    extract_time: Optional[datetime] = None
    last_modified: Optional[datetime] = None
    effective_date: Optional[date] = None
    id_hash: Optional[str] = None

    hcpcs: str = ""
    modifier_code: Optional[str] = None
    modifier: Optional[str] = None
    description: Optional[str] = None
    status_code: Optional[str] = None
    status: Optional[str] = None
    not_used_for_medicare_payment: bool = False

    wrvu: Optional[float] = None
    nonfacility_pervu: Optional[float] = None
    nonfacility_na_indicator: bool = False
    facility_pervu: Optional[float] = None
    facility_na_indicator: bool = False
    malpractice_rvu: Optional[float] = None
    total_nonfacility_rvu: Optional[float] = None
    total_facility_rvu: Optional[float] = None

    pctc_indicator: Optional[int] = None
    pctc: Optional[str] = None
    global_surgery_code: Optional[str] = None
    global_surgery: Optional[str] = None
    preoperative_percentage: Optional[float] = None
    intraoperative_percentage: Optional[float] = None
    postoperative_percentage: Optional[float] = None

    multiple_procedure_code: Optional[int] = None
    multiple_procedure: Optional[str] = None
    bilateral_surgery_code: Optional[int] = None
    bilateral_surgery: Optional[str] = None
    assistant_at_surgery_code: Optional[int] = None
    assistant_at_surgery: Optional[str] = None
    cosurgeons_code: Optional[int] = None
    cosurgeons: Optional[str] = None
    team_surgery_code: Optional[int] = None
    team_surgery: Optional[str] = None

    endoscopic_base_code: Optional[str] = None
    conversion_factor: Optional[float] = None
    physician_supervision_code: Optional[str] = None
    physician_supervision: Optional[str] = None
    calculation_flag: Optional[int] = None
    diagnostic_imaging_family_indicator: Optional[int] = None
    diagnostic_imaging_family: Optional[str] = None

    nonfacility_pe_used_for_opps_payment_amount: Optional[float] = None
    facility_pe_used_for_opps_payment_amount: Optional[float] = None
    malpractice_used_for_opps_payment_amount: Optional[float] = None
