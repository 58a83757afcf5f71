# WORKFLOW: Database model for loaded RVU records.
# Used by: db.session (table creation), etl.load (insert-or-ignore batches)
# Models represent:
# 1. rvu - one row per decoded PPRRVU line and effective date, keyed by _id_hash
#
# Provenance columns are prefixed with an underscore. The declarative model fixes
# the columns; get_rvu_table() places a copy in whatever schema/table the caller
# targets.

from functools import lru_cache
from typing import Optional

from sqlalchemy import BigInteger, Boolean, Column, Date, DateTime, Float, Index, MetaData, String, Table, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class RelativeValueUnitRow(Base):
    __tablename__ = "rvu"

    # Provenance
    id_hash = Column("_id_hash", String(64), key="id_hash", primary_key=True)
    source = Column("_source", Text, key="source", nullable=False)
    extract_time = Column("_extract_time", DateTime(timezone=True), key="extract_time", nullable=True)
    last_modified = Column("_last_modified", DateTime(timezone=True), key="last_modified", nullable=True)
    effective_date = Column("_effective_date", Date, key="effective_date", nullable=False)

    hcpcs = Column(Text, nullable=False)
    modifier_code = Column(Text, nullable=True)
    modifier = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    status_code = Column(Text, nullable=True)
    status = Column(Text, nullable=True)
    not_used_for_medicare_payment = Column(Boolean, default=False)

    wrvu = Column(Float, nullable=True)
    nonfacility_pervu = Column(Float, nullable=True)
    nonfacility_na_indicator = Column(Boolean, default=False)
    facility_pervu = Column(Float, nullable=True)
    facility_na_indicator = Column(Boolean, default=False)
    malpractice_rvu = Column(Float, nullable=True)
    total_nonfacility_rvu = Column(Float, nullable=True)
    total_facility_rvu = Column(Float, nullable=True)

    pctc_indicator = Column(BigInteger, nullable=True)
    pctc = Column(Text, nullable=True)
    global_surgery_code = Column(Text, nullable=True)
    global_surgery = Column(Text, nullable=True)
    preoperative_percentage = Column(Float, nullable=True)
    intraoperative_percentage = Column(Float, nullable=True)
    postoperative_percentage = Column(Float, nullable=True)

    multiple_procedure_code = Column(BigInteger, nullable=True)
    multiple_procedure = Column(Text, nullable=True)
    bilateral_surgery_code = Column(BigInteger, nullable=True)
    bilateral_surgery = Column(Text, nullable=True)
    assistant_at_surgery_code = Column(BigInteger, nullable=True)
    assistant_at_surgery = Column(Text, nullable=True)
    cosurgeons_code = Column(BigInteger, nullable=True)
    cosurgeons = Column(Text, nullable=True)
    team_surgery_code = Column(BigInteger, nullable=True)
    team_surgery = Column(Text, nullable=True)

    endoscopic_base_code = Column(Text, nullable=True)
    conversion_factor = Column(Float, nullable=True)
    physician_supervision_code = Column(Text, nullable=True)
    physician_supervision = Column(Text, nullable=True)
    calculation_flag = Column(BigInteger, nullable=True)
    diagnostic_imaging_family_indicator = Column(BigInteger, nullable=True)
    diagnostic_imaging_family = Column(Text, nullable=True)

    nonfacility_pe_used_for_opps_payment_amount = Column(Float, nullable=True)
    facility_pe_used_for_opps_payment_amount = Column(Float, nullable=True)
    malpractice_used_for_opps_payment_amount = Column(Float, nullable=True)

    __table_args__ = (
        Index('idx_rvu_hcpcs_effective', hcpcs, effective_date),
    )

    def __repr__(self):
        return f"<RelativeValueUnitRow(hcpcs={self.hcpcs}, modifier={self.modifier_code}, effective={self.effective_date})>"


@lru_cache(maxsize=None)
def get_rvu_table(schema: Optional[str] = None, table_name: str = "rvu") -> Table:
    """
    Return the rvu table definition bound to ``schema``.``table_name``.

    Each distinct target gets its own MetaData so targets never collide.
    Index names are prefixed with the table name to stay unique per schema.
    """
    metadata = MetaData()
    table = RelativeValueUnitRow.__table__.to_metadata(metadata, schema=schema, name=table_name)
    for index in table.indexes:
        index.name = f"idx_{table_name}_hcpcs_effective"
    return table
