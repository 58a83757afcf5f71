# WORKFLOW: Load keyed RVU records into the target table.
# Used by: etl.pipeline once an archive has been decoded and hashed
# Functions:
# 1. chunked() - split records into fixed-size batches
# 2. insert_ignore_statement() - dialect INSERT ... ON CONFLICT (_id_hash) DO NOTHING
# 3. put_batch() - one batch in one transaction
# 4. put_records() - all batches, returning the number of new rows
#
# Load flow: records -> batches -> insert-or-ignore -> commit per batch
# Re-inserting an existing identity key is a silent no-op, so batch order and
# repeated runs do not matter.

"""
Idempotent batch sink for RelativeValueUnit records.
"""

import logging
from typing import Iterator, List, Optional, Sequence

from sqlalchemy import Table
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from db.models import get_rvu_table
from db.session import resolve_schema
from etl.record import RelativeValueUnit

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def chunked(items: Sequence, chunk_size: int) -> Iterator[Sequence]:
    if chunk_size <= 0:
        chunk_size = 1
    for i in range(0, len(items), chunk_size):
        yield items[i:i + chunk_size]


def insert_ignore_statement(table: Table, dialect_name: str):
    """Build an insert that skips rows whose identity key already exists."""
    try:
        insert = _DIALECT_INSERTS[dialect_name]
    except KeyError:
        raise ValueError(f"Insert-or-ignore is not supported for dialect {dialect_name!r}")

    return (
        insert(table)
        .on_conflict_do_nothing(index_elements=[table.c.id_hash])
        .returning(table.c.id_hash)
    )


def _to_row(record: RelativeValueUnit) -> dict:
    if not record.id_hash:
        raise ValueError(f"Record for HCPCS {record.hcpcs!r} has no id_hash; assign one before loading")
    return record.model_dump()


def put_batch(db: Session, table: Table, records: Sequence[RelativeValueUnit]) -> int:
    """
    Insert one batch atomically.

    Args:
        db: Database session
        table: Target table
        records: Keyed records

    Returns:
        Number of rows actually inserted
    """
    if not records:
        return 0

    rows = [_to_row(record) for record in records]
    stmt = insert_ignore_statement(table, db.get_bind().dialect.name)

    try:
        inserted = len(db.execute(stmt, rows).all())
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to load batch of {len(rows)} records into {table.fullname}: {e}")
        raise

    logger.debug(f"Inserted {inserted} of {len(rows)} records into {table.fullname}")
    return inserted


def put_records(
    db: Session,
    records: Sequence[RelativeValueUnit],
    schema: Optional[str] = None,
    table_name: str = "rvu",
    batch_size: int = 1000,
) -> int:
    """
    Load records in fixed-size batches with insert-or-ignore semantics.

    The target table must already exist (see db.session.ensure_rvu_table).

    Args:
        db: Database session
        records: Keyed records
        schema: Target schema; ignored on SQLite
        table_name: Target table
        batch_size: Records per transaction

    Returns:
        Total number of new rows
    """
    table = get_rvu_table(resolve_schema(db.get_bind(), schema), table_name)

    inserted = 0
    batches: List[int] = []
    for batch in chunked(records, batch_size):
        count = put_batch(db, table, batch)
        batches.append(count)
        inserted += count

    logger.info(
        f"Loaded {inserted} new of {len(records)} records into {table.fullname} "
        f"in {len(batches)} batches"
    )
    return inserted
