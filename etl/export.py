# WORKFLOW: Write decoded RVU records to flat files.
# Used by: scripts/ingest_rvu.py --export-dir
# Functions:
# 1. records_to_dataframe() - records -> pandas DataFrame in model field order
# 2. export_records() - DataFrame -> CSV file

"""
Flat-file export of RelativeValueUnit records.
"""

import logging
from pathlib import Path
from typing import Sequence, Union

import pandas as pd

from etl.record import RelativeValueUnit

logger = logging.getLogger(__name__)

COLUMNS = list(RelativeValueUnit.model_fields)


def records_to_dataframe(records: Sequence[RelativeValueUnit]) -> pd.DataFrame:
    """
    Convert records to a DataFrame.

    Args:
        records: Decoded records

    Returns:
        DataFrame with one row per record and one column per model field
    """
    return pd.DataFrame([record.model_dump() for record in records], columns=COLUMNS)


def export_records(records: Sequence[RelativeValueUnit], path: Union[str, Path]) -> Path:
    """
    Write records to a CSV file, creating parent directories as needed.

    Args:
        records: Decoded records
        path: Destination file

    Returns:
        Path written
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        records_to_dataframe(records).to_csv(path, index=False)
        logger.info(f"Exported {len(records)} records to {path}")
        return path

    except OSError as e:
        logger.error(f"Failed to export records to {path}: {e}")
        raise
