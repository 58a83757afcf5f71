# WORKFLOW: Command-line entry point for loading CMS RVU releases.
# Used by: operators, scheduled jobs
# Functions:
# 1. select_releases() - filter the configured releases by effective date
# 2. setup_database() - create the target schema/table
# 3. main() - parse arguments, run the pipeline, report outcomes
#
# Run flow: config (YAML or built-in catalogue) -> releases -> run_ingestion -> summary -> exit code

"""
Download CMS physician fee schedule RVU archives and load them into the database.
"""

import argparse
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional, Sequence

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import logging  # noqa: E402

from core.config import DEFAULT_INGEST_CONFIG, IngestConfig, ReleaseConfig, load_ingest_config, settings  # noqa: E402
from core.logging import configure_logging  # noqa: E402
from db.session import check_db_connection, ensure_rvu_table, get_engine, get_session_factory  # noqa: E402
from etl.errors import IngestError  # noqa: E402
from etl.pipeline import ReleaseOutcome, run_ingestion  # noqa: E402

logger = logging.getLogger(__name__)


def select_releases(config: IngestConfig, effective_dates: Optional[Sequence[date]]) -> List[ReleaseConfig]:
    """
    Pick the releases to ingest.

    Args:
        config: Loaded ingest config
        effective_dates: Dates to keep; None or empty keeps everything

    Returns:
        Releases in config order
    """
    if not effective_dates:
        return list(config.data)

    wanted = set(effective_dates)
    selected = [release for release in config.data if release.effective_date in wanted]
    missing = wanted - {release.effective_date for release in selected}
    for effective_date in sorted(missing):
        logger.warning(f"No release configured for effective date {effective_date}")
    return selected


def setup_database(database_url: str, schema: str, table_name: str):
    """
    Check connectivity, create the target schema and table, return a session factory.

    Raises:
        IngestError: If the database cannot be reached
    """
    engine = get_engine(database_url)
    if not check_db_connection(engine):
        raise IngestError(f"Cannot connect to {engine.url.render_as_string(hide_password=True)}")
    ensure_rvu_table(engine, schema, table_name)
    return get_session_factory(database_url)


def summarize(outcomes: Sequence[ReleaseOutcome]) -> int:
    failures = 0
    for outcome in outcomes:
        release = outcome.release.effective_date.isoformat()
        if outcome.ok:
            result = outcome.result
            logger.info(
                f"{release}: {len(result.records)} records, {result.inserted} inserted, "
                f"{result.skipped} skipped, {len(result.row_errors)} row errors"
            )
        else:
            failures += 1
            logger.error(f"{release}: failed - {outcome.error}")
    return failures


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main ingest function.
    """
    parser = argparse.ArgumentParser(description='Load CMS PFS RVU files into the database')
    parser.add_argument('--config', type=Path, help='YAML ingest config (default: built-in release catalogue)')
    parser.add_argument('--effective-date', type=date.fromisoformat, action='append', dest='effective_dates',
                        help='Only ingest this release (YYYY-MM-DD); repeatable')
    parser.add_argument('--workers', type=int, default=settings.max_workers, help='Concurrent releases')
    parser.add_argument('--batch-size', type=int, default=settings.batch_size, help='Records per transaction')
    parser.add_argument('--skip-db', action='store_true', help='Decode only, do not load into the database')
    parser.add_argument('--export-dir', type=Path, help='Write decoded records to CSV files in this directory')
    parser.add_argument('--log-level', default=settings.log_level, help='Logging level')
    parser.add_argument('--log-file', help='Also write log records to this file')

    args = parser.parse_args(argv)
    configure_logging(args.log_level, log_file=args.log_file)

    try:
        config = load_ingest_config(args.config) if args.config else DEFAULT_INGEST_CONFIG
        releases = select_releases(config, args.effective_dates)
        if not releases:
            logger.error("No releases selected")
            return 1

        session_factory = None
        if not args.skip_db:
            database_url = config.database_url or settings.database_url
            session_factory = setup_database(database_url, settings.db_schema, settings.db_table)

        logger.info(f"Ingesting {len(releases)} releases with {args.workers} workers")
        outcomes = run_ingestion(
            releases,
            default_pattern=config.rvu_file_regex or settings.rvu_file_regex,
            session_factory=session_factory,
            max_workers=args.workers,
            batch_size=args.batch_size,
            export_dir=args.export_dir,
        )

    except IngestError as e:
        logger.error(f"Ingest failed: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Ingest failed: {e}")
        return 1

    failures = summarize(outcomes)
    if failures:
        logger.error(f"{failures} of {len(outcomes)} releases failed")
        return 1

    logger.info("All releases ingested successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
