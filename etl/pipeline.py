# WORKFLOW: End-to-end ingestion of CMS RVU releases.
# Used by: scripts/ingest_rvu.py
# Functions:
# 1. decode_archive() - locate -> extract -> decode -> hash for one archive's bytes
# 2. ingest_release() - fetch one release, decode it, optionally export and load it
# 3. run_ingestion() - all releases on a bounded thread pool
#
# Ingestion flow: URL -> fetch -> zip member -> rows -> records -> id_hash -> batches -> table
# A failing release is recorded in its ReleaseOutcome; other releases keep going
# and anything they committed stays committed.

"""
Orchestration of the RVU decode-and-load pipeline.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import structlog
from sqlalchemy.orm import sessionmaker

from core.config import ReleaseConfig, settings
from etl.archive import locate_member
from etl.decoder import decode_rows
from etl.errors import ArchiveError, RowDecodeError
from etl.export import export_records
from etl.extract import extract_rows
from etl.fetch import FetchResult, fetch_archive
from etl.id_hash import assign_id_hash
from etl.load import put_records
from etl.record import Provenance, RelativeValueUnit

logger = structlog.get_logger()

Fetcher = Callable[[str], FetchResult]


@dataclass
class IngestResult:
    """Everything produced from one archive."""
    source: str
    effective_date: Optional[date]
    records: List[RelativeValueUnit] = field(default_factory=list)
    skipped: int = 0
    row_errors: List[RowDecodeError] = field(default_factory=list)
    inserted: int = 0

    @property
    def keys(self) -> set:
        return {record.id_hash for record in self.records}


@dataclass
class ReleaseOutcome:
    release: ReleaseConfig
    result: Optional[IngestResult] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def decode_archive(
    content: bytes,
    provenance: Provenance,
    pattern: str,
    sentinel: Optional[str] = None,
    scan_limit: Optional[int] = None,
    strict: Optional[bool] = None,
) -> IngestResult:
    """
    Decode one archive into keyed records.

    Args:
        content: Raw archive bytes
        provenance: Source metadata; effective_date is required for keying
        pattern: Member file pattern
        sentinel: Header sentinel, defaults to settings.header_sentinel
        scan_limit: Header scan window, defaults to settings.header_scan_limit
        strict: Fail on ambiguous member matches, defaults to settings.strict_member_match

    Returns:
        IngestResult with keyed records, skipped row count and row errors

    Raises:
        MalformedArchiveError, NotFoundError, AmbiguousMatchError, PatternError,
        HeaderNotFoundError, ExtractError: Structural failures for this archive
        MissingEffectiveDateError: If provenance has no effective date
    """
    sentinel = sentinel if sentinel is not None else settings.header_sentinel
    scan_limit = scan_limit if scan_limit is not None else settings.header_scan_limit
    strict = strict if strict is not None else settings.strict_member_match

    member = locate_member(content, pattern, source=provenance.source, strict=strict)

    try:
        rows = extract_rows(member, sentinel=sentinel, scan_limit=scan_limit)
    except ArchiveError as e:
        e.source = provenance.source
        e.pattern = pattern
        e.archive_size = len(content)
        raise

    decoded = decode_rows(rows, provenance)
    records = [assign_id_hash(record) for record in decoded.records]

    return IngestResult(
        source=provenance.source,
        effective_date=provenance.effective_date,
        records=records,
        skipped=decoded.skipped,
        row_errors=decoded.errors,
    )


def ingest_release(
    release: ReleaseConfig,
    default_pattern: Optional[str] = None,
    fetcher: Fetcher = fetch_archive,
    session_factory: Optional[sessionmaker] = None,
    schema: Optional[str] = None,
    table_name: Optional[str] = None,
    batch_size: Optional[int] = None,
    export_dir: Optional[Union[str, Path]] = None,
) -> IngestResult:
    """
    Fetch, decode and load one release.

    Args:
        release: Release to ingest
        default_pattern: Member pattern used when the release has no override
        fetcher: Retrieval function, url -> FetchResult
        session_factory: Session factory for loading; None decodes without loading
        schema: Target schema, defaults to settings.db_schema
        table_name: Target table, defaults to settings.db_table
        batch_size: Records per transaction, defaults to settings.batch_size
        export_dir: Directory for a CSV copy of the decoded records

    Returns:
        IngestResult including the number of newly inserted rows
    """
    log = logger.bind(release=release.effective_date.isoformat(), url=release.url)
    pattern = release.member_pattern(default_pattern or settings.rvu_file_regex)

    fetched = fetcher(release.url)
    provenance = Provenance(
        source=fetched.source,
        extract_time=fetched.retrieved_at,
        last_modified=fetched.last_modified,
        effective_date=release.effective_date,
    )

    result = decode_archive(fetched.content, provenance, pattern)
    log.info(
        "release_decoded",
        records=len(result.records),
        skipped=result.skipped,
        row_errors=len(result.row_errors),
    )
    for error in result.row_errors:
        log.warning("row_error", row=error.row_number, columns=error.column_count, error=str(error))

    if export_dir is not None:
        export_records(result.records, Path(export_dir) / f"rvu_{release.effective_date.isoformat()}.csv")

    if session_factory is not None:
        with session_factory() as db:
            result.inserted = put_records(
                db,
                result.records,
                schema=schema if schema is not None else settings.db_schema,
                table_name=table_name or settings.db_table,
                batch_size=batch_size or settings.batch_size,
            )
        log.info("release_loaded", inserted=result.inserted)

    return result


def run_ingestion(
    releases: Sequence[ReleaseConfig],
    default_pattern: Optional[str] = None,
    fetcher: Fetcher = fetch_archive,
    session_factory: Optional[sessionmaker] = None,
    max_workers: Optional[int] = None,
    schema: Optional[str] = None,
    table_name: Optional[str] = None,
    batch_size: Optional[int] = None,
    export_dir: Optional[Union[str, Path]] = None,
) -> List[ReleaseOutcome]:
    """
    Ingest releases concurrently, one worker per release.

    Args:
        releases: Releases to ingest
        max_workers: Upper bound on concurrent releases, defaults to settings.max_workers
        (remaining arguments as for ingest_release)

    Returns:
        One ReleaseOutcome per release, in input order
    """
    max_workers = max(1, max_workers or settings.max_workers)
    outcomes = {index: ReleaseOutcome(release=release) for index, release in enumerate(releases)}

    logger.info("ingestion_started", releases=len(releases), workers=max_workers)

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="rvu-ingest") as executor:
        futures = {
            executor.submit(
                ingest_release,
                release,
                default_pattern=default_pattern,
                fetcher=fetcher,
                session_factory=session_factory,
                schema=schema,
                table_name=table_name,
                batch_size=batch_size,
                export_dir=export_dir,
            ): index
            for index, release in enumerate(releases)
        }

        for future in as_completed(futures):
            outcome = outcomes[futures[future]]
            try:
                outcome.result = future.result()
            except Exception as e:
                outcome.error = e
                logger.exception(
                    "release_failed",
                    release=outcome.release.effective_date.isoformat(),
                    url=outcome.release.url,
                    error_type=type(e).__name__,
                    error=str(e),
                )

    ordered = [outcomes[index] for index in range(len(releases))]
    failed = sum(1 for outcome in ordered if not outcome.ok)
    logger.info(
        "ingestion_finished",
        releases=len(ordered),
        failed=failed,
        inserted=sum(outcome.result.inserted for outcome in ordered if outcome.result),
    )
    return ordered
