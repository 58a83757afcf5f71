# WORKFLOW: Download a published RVU archive with the timestamps we need for provenance.
# Used by: etl.pipeline, one call per release
# Functions:
# 1. parse_http_date() - RFC 1123 header value -> aware UTC datetime
# 2. fetch_archive() - GET with timeout, return bytes + Last-Modified + Date
#
# A missing or unparseable Last-Modified or Date header is a fetch failure, so
# records never reach the decoder without complete provenance.

"""
HTTP retrieval of CMS RVU archives.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

import requests

from core.config import settings
from etl.errors import FetchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    """Archive bytes plus the response metadata used as provenance."""
    source: str
    content: bytes
    last_modified: datetime
    retrieved_at: datetime


def parse_http_date(value: Optional[str], header: str, url: str) -> datetime:
    """
    Parse an HTTP date header into a UTC datetime.

    Raises:
        FetchError: If the header is missing or not a valid HTTP date
    """
    if not value:
        raise FetchError(f"Response from {url} has no {header} header")

    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError) as e:
        raise FetchError(f"Unparseable {header} header {value!r} from {url}") from e

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def fetch_archive(
    url: str,
    timeout: Optional[float] = None,
    session: Optional[requests.Session] = None,
) -> FetchResult:
    """
    Download an archive.

    Args:
        url: Archive URL
        timeout: Seconds before giving up; defaults to settings.http_timeout
        session: Optional requests session for connection reuse

    Returns:
        FetchResult with content, Last-Modified and Date (as retrieval time)

    Raises:
        FetchError: On transport errors, non-2xx responses or missing headers
    """
    timeout = timeout if timeout is not None else settings.http_timeout
    http = session or requests

    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Failed to download {url}: {e}")
        raise FetchError(f"Failed to download {url}: {e}") from e

    last_modified = parse_http_date(response.headers.get("Last-Modified"), "Last-Modified", url)
    retrieved_at = parse_http_date(response.headers.get("Date"), "Date", url)

    logger.info(f"Downloaded {url}: {len(response.content)} bytes, last modified {last_modified.isoformat()}")

    return FetchResult(
        source=url,
        content=response.content,
        last_modified=last_modified,
        retrieved_at=retrieved_at,
    )
