# WORKFLOW: Locate the RVU data file inside a published zip archive.
# Used by: etl.pipeline, first step after download
# Functions:
# 1. list_members() - file names in stored order (diagnostics)
# 2. locate_member() - bytes of the first member whose base name matches a pattern
#
# CMS does not name files consistently between releases, so members are matched
# by a case-insensitive regular expression against the base name only.

"""
Archive member lookup for CMS RVU zip files.
"""

import io
import logging
import re
import zipfile
import zlib
from pathlib import PurePosixPath
from typing import List, Optional

from etl.errors import AmbiguousMatchError, MalformedArchiveError, NotFoundError, PatternError

logger = logging.getLogger(__name__)


def _base_name(member_name: str) -> str:
    return PurePosixPath(member_name.replace("\\", "/")).name


def _open_archive(content: bytes, source: Optional[str], pattern: Optional[str]) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(io.BytesIO(content))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as e:
        raise MalformedArchiveError(
            f"Not a valid zip archive: {e}",
            source=source,
            pattern=pattern,
            archive_size=len(content),
        ) from e


def list_members(content: bytes, source: Optional[str] = None) -> List[str]:
    """
    List file members of an archive in stored order.

    Args:
        content: Raw archive bytes
        source: Where the archive came from, for error context

    Returns:
        Member names, directories excluded
    """
    with _open_archive(content, source, None) as archive:
        return [info.filename for info in archive.infolist() if not info.is_dir()]


def locate_member(
    content: bytes,
    pattern: str,
    source: Optional[str] = None,
    strict: bool = False,
) -> bytes:
    """
    Return the bytes of the first archive member whose base name matches ``pattern``.

    Args:
        content: Raw archive bytes
        pattern: Regular expression searched case-insensitively in each base name
        source: Where the archive came from, for error context
        strict: Raise AmbiguousMatchError instead of taking the first of several matches

    Returns:
        The member's bytes, unmodified

    Raises:
        MalformedArchiveError: If ``content`` is not a readable zip archive
        NotFoundError: If no member matches
        AmbiguousMatchError: If ``strict`` and several members match
        PatternError: If ``pattern`` does not compile
    """
    try:
        regex = re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise PatternError(
            f"Invalid member pattern: {e}",
            source=source,
            pattern=pattern,
            archive_size=len(content),
        ) from e

    with _open_archive(content, source, pattern) as archive:
        matches = [
            info for info in archive.infolist()
            if not info.is_dir() and regex.search(_base_name(info.filename))
        ]

        if not matches:
            raise NotFoundError(
                "No archive member matches pattern",
                source=source,
                pattern=pattern,
                archive_size=len(content),
            )

        if len(matches) > 1:
            names = [info.filename for info in matches]
            if strict:
                raise AmbiguousMatchError(
                    f"{len(matches)} archive members match pattern: {names}",
                    source=source,
                    pattern=pattern,
                    archive_size=len(content),
                )
            logger.warning(f"Several members match {pattern!r}, using the first: {names}")

        member = matches[0]
        logger.info(f"Selected archive member {member.filename} ({member.file_size} bytes)")

        try:
            return archive.read(member)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, NotImplementedError, RuntimeError, EOFError, OSError) as e:
            raise MalformedArchiveError(
                f"Failed to read archive member {member.filename}: {e}",
                source=source,
                pattern=pattern,
                archive_size=len(content),
            ) from e
