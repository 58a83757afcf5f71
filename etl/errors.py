# WORKFLOW: Error taxonomy for RVU archive ingestion.
# Used by: archive locator, extractor, decoder, id hasher, fetch, pipeline
# Fatal per archive: MalformedArchiveError, NotFoundError, AmbiguousMatchError,
#   PatternError, HeaderNotFoundError, ExtractError, FetchError
# Per row (skip and report): RowDecodeError
# Contract violations: MissingEffectiveDateError
#
# The pipeline catches IngestError at the worker boundary and records it
# against the release that failed; other releases keep going.

"""
Exceptions raised while ingesting CMS RVU archives.
"""

from typing import Optional


class IngestError(Exception):
    """Base class for all ingestion failures."""


class ArchiveError(IngestError):
    """
    Structural failure while reading an archive.

    Carries the context needed to diagnose a bad release: where the archive
    came from, which member pattern was applied and how many bytes were read.
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        pattern: Optional[str] = None,
        archive_size: Optional[int] = None,
    ):
        self.source = source
        self.pattern = pattern
        self.archive_size = archive_size
        super().__init__(message)

    def __str__(self) -> str:
        context = []
        if self.source:
            context.append(f"source={self.source}")
        if self.pattern is not None:
            context.append(f"pattern={self.pattern!r}")
        if self.archive_size is not None:
            context.append(f"bytes={self.archive_size}")
        message = super().__str__()
        if context:
            return f"{message} ({', '.join(context)})"
        return message


class MalformedArchiveError(ArchiveError):
    """The bytes are not a readable zip container."""


class NotFoundError(ArchiveError):
    """No archive member matched the file pattern."""


class AmbiguousMatchError(ArchiveError):
    """More than one archive member matched the file pattern (strict mode only)."""


class PatternError(ArchiveError):
    """The member file pattern is not a valid regular expression."""


class HeaderNotFoundError(ArchiveError):
    """The header sentinel was not found within the scan window."""


class ExtractError(ArchiveError):
    """The member could not be tokenized as CSV, e.g. a field over the size limit."""


class RowDecodeError(IngestError):
    """A data row could not be decoded structurally, e.g. too few columns."""

    def __init__(self, message: str, row_number: Optional[int] = None, column_count: Optional[int] = None):
        self.row_number = row_number
        self.column_count = column_count
        super().__init__(message)


class FieldParseError(IngestError):
    """
    A single field failed to parse.

    Never raised by the decoder: unparseable fields degrade to ``None``.
    """


class MissingEffectiveDateError(IngestError):
    """An identity key was requested for a record without an effective date."""


class FetchError(IngestError):
    """Retrieving an archive failed, or its response lacked required headers."""


class ConfigError(IngestError):
    """The ingest configuration could not be read or validated."""
