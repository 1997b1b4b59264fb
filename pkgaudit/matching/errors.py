"""
@file errors.py
@brief Exception and warning types for advisory loading and matching

@details
File-level errors (SourceNotFound, SourceIoError) abort a database load.
Record-level problems (PatternParseError) are recovered by the loader, which
skips the offending line and records a ParseWarning instead. Extra columns
only produce an informational ParseWarning.

The matcher itself raises nothing of its own: it only consumes an index that
was already built from valid records.
"""

from dataclasses import dataclass


class AuditError(Exception):
    """Base class for every error raised by pkgaudit."""


class SourceError(AuditError):
    """The advisory database could not be read at all."""

    def __init__(self, path, message):
        super().__init__(message)
        self.path = path


class SourceNotFound(SourceError):
    """
    The advisory database does not exist.

    @details
    Callers should suggest fetching the database first (``pkgaudit -F``).
    """

    def __init__(self, path):
        super().__init__(path, f"unable to open audit file {path}, try running 'pkgaudit -F' first")


class SourceIoError(SourceError):
    """Any other failure while reading the advisory database."""

    def __init__(self, path, cause):
        super().__init__(path, f"unable to read audit file {path}: {cause}")
        self.cause = cause


class PatternParseError(AuditError, ValueError):
    """An advisory pattern did not yield a usable name/constraint set."""

    def __init__(self, pattern, reason):
        super().__init__(f"invalid advisory pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


class FetchError(AuditError):
    """The remote advisory database could not be retrieved or extracted."""


class PackageSourceError(AuditError):
    """Installed packages could not be enumerated."""


class PackageNameError(AuditError, ValueError):
    """A ``name-version`` string could not be split."""

    def __init__(self, value):
        super().__init__(f"bad package name format: {value}")
        self.value = value


PATTERN_WARNING = "pattern"
EXTRA_COLUMN_WARNING = "extra_column"


@dataclass(frozen=True)
class ParseWarning:
    """
    A recoverable problem found on one line of the advisory database.

    @param line_number int 1-based line in the source
    @param kind str PATTERN_WARNING (record skipped) or EXTRA_COLUMN_WARNING (record kept)
    @param message str Human readable description
    """
    line_number: int
    kind: str
    message: str

    @property
    def skipped(self):
        return self.kind == PATTERN_WARNING

    def __str__(self):
        return f"line {self.line_number}: {self.message}"
