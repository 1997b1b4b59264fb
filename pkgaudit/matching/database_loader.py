"""
@file database_loader.py
@brief Audit file reader producing AdvisoryRecords

@details
**File Format:**
@code
# comment
pattern|url|description[|ignored...]
@endcode

- One record per line; blank lines and lines starting with ``#`` are skipped
- Field 0 goes through pattern_parser.parse_pattern()
- Missing URL/description fields default to empty strings
- Fields past the description are ignored with an extra-column warning

**Error Handling:**
- Missing file: SourceNotFound (suggest fetching the database first)
- Any other read or decode failure: SourceIoError
- Both abort the load. A bad pattern only skips its own line and is
  reported as a ParseWarning; no partially filled record is ever kept.
"""

import logging
import os

from pkgaudit.matching.errors import (
    EXTRA_COLUMN_WARNING,
    PATTERN_WARNING,
    ParseWarning,
    PatternParseError,
    SourceIoError,
    SourceNotFound,
)
from pkgaudit.matching.models import AdvisoryRecord, LoadResult
from pkgaudit.matching.pattern_parser import parse_pattern

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "|"
COMMENT_PREFIX = "#"
EXPECTED_FIELDS = 3


def parse_line(line, line_number=0):
    """
    Turn one audit file line into a record.

    @param line str Line text without its trailing newline
    @param line_number int Position in the source, kept for diagnostics

    @return tuple (AdvisoryRecord, extra_column_count)

    @throws PatternParseError When field 0 is not a valid pattern
    """
    fields = line.split(FIELD_SEPARATOR)
    name, constraint1, constraint2 = parse_pattern(fields[0])
    url = fields[1] if len(fields) > 1 else ""
    description = fields[2] if len(fields) > 2 else ""
    record = AdvisoryRecord(
        pattern=name,
        constraint1=constraint1,
        constraint2=constraint2,
        url=url,
        description=description,
        line_number=line_number,
    )
    return record, max(0, len(fields) - EXPECTED_FIELDS)


def parse_lines(lines, source_name="<stream>") -> LoadResult:
    """
    Build records from an iterable of audit file lines.

    @param lines iterable Lines of text, with or without trailing newlines
    @param source_name str Name used in log messages

    @return LoadResult Records in input order plus collected warnings
    """
    records = []
    warnings = []

    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.rstrip("\r\n")
        if not line.strip() or line.startswith(COMMENT_PREFIX):
            continue

        try:
            record, extra_columns = parse_line(line, line_number)
        except PatternParseError as e:
            warning = ParseWarning(line_number, PATTERN_WARNING, f"skipped: {e}")
            logger.warning(f"{source_name}: {warning}")
            warnings.append(warning)
            continue

        if extra_columns:
            warning = ParseWarning(
                line_number,
                EXTRA_COLUMN_WARNING,
                f"extra column in audit file ({extra_columns} ignored)",
            )
            logger.warning(f"{source_name}: {warning}")
            warnings.append(warning)

        records.append(record)

    result = LoadResult(records=tuple(records), warnings=tuple(warnings))
    logger.info(f"Loaded {len(result.records)} advisories from {source_name} ({result.skipped} skipped)")
    return result


def load(source) -> LoadResult:
    """
    Read an audit file into advisory records.

    @param source str, os.PathLike or text stream Audit file location or an open file

    @return LoadResult Records and per-line warnings

    @throws SourceNotFound The file does not exist
    @throws SourceIoError The file exists but could not be read or decoded
    """
    if hasattr(source, "read"):
        source_name = getattr(source, "name", "<stream>")
        try:
            return parse_lines(source, source_name)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error reading audit file {source_name}: {e}")
            raise SourceIoError(source_name, e) from e

    path = os.fspath(source)
    logger.debug(f"Opening audit file {path}")
    try:
        with open(path, "r", encoding="utf-8") as audit_file:
            return parse_lines(audit_file, path)
    except FileNotFoundError as e:
        logger.error(f"Audit file not found: {path}")
        raise SourceNotFound(path) from e
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Error reading audit file {path}: {e}")
        raise SourceIoError(path, e) from e
