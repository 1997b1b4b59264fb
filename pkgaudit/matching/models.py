"""
@file models.py
@brief Data types shared by the advisory loader, index builder and matcher

@details
**AdvisoryRecord** is one line of the audit file: a (possibly globbed) package
name pattern, up to two version constraints combined with AND, a reference
URL and a free-text description.

**Index** is the sorted, read-only view over a record collection built by
index_builder.build_index(). Its entries reference the records, they never
copy them, so URL and description text exists once per advisory.
Since nothing in an Index is mutable it can be queried from several threads
at once without locking.
"""

import enum
from dataclasses import dataclass, field
from typing import Optional, Tuple


class VersionOp(enum.Enum):
    """Comparison operator of a version constraint, valued by its pattern spelling."""
    EQ = "="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="


# Three-way comparator results accepted by each operator
ACCEPTED_RESULTS = {
    VersionOp.EQ: (0,),
    VersionOp.LT: (-1,),
    VersionOp.LTE: (-1, 0),
    VersionOp.GT: (1,),
    VersionOp.GTE: (1, 0),
}


@dataclass(frozen=True)
class VersionConstraint:
    op: VersionOp
    version: str

    def accepts(self, cmp_result):
        """
        Check a comparator result against this constraint.

        @param cmp_result int -1, 0 or 1 as returned by comparator(package_version, self.version)
        @return bool True if the ordering satisfies the operator
        """
        return cmp_result in ACCEPTED_RESULTS[self.op]

    @property
    def sort_key(self):
        return (self.op.value, self.version)

    def __str__(self):
        return f"{self.op.value}{self.version}"


@dataclass(frozen=True)
class AdvisoryRecord:
    """
    One advisory from the audit file.

    @details
    constraint1/constraint2 are None when the pattern carries fewer than two
    bounds; a missing constraint is always satisfied.
    line_number is diagnostic only and takes no part in equality or sorting.
    """
    pattern: str
    constraint1: Optional[VersionConstraint] = None
    constraint2: Optional[VersionConstraint] = None
    url: str = ""
    description: str = ""
    line_number: int = field(default=0, compare=False)

    def format_pattern(self):
        """Render the record back into its ``name[op version[op version]]`` form."""
        text = self.pattern
        for constraint in (self.constraint1, self.constraint2):
            if constraint is not None:
                text += str(constraint)
        return text

    @property
    def content_key(self):
        """Total ordering key over everything but the line number."""
        return (
            self.pattern,
            self.constraint1.sort_key if self.constraint1 else ("", ""),
            self.constraint2.sort_key if self.constraint2 else ("", ""),
            self.url,
            self.description,
        )


@dataclass(frozen=True)
class SortedIndexEntry:
    """
    A reference to one record plus the data the matcher needs to prune.

    @param record AdvisoryRecord Referenced advisory (shared, not copied)
    @param noglob_len int Length of the pattern's leading run free of glob characters
    @param next_pfx_incr int Slots to skip to leave this run of identical patterns
    """
    record: AdvisoryRecord
    noglob_len: int
    next_pfx_incr: int = 1

    @property
    def prefix(self):
        return self.record.pattern[:self.noglob_len]


@dataclass(frozen=True)
class Index:
    """
    Sorted advisory entries plus the first-byte skip table.

    @details
    first_byte_table[c] is the position of the first entry whose non-glob
    prefix starts with a byte >= c. Entries with an empty prefix (patterns
    starting with a glob character) sort first and are counted in glob_head;
    the matcher always scans them.
    """
    entries: Tuple[SortedIndexEntry, ...]
    first_byte_table: Tuple[int, ...]
    glob_head: int = 0

    def __len__(self):
        return len(self.entries)


@dataclass(frozen=True)
class AdvisoryMatch:
    """A package flagged as vulnerable by one advisory."""
    package_name: str
    package_version: str
    record: AdvisoryRecord

    @property
    def package(self):
        return f"{self.package_name}-{self.package_version}"

    @property
    def url(self):
        return self.record.url

    @property
    def description(self):
        return self.record.description


@dataclass(frozen=True)
class LoadResult:
    """
    Output of database_loader.load().

    @param records tuple AdvisoryRecords in file order
    @param warnings tuple ParseWarnings collected while loading
    """
    records: Tuple[AdvisoryRecord, ...]
    warnings: tuple = ()

    @property
    def skipped(self):
        return sum(1 for warning in self.warnings if warning.skipped)

    def __len__(self):
        return len(self.records)
