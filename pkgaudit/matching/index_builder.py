"""
@file index_builder.py
@brief Sorting and pre-processing of advisories for fast lookup

@details
The number of advisories is far greater than the number of packages usually
checked against them, so the work is spent once, up front:

1. Every pattern gets its non-glob prefix length: the longest leading run
   without a glob character. A package whose name differs from that prefix
   can never match the pattern, whatever the rest of the pattern says.
2. Entries are sorted lexicographically by that prefix, a shorter prefix
   going first when one is a prefix of the other. Ties are broken on the full
   record so the order never depends on the order of the audit file.
3. Consecutive entries with the same prefix length and the same pattern form
   a run (a package listed in several advisories). The first entry of a run
   stores the run length so the matcher can test the run and jump past it.
4. A 256-slot table maps the first byte of a package name to the first entry
   worth looking at.

The resulting Index is immutable and owns no copy of the records.
"""

import logging

from pkgaudit.matching.models import Index, SortedIndexEntry

logger = logging.getLogger(__name__)

GLOB_CHARS = frozenset("*?[]{}\\")
FIRST_BYTE_SLOTS = 256


def noglob_len(pattern):
    """Length of the largest prefix of pattern without globbing characters."""
    for position, char in enumerate(pattern):
        if char in GLOB_CHARS:
            return position
    return len(pattern)


def first_byte(text):
    """First UTF-8 byte of text, 0 for an empty string."""
    return text.encode("utf-8")[0] if text else 0


def _sort_key(entry):
    # Plain string order on the prefix already puts "foo" before "foo-bar"
    return (entry.prefix, entry.record.content_key)


def _run_increments(entries):
    """
    Jump increments for each sorted entry.

    @return list int per entry: run length on the first member of a run, 1 elsewhere
    """
    increments = [1] * len(entries)
    run_start = 0
    for position in range(1, len(entries) + 1):
        if position < len(entries):
            previous, current = entries[position - 1], entries[position]
            if (previous.noglob_len == current.noglob_len
                    and previous.record.pattern == current.record.pattern):
                continue
        run_length = position - run_start
        if run_length > 1:
            increments[run_start] = run_length
        run_start = position
    return increments


def _first_byte_table(entries):
    """
    Position of the first entry whose prefix starts with a byte >= c, for every c.

    @details
    Requires entries to be sorted by prefix, which makes their first bytes
    non-decreasing. Empty prefixes count as byte 0.
    """
    table = []
    position = 0
    for value in range(FIRST_BYTE_SLOTS):
        while position < len(entries) and first_byte(entries[position].prefix) < value:
            position += 1
        table.append(position)
    return tuple(table)


def build_index(records) -> Index:
    """
    Sort advisories and compute the lookup structures used by the matcher.

    @param records iterable of AdvisoryRecord (typically LoadResult.records)

    @return Index Immutable sorted view referencing the given records
    """
    unsorted = [SortedIndexEntry(record, noglob_len(record.pattern)) for record in records]
    unsorted.sort(key=_sort_key)

    increments = _run_increments(unsorted)
    entries = tuple(
        SortedIndexEntry(entry.record, entry.noglob_len, increment)
        for entry, increment in zip(unsorted, increments)
    )
    glob_head = sum(1 for entry in entries if entry.noglob_len == 0)

    index = Index(entries=entries, first_byte_table=_first_byte_table(entries), glob_head=glob_head)
    runs = sum(1 for increment in increments if increment > 1)
    logger.debug(f"Built advisory index: {len(entries)} entries, {runs} multi-entry runs, {glob_head} leading glob patterns")
    return index
