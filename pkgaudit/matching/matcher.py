"""
@file matcher.py
@brief Advisory lookup for installed packages

@details
**Search Algorithm (query):**

Entries of an Index are sorted by their non-glob prefix, so for a package
name only a narrow band of the index can match:

1. Leading entries whose pattern starts with a glob character have an empty
   prefix; they are always tested.
2. The first-byte table gives the first entry whose prefix starts with the
   package name's first byte or later.
3. From there the first min(prefix length, name length) characters of the
   name are compared with the entry's prefix:
   - prefix greater: every following prefix is greater too, stop;
   - prefix smaller: step to the next entry;
   - equal: glob-match every entry of the run, evaluate the version
     constraints of the ones that match, then jump past the run.

A prefix match alone never decides anything: ``zlib-[0-9]*`` and
``zlib-devel`` share the ``zlib-`` prefix but only the full glob match tells
them apart. naive_query() tests every record with the glob matcher and must
always return the same advisories; it exists as a reference for tests.

**Batch Audit (audit_packages):**

Queries only read the Index, so a batch may fan out over a thread pool. Package
sources may be lazy streams, so only BACKLOG_PER_WORKER queries per thread are
submitted ahead of the results being reported; queued queries are dropped
when the batch stops early. The batch can be cancelled between packages
through a threading.Event or a KeyboardInterrupt; a single package query
always runs to completion.
"""

import logging
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from pkgaudit.matching.index_builder import first_byte
from pkgaudit.matching.models import AdvisoryMatch
from pkgaudit.matching.version_compare import compare_versions, glob_match

logger = logging.getLogger(__name__)

# Queries submitted ahead of the oldest unfinished one, per worker thread
BACKLOG_PER_WORKER = 4


def match_version(package_version, constraint, comparator=compare_versions):
    """
    Evaluate one constraint against a package version.

    @param package_version str Installed version
    @param constraint VersionConstraint or None A missing constraint always matches
    @param comparator callable Three-way version comparator

    @return bool True if the version satisfies the constraint
    """
    if constraint is None:
        return True
    return constraint.accepts(comparator(package_version, constraint.version))


def is_affected(record, package_version, comparator=compare_versions):
    """True if package_version lies inside the record's version range."""
    return (match_version(package_version, record.constraint1, comparator)
            and match_version(package_version, record.constraint2, comparator))


def _check_entry(entry, name, version, comparator, glob_matcher):
    record = entry.record
    if not glob_matcher(record.pattern, name):
        return None
    if not is_affected(record, version, comparator):
        return None
    return AdvisoryMatch(name, version, record)


def query(index, name, version, comparator=compare_versions, glob_matcher=glob_match) -> list:
    """
    Find every advisory affecting one package.

    @param index Index Built by index_builder.build_index()
    @param name str Package name
    @param version str Package version
    @param comparator callable Three-way version comparator
    @param glob_matcher callable Glob matcher taking (pattern, name)

    @return list AdvisoryMatch for each advisory flagging the package, in index order
    """
    entries = index.entries
    matches = []

    for entry in entries[:index.glob_head]:
        match = _check_entry(entry, name, version, comparator, glob_matcher)
        if match:
            matches.append(match)

    cursor = index.first_byte_table[first_byte(name)] if name else 0
    cursor = max(cursor, index.glob_head)

    while cursor < len(entries):
        entry = entries[cursor]
        length = min(entry.noglob_len, len(name))
        candidate = entry.record.pattern[:length]
        wanted = name[:length]

        if candidate > wanted:
            break
        if candidate < wanted:
            cursor += 1
            continue

        for member in entries[cursor:cursor + entry.next_pfx_incr]:
            match = _check_entry(member, name, version, comparator, glob_matcher)
            if match:
                matches.append(match)
        cursor += entry.next_pfx_incr

    if matches:
        logger.debug(f"{name}-{version} matched {len(matches)} advisories")
    return matches


def naive_query(records, name, version, comparator=compare_versions, glob_matcher=glob_match) -> list:
    """
    Test every record against the package, without any pruning.

    @details
    Returns the same advisories as query() on an index of the same records,
    possibly in a different order.
    """
    matches = []
    for record in records:
        if glob_matcher(record.pattern, name) and is_affected(record, version, comparator):
            matches.append(AdvisoryMatch(name, version, record))
    return matches


@dataclass
class AuditResult:
    """
    Outcome of a batch audit.

    @param matches dict {(name, version): [AdvisoryMatch, ...]} for vulnerable packages only
    @param checked int Packages queried before the batch ended
    @param cancelled bool True if the batch stopped before the package source was exhausted
    """
    matches: dict = field(default_factory=dict)
    checked: int = 0
    cancelled: bool = False

    @property
    def vulnerable(self):
        return len(self.matches)

    def all_matches(self):
        for package_matches in self.matches.values():
            yield from package_matches


def _record(result, package, matches):
    result.checked += 1
    if matches:
        result.matches[package] = matches


def audit_packages(index, packages, comparator=compare_versions, glob_matcher=glob_match,
                   cancel_event=None, max_workers=1, on_match=None) -> AuditResult:
    """
    Query the index for every (name, version) produced by a package source.

    @param index Index Advisory index shared by every query
    @param packages iterable of (name, version) tuples; may be lazily streamed
    @param comparator callable Three-way version comparator
    @param glob_matcher callable Glob matcher
    @param cancel_event threading.Event Checked between packages; set it to stop early
    @param max_workers int Number of query threads (1 runs inline)
    @param on_match callable Called with (name, version, matches) for each vulnerable package,
                     in the order the packages were produced

    @return AuditResult Matches for vulnerable packages and batch counters
    """
    result = AuditResult()

    def cancelled():
        return cancel_event is not None and cancel_event.is_set()

    def handle(package, matches):
        _record(result, package, matches)
        if matches and on_match is not None:
            on_match(package[0], package[1], matches)

    try:
        if max_workers <= 1:
            for name, version in packages:
                if cancelled():
                    result.cancelled = True
                    break
                handle((name, version), query(index, name, version, comparator, glob_matcher))
        else:
            executor = ThreadPoolExecutor(max_workers=max_workers)
            pending = deque()
            try:
                for name, version in packages:
                    if cancelled():
                        result.cancelled = True
                        break
                    future = executor.submit(query, index, name, version, comparator, glob_matcher)
                    pending.append(((name, version), future))
                    if len(pending) >= max_workers * BACKLOG_PER_WORKER:
                        package, future = pending.popleft()
                        handle(package, future.result())
                while pending and not result.cancelled:
                    if cancelled():
                        result.cancelled = True
                        break
                    package, future = pending.popleft()
                    handle(package, future.result())
            finally:
                # Every result still wanted has been collected by now
                executor.shutdown(wait=False, cancel_futures=True)
    except KeyboardInterrupt:
        logger.warning(f"Audit interrupted after {result.checked} packages")
        result.cancelled = True

    logger.info(f"Audited {result.checked} packages: {result.vulnerable} vulnerable"
                + (" (cancelled)" if result.cancelled else ""))
    return result
