"""
@file version_compare.py
@brief Default version comparator and glob matcher used by the matcher

@details
The matcher takes both as plain callables so callers can plug in the
ordering of their own package system:

- comparator(a, b) -> -1, 0 or 1
- glob_match(pattern, name) -> bool

**compare_versions():**
Versions valid under PEP 440 are ordered with ``packaging.version``. Anything
else, including FreeBSD port versions such as ``1.0.1g_2,1``
(version, ``_`` port revision, ``,`` epoch), falls back to a segment
comparison: numeric runs compare numerically, alphabetic runs compare
lexically, a number outranks a word, and a trailing pre-release word
(alpha, beta, pre, rc, dev) sorts before the release it precedes.

**glob_match():**
Shell-style matching as fnmatch(3) with no flags: ``*``, ``?`` and bracket
classes; a backslash makes the next character literal. Braces carry no
special meaning.
"""

import fnmatch
import functools
import re

from packaging.version import InvalidVersion, Version

PRERELEASE_WORDS = frozenset(["alpha", "beta", "pre", "rc", "dev"])
FNMATCH_SPECIALS = frozenset("*?[]\\")
SEGMENT_RE = re.compile(r"\d+|[A-Za-z]+")


def _sign(value):
    return (value > 0) - (value < 0)


def _split_port_version(text):
    """Split ``version_revision,epoch`` into (epoch, version, revision)."""
    epoch = 0
    revision = 0
    if "," in text:
        text, _, epoch_text = text.rpartition(",")
        epoch = int(epoch_text) if epoch_text.isdigit() else 0
    if "_" in text:
        text, _, revision_text = text.rpartition("_")
        revision = int(revision_text) if revision_text.isdigit() else 0
    return epoch, text, revision


def _segments(text):
    return [int(token) if token.isdigit() else token.lower() for token in SEGMENT_RE.findall(text)]


def _tail_sign(tail):
    """Ordering of a version with extra segments against the shorter one."""
    for token in tail:
        if isinstance(token, int):
            if token:
                return 1
            continue
        return -1 if token in PRERELEASE_WORDS else 1
    return 0


def _compare_segments(a, b):
    left, right = _segments(a), _segments(b)
    for x, y in zip(left, right):
        if x == y:
            continue
        if isinstance(x, int) and isinstance(y, int):
            return _sign(x - y)
        if isinstance(x, str) and isinstance(y, str):
            return -1 if x < y else 1
        # A number outranks a word: 1.0.rc1 < 1.0.1
        return 1 if isinstance(x, int) else -1

    if len(left) > len(right):
        return _tail_sign(left[len(right):])
    if len(right) > len(left):
        return -_tail_sign(right[len(left):])
    return 0


def compare_port_versions(a, b):
    """Compare two versions using epoch, segment order, then port revision."""
    epoch_a, version_a, revision_a = _split_port_version(a)
    epoch_b, version_b, revision_b = _split_port_version(b)
    if epoch_a != epoch_b:
        return _sign(epoch_a - epoch_b)
    result = _compare_segments(version_a, version_b)
    if result:
        return result
    return _sign(revision_a - revision_b)


def compare_versions(a, b) -> int:
    """
    Three-way comparison of two version strings.

    @param a str Left version (the installed package version when called by the matcher)
    @param b str Right version (the advisory bound)

    @return int -1 if a < b, 0 if equal, 1 if a > b
    """
    if not any(sep in a or sep in b for sep in "_,"):
        try:
            left, right = Version(a), Version(b)
        except InvalidVersion:
            pass
        else:
            return (left > right) - (left < right)
    return compare_port_versions(a, b)


@functools.lru_cache(maxsize=4096)
def _to_fnmatch(pattern):
    """Rewrite backslash escapes as single-character classes understood by fnmatch."""
    out = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\" and i + 1 < len(pattern):
            escaped = pattern[i + 1]
            out.append(f"[{escaped}]" if escaped in FNMATCH_SPECIALS else escaped)
            i += 2
            continue
        out.append("[\\]" if char == "\\" else char)
        i += 1
    return "".join(out)


def glob_match(pattern, name) -> bool:
    """Case-sensitive shell glob match of an advisory pattern against a package name."""
    return fnmatch.fnmatchcase(name, _to_fnmatch(pattern))
