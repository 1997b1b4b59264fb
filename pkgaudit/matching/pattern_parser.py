"""
@file pattern_parser.py
@brief Parser for advisory name/version-range patterns

@details
Pattern grammar (field 0 of an audit file line):
@code
name[op version[op version]]      op in  =  <  <=  >  >=
@endcode

Examples:
- ``foo>=1.2<2.0``  -> foo, (>= 1.2), (< 2.0)
- ``bar=3.1``       -> bar, (= 3.1), None
- ``baz``           -> baz, None, None   (every version matches)
- ``php5-*<5.4.3``  -> php5-*, (< 5.4.3), None

The name may embed glob characters; they are only interpreted by the matcher.
Parsing works on slices of the input and never modifies it.
"""

import logging
from typing import NamedTuple, Optional

from pkgaudit.matching.errors import PatternParseError
from pkgaudit.matching.models import VersionConstraint, VersionOp

logger = logging.getLogger(__name__)

OPERATOR_CHARS = "=<>"
MAX_CONSTRAINTS = 2


class ParsedPattern(NamedTuple):
    name: str
    constraint1: Optional[VersionConstraint]
    constraint2: Optional[VersionConstraint]


def _scan_operators(text):
    """
    Locate every operator in text.

    @return list of (VersionOp, operator_start, version_start) tuples
    """
    operators = []
    i = 0
    length = len(text)
    while i < length:
        char = text[i]
        if char not in OPERATOR_CHARS:
            i += 1
            continue
        # A trailing lone '<' or '>' has nothing to look ahead at
        if char != "=" and i + 1 < length and text[i + 1] == "=":
            op = VersionOp(char + "=")
        else:
            op = VersionOp(char)
        width = len(op.value)
        operators.append((op, i, i + width))
        i += width
    return operators


def parse_pattern(pattern) -> ParsedPattern:
    """
    Split an advisory pattern into its name and up to two version constraints.

    @param pattern str Pattern text, e.g. ``openssl>=1.0.1<1.0.2``

    @return ParsedPattern (name, constraint1, constraint2); absent constraints are None

    @throws PatternParseError When the name is empty

    @details
    The text before the first operator is the name. Each operator opens a
    constraint whose version runs to the next operator or the end of the
    string. Operators past the second one end the second version; they and
    the text following them are ignored.
    An operator at the very end (``foo<``) keeps an empty version; the
    comparator decides how an empty bound orders.
    """
    text = pattern.strip()
    operators = _scan_operators(text)

    name = text[:operators[0][1]] if operators else text
    if not name:
        raise PatternParseError(pattern, "empty package name")

    if len(operators) > MAX_CONSTRAINTS:
        ignored = text[operators[MAX_CONSTRAINTS][1]:]
        logger.debug(f"Ignoring extra constraints {ignored!r} in pattern {pattern!r}")

    constraints = [None, None]
    kept = operators[:MAX_CONSTRAINTS]
    for position, (op, _, version_start) in enumerate(kept):
        if position + 1 < len(operators):
            version_end = operators[position + 1][1]
        else:
            version_end = len(text)
        constraints[position] = VersionConstraint(op, text[version_start:version_end])

    return ParsedPattern(name, constraints[0], constraints[1])
