"""Shared fixtures for the pkgaudit test suite."""

import pytest

from pkgaudit.matching.models import AdvisoryRecord, VersionConstraint, VersionOp


SAMPLE_AUDIT_FILE = """\
# Advisory database used by the tests
openssl>=1.0.1<1.0.2|http://example/adv|heartbleed
zlib-[0-9]*<1.2.8|http://example/zlib|zlib overflow
zlib-devel|http://example/zlib-devel|zlib headers
php5-*<5.4.3|http://example/php|php cgi
php5|http://example/php5|php main
*-weblogin>0|http://example/weblogin|weblogin plugins

bash<4.3.30|http://example/shellshock|shellshock
bash<4.3.25|http://example/shellshock-1|shellshock first fix
"""


def make_comparator(order):
    """Comparator following the position of each version in order."""
    rank = {version: position for position, version in enumerate(order)}

    def compare(a, b):
        return (rank[a] > rank[b]) - (rank[a] < rank[b])

    return compare


def record(pattern, c1=None, c2=None, url="", description=""):
    """Build a record; c1/c2 are (operator text, version) tuples."""
    def constraint(bound):
        if bound is None:
            return None
        return VersionConstraint(VersionOp(bound[0]), bound[1])

    return AdvisoryRecord(pattern, constraint(c1), constraint(c2), url, description)


@pytest.fixture
def audit_file(tmp_path):
    path = tmp_path / "auditfile"
    path.write_text(SAMPLE_AUDIT_FILE, encoding="utf-8")
    return path
