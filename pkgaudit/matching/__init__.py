"""
@file __init__.py
@brief Advisory matching engine

@details
Typical use:
@code
result = load("/var/db/pkg/auditfile")
index = build_index(result.records)
for match in query(index, "openssl", "1.0.1g"):
    print(match.description, match.url)
@endcode

"""

from pkgaudit.matching.database_loader import load
from pkgaudit.matching.index_builder import build_index
from pkgaudit.matching.matcher import audit_packages, naive_query, query

__all__ = ["load", "build_index", "query", "naive_query", "audit_packages"]
