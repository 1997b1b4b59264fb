"""
@file report_generator.py
@brief JSON audit report generation

Saves the outcome of one audit (local machine, package list or remote
machine) as a JSON document that html_report_generator.py aggregates later.

@details
**Report Format:**

```json
{
  "target": "srv01",
  "timestamp": "2026-01-06T12:00:00.000000",
  "packages_checked": 412,
  "cancelled": false,
  "vulnerable_packages": [
    {
      "name": "openssl",
      "version": "1.0.1g",
      "advisories": [
        {
          "pattern": "openssl>=1.0.1<1.0.1h",
          "url": "https://vuxml.freebsd.org/freebsd/....html",
          "description": "OpenSSL -- multiple vulnerabilities"
        }
      ]
    }
  ]
}
```

**Persistence:**
- Saved to: {CACHE_DIR}/machines/{target}/audit_report.json
- Overwrites the previous report of the same target
"""

import json
import logging
import os
from datetime import datetime

from pkgaudit.caching.constants import CACHE_DIR

logger = logging.getLogger(__name__)

REPORT_FILENAME = "audit_report.json"


def build_report(target, audit_result):
    """
    Turn an AuditResult into the JSON-serialisable report structure.

    @param target str Machine or source name
    @param audit_result AuditResult From matcher.audit_packages()

    @return dict Report structure (see module documentation)
    """
    report = {
        "target": target,
        "timestamp": datetime.now().isoformat(),
        "packages_checked": audit_result.checked,
        "cancelled": audit_result.cancelled,
        "vulnerable_packages": [],
    }
    for (name, version), matches in audit_result.matches.items():
        report["vulnerable_packages"].append({
            "name": name,
            "version": version,
            "advisories": [
                {
                    "pattern": match.record.format_pattern(),
                    "url": match.url,
                    "description": match.description,
                }
                for match in matches
            ],
        })
    return report


def save_audit_report(target, audit_result, cache_dir=CACHE_DIR):
    """
    Generate and save the JSON audit report for a target.

    @param target str Machine or source name
    @param audit_result AuditResult Outcome of the audit
    @param cache_dir str Root of the report tree

    @return str Path to the written report

    @throws OSError If the report cannot be written
    """
    report_dir = os.path.join(cache_dir, "machines", target)
    os.makedirs(report_dir, exist_ok=True)

    report = build_report(target, audit_result)
    report_file = os.path.join(report_dir, REPORT_FILENAME)
    try:
        with open(report_file, "w", encoding="utf-8") as f:
            f.write(json.dumps(report, indent=2))
    except OSError as e:
        logger.error(f"Error saving audit report for {target}: {e}")
        raise
    logger.info(f"Audit report saved for {target}: {report_file}")
    return report_file

