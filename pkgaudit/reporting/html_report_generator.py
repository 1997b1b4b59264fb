"""
@file html_report_generator.py
@brief HTML audit report generation using Jinja2 templates

Aggregates every JSON audit report under {CACHE_DIR}/machines into one HTML
dashboard with per-target tables of vulnerable packages.

@details
Features:
- Aggregates vulnerable packages from all audited targets
- Statistics (targets, vulnerable packages, advisories, severity distribution)
- Severity estimated from advisory descriptions (the audit file carries no score)
- Template: pkgaudit/reporting/templates/audit_report.html
"""

import json
import logging
import os
from collections import defaultdict
from datetime import datetime

from jinja2 import Environment, FileSystemLoader, select_autoescape

from pkgaudit.caching.constants import CACHE_DIR
from pkgaudit.reporting.report_generator import REPORT_FILENAME

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")
TEMPLATE_NAME = "audit_report.html"

SEVERITY_KEYWORDS = [
    ("critical", ["remote code execution", "arbitrary code execution", "code execution",
                  "privilege escalation", "root"]),
    ("high", ["memory corruption", "buffer overflow", "heap overflow", "use after free",
              "sql injection", "cross-site scripting", "xss", "authentication bypass"]),
    ("medium", ["denial of service", "dos", "information disclosure", "race condition",
                "multiple vulnerabilities"]),
]

SEVERITY_COLORS = {
    "critical": "#DC2626",
    "high": "#F97316",
    "medium": "#EAB308",
    "low": "#22C55E",
}


def estimate_severity(description):
    """
    Estimate advisory severity from its description.

    @param description str Advisory description text
    @return str 'critical', 'high', 'medium' or 'low'
    """
    description_lower = description.lower()
    for severity, keywords in SEVERITY_KEYWORDS:
        if any(keyword in description_lower for keyword in keywords):
            return severity
    return "low"


def aggregate_reports(cache_dir=CACHE_DIR):
    """
    Aggregate all JSON audit reports.

    @param cache_dir str Root of the report tree

    @return dict {'targets': {name: {...}}, 'statistics': {...}}
    """
    machines_dir = os.path.join(cache_dir, "machines")
    aggregated = {
        "targets": {},
        "statistics": {
            "total_targets": 0,
            "total_vulnerable": 0,
            "total_advisories": 0,
            "severity_breakdown": defaultdict(int),
        },
    }

    if not os.path.isdir(machines_dir):
        logger.warning(f"Report directory not found: {machines_dir}")
        return aggregated

    statistics = aggregated["statistics"]
    for target_dir in sorted(os.listdir(machines_dir)):
        report_file = os.path.join(machines_dir, target_dir, REPORT_FILENAME)
        if not os.path.isfile(report_file):
            logger.debug(f"No audit report found for {target_dir}")
            continue

        try:
            with open(report_file, "r", encoding="utf-8") as f:
                report = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error processing report for {target_dir}: {e}")
            continue

        rows = []
        severity_distribution = defaultdict(int)
        for package in report.get("vulnerable_packages", []):
            for advisory in package.get("advisories", []):
                severity = estimate_severity(advisory.get("description", ""))
                rows.append({
                    "package": f"{package.get('name')}-{package.get('version')}",
                    "pattern": advisory.get("pattern", ""),
                    "description": advisory.get("description", ""),
                    "url": advisory.get("url", ""),
                    "severity": severity,
                })
                severity_distribution[severity] += 1
                statistics["severity_breakdown"][severity] += 1

        aggregated["targets"][target_dir] = {
            "name": report.get("target", target_dir),
            "timestamp": report.get("timestamp", ""),
            "packages_checked": report.get("packages_checked", 0),
            "vulnerable": len(report.get("vulnerable_packages", [])),
            "advisories": rows,
            "severity_distribution": dict(severity_distribution),
        }
        statistics["total_targets"] += 1
        statistics["total_vulnerable"] += len(report.get("vulnerable_packages", []))
        statistics["total_advisories"] += len(rows)
        logger.info(f"Processed report for {target_dir}: {len(rows)} advisories")

    return aggregated


def generate_html_report(output_file=None, cache_dir=CACHE_DIR):
    """
    Generate the HTML audit dashboard.

    @param output_file str Output path (default: {cache_dir}/audit_report.html)
    @param cache_dir str Root of the report tree

    @return str Path to the generated file, or None when there is nothing to report
    """
    if output_file is None:
        output_file = os.path.join(cache_dir, "audit_report.html")

    logger.info("Aggregating audit reports...")
    data = aggregate_reports(cache_dir)
    if not data["targets"]:
        logger.warning("No audit data found to report")
        return None

    env = Environment(
        loader=FileSystemLoader(TEMPLATES_DIR),
        autoescape=select_autoescape(["html", "xml"]),
    )
    template = env.get_template(TEMPLATE_NAME)
    html_content = template.render(
        targets=data["targets"],
        statistics=data["statistics"],
        severity_breakdown=dict(data["statistics"]["severity_breakdown"]),
        severity_colors=SEVERITY_COLORS,
        generated_at=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
    )

    output_dir = os.path.dirname(output_file)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(output_file, "w", encoding="utf-8") as f:
        f.write(html_content)

    logger.info(f"HTML report generated: {output_file}")
    return output_file
