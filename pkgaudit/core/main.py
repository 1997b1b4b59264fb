"""
@file main.py
@brief Command line entry point: audit installed packages against known vulnerabilities

This script performs a package audit by:
1. Optionally fetching the latest advisory database (-F)
2. Loading and indexing the advisory database
3. Enumerating installed packages (local database, package list file,
   single name-version argument, or remote machines over SSH)
4. Matching every package against the advisory index
5. Printing vulnerable packages and optional JSON/HTML reports

@details
Usage examples:
@code
pkgaudit -F                          # fetch the database, audit local packages
pkgaudit -q                          # only print vulnerable name-version lines
pkgaudit openssl-1.0.1g              # audit a single package
pkgaudit --packages-file list.txt    # audit a package list
pkgaudit --inventory inventory.ini --json --html
@endcode

Exit codes follow sysexits(3): 0 nothing vulnerable, 1 vulnerable packages
found, 64 usage, 65 unreadable database, 74 fetch or package source failure,
78 configuration error, 130 interrupted.
"""

import argparse
import configparser
import logging
import os
import sys
from datetime import datetime

from pkgaudit import __version__
from pkgaudit.acquisition import pkg_finder
from pkgaudit.acquisition.fetcher import FetchStatus, fetch_database
from pkgaudit.caching import constants
from pkgaudit.matching.database_loader import load
from pkgaudit.matching.errors import (
    FetchError,
    PackageNameError,
    PackageSourceError,
    SourceError,
)
from pkgaudit.matching.index_builder import build_index
from pkgaudit.matching.matcher import audit_packages
from pkgaudit.reporting import html_report_generator
from pkgaudit.reporting import output_formatter as fmt
from pkgaudit.reporting import report_generator

logger = logging.getLogger(__name__)

SUPPORTED_MACHINE_TYPES = ("linux", "freebsd")


def setup_logging(verbose=False, log_dir=None):
    """
    Configure file logging (and stderr logging with --verbose).

    @param verbose bool Also log DEBUG messages to stderr
    @param log_dir str Directory for the timestamped log file

    @return str Path of the log file
    """
    log_dir = log_dir or constants.LOG_DIR
    os.makedirs(log_dir, exist_ok=True)
    log_filename = os.path.join(log_dir, f"package_audit_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log")

    handlers = [logging.FileHandler(log_filename)]
    if verbose:
        handlers.append(logging.StreamHandler(sys.stderr))
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=handlers,
        force=True,
    )
    return log_filename


def parse_arguments(argv=None):
    """
    Parse command-line arguments.

    @param argv list Arguments without the program name (default: sys.argv[1:])
    @return argparse.Namespace Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="pkgaudit",
        description="Audit installed packages for known vulnerabilities",
    )
    parser.add_argument(
        "package",
        nargs="?",
        help="Audit a single package given as name-version",
    )
    parser.add_argument(
        "-F", "--fetch",
        action="store_true",
        help="Fetch the advisory database before auditing",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only print the name-version of vulnerable packages",
    )
    parser.add_argument(
        "-f", "--file",
        default=constants.AUDIT_FILE,
        help=f"Advisory database path (default: {constants.AUDIT_FILE})",
    )
    parser.add_argument(
        "--url",
        default=constants.AUDIT_URL,
        help=f"Advisory database URL used by --fetch (default: {constants.AUDIT_URL})",
    )
    parser.add_argument(
        "--packages-file",
        help="Read installed packages from a file (one name-version per line)",
    )
    parser.add_argument(
        "--inventory",
        help=f"Audit the machines of an inventory file over SSH (e.g. {constants.DEFAULT_INVENTORY})",
    )
    parser.add_argument(
        "--machine",
        help="Only audit this machine from the inventory",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help=f"Save a JSON report per audited target under {constants.CACHE_DIR}/machines",
    )
    parser.add_argument(
        "--html",
        action="store_true",
        help="Aggregate JSON reports into an HTML dashboard",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of parallel query threads (default: 1)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Also log debug messages to stderr",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser.parse_args(argv)


def fetch_step(args):
    """Fetch the database; returns an exit code or None to continue."""
    try:
        status = fetch_database(args.url, args.file)
    except FetchError as e:
        fmt.print_error(f"Cannot fetch audit file: {e}")
        return constants.EX_IOERR
    if status is FetchStatus.UP_TO_DATE:
        print("Audit file up-to-date.")
    elif not args.quiet:
        fmt.print_success(f"Audit file saved to {args.file}")
    return None


def load_index(path, quiet=False):
    """
    Load and index the advisory database.

    @return tuple (LoadResult, Index)
    @throws SourceError When the database cannot be read
    """
    result = load(path)
    if result.warnings and not quiet:
        fmt.print_warning(f"{len(result.warnings)} problem(s) in audit file {path}, see the log for details")
    return result, build_index(result.records)


def audit_target(target, packages, index, args):
    """
    Audit one set of packages and print its vulnerable packages as they are found.

    @return AuditResult
    """
    def on_match(name, version, matches):
        fmt.print_package_matches(name, version, matches, quiet=args.quiet)

    logger.info(f"Auditing {target}")
    result = audit_packages(index, packages, max_workers=args.workers, on_match=on_match)
    if args.json:
        report_generator.save_audit_report(target, result)
    return result


def inventory_targets(args):
    """
    Read the machine selection from the inventory.

    @return tuple (ConfigParser, list of machine names)
    @throws PackageSourceError When the inventory or the requested machine is missing
    """
    if not os.path.exists(args.inventory):
        raise PackageSourceError(f"inventory file not found: {args.inventory}")
    config = configparser.ConfigParser()
    config.read(args.inventory)
    logger.info(f"Configuration loaded from: {args.inventory}")

    machines = config.sections()
    if args.machine:
        if args.machine not in machines:
            raise PackageSourceError(f"machine {args.machine} not in {args.inventory}")
        machines = [args.machine]
    return config, machines


def audit_inventory(args, index):
    """Audit every selected inventory machine; returns (vulnerable package count, cancelled)."""
    config, machines = inventory_targets(args)
    machines_processed = 0
    total_vulnerable = 0
    cancelled = False

    for machine in machines:
        machine_type = config[machine].get("type", "linux")
        if machine_type not in SUPPORTED_MACHINE_TYPES:
            fmt.print_warning(f"{machine}: machine type {machine_type} not supported")
            logger.warning(f"Skipping {machine_type} machine {machine} - not supported")
            continue

        if not args.quiet:
            fmt.print_section(f"{machine} - {config[machine].get('host', '?')}")
        try:
            packages = pkg_finder.get_installed_packages_remote(config, machine)
        except PackageSourceError as e:
            fmt.print_error(str(e))
            continue

        result = audit_target(machine, packages, index, args)
        total_vulnerable += result.vulnerable
        machines_processed += 1
        if not args.quiet:
            fmt.print_summary(result.vulnerable)
        if result.cancelled:
            cancelled = True
            break

    if not args.quiet:
        fmt.print_stats(len(machines), machines_processed, total_vulnerable)
    return total_vulnerable, cancelled


def run(args):
    """Run an audit for parsed arguments and return the exit code."""
    single_package = None
    if args.package:
        try:
            single_package = pkg_finder.split_package_string(args.package)
        except PackageNameError as e:
            fmt.print_error(str(e))
            return constants.EX_USAGE

    if args.fetch:
        code = fetch_step(args)
        if code is not None:
            return code

    try:
        _, index = load_index(args.file, quiet=args.quiet)
    except SourceError as e:
        # SourceNotFound already carries the "run pkgaudit -F first" hint
        fmt.print_error(str(e))
        return constants.EX_DATAERR
    logger.info(f"Advisory index ready: {len(index)} entries")

    cancelled = False
    try:
        if single_package:
            result = audit_target(args.package, [single_package], index, args)
            vulnerable = result.vulnerable
            cancelled = result.cancelled
        elif args.inventory:
            vulnerable, cancelled = audit_inventory(args, index)
        else:
            if args.packages_file:
                target = os.path.basename(args.packages_file)
                packages = pkg_finder.read_package_file(args.packages_file)
            else:
                target = "localhost"
                packages = pkg_finder.get_installed_packages_local()
            result = audit_target(target, packages, index, args)
            vulnerable = result.vulnerable
            cancelled = result.cancelled
            if not args.quiet:
                fmt.print_summary(vulnerable)
    except PackageNameError as e:
        fmt.print_error(str(e))
        return constants.EX_DATAERR
    except PackageSourceError as e:
        fmt.print_error(str(e))
        return constants.EX_IOERR
    except OSError as e:
        fmt.print_error(f"Cannot write report: {e}")
        return constants.EX_IOERR

    if args.html:
        report_file = html_report_generator.generate_html_report()
        if report_file and not args.quiet:
            fmt.print_success(f"HTML report generated: {report_file}")

    if cancelled:
        return constants.EX_INTERRUPTED
    return constants.EX_VULNERABLE if vulnerable else constants.EX_OK


def main(argv=None):
    """
    Main entry point for the package audit tool.

    @param argv list Command line arguments without the program name
    @return int Exit code
    """
    args = parse_arguments(argv)
    if args.machine and not args.inventory:
        fmt.print_error("--machine requires --inventory")
        return constants.EX_USAGE
    if args.workers < 1:
        fmt.print_error("--workers must be at least 1")
        return constants.EX_USAGE

    try:
        log_filename = setup_logging(args.verbose)
    except OSError as e:
        fmt.print_error(f"Cannot create log directory: {e}")
        return constants.EX_CONFIG

    logger.info("=" * 70)
    logger.info("Starting package audit")
    logger.info(f"Log file: {log_filename}")
    logger.info(f"Audit file: {args.file}")

    try:
        code = run(args)
    except KeyboardInterrupt:
        fmt.print_warning("Interrupted")
        logger.warning("Audit interrupted by user")
        code = constants.EX_INTERRUPTED

    logger.info(f"Package audit finished with exit code {code}")
    logger.info("=" * 70)
    return code
