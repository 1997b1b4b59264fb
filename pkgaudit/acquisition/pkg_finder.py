"""
@file pkg_finder.py
@brief Installed package enumeration (local, remote over SSH, or from a list)

Every source yields ``(name, version)`` tuples, ready for
matcher.audit_packages().

@details
**Sources:**
- Local machine: ``pkg query '%n %v'`` (FreeBSD package database)
- Remote machine over SSH (paramiko): package manager auto-detected from
  /etc/os-release
  - Debian/Ubuntu: apt
  - Red Hat/Fedora/AlmaLinux: dnf
  - Alpine Linux: apk
  - FreeBSD: pkg
- Text file: one ``name-version`` (or ``name version``) per line
- Single argument: ``name-version`` split at the last dash

**Listing Formats:**
@code
apt:  openssl/jammy-updates,now 3.0.2-0ubuntu1.10 amd64 [installed]
dnf:  openssl.x86_64    1:3.0.7-24.el9    @baseos
apk:  musl-1.2.4-r2 x86_64 {musl} (MIT) [installed]
pkg:  openssl 3.0.12,1
@endcode

Lines that do not fit the expected format ("Listing...", headers, blanks)
are skipped.

**SSH Connection:**
Requires SSH credentials from inventory.ini:
- host: IP address or hostname
- user: SSH username
- password: SSH password (or key-based auth via paramiko)
"""

import logging
import re
import subprocess

import paramiko

from pkgaudit.caching.constants import SSH_TIMEOUT
from pkgaudit.matching.errors import PackageNameError, PackageSourceError

logger = logging.getLogger(__name__)

LIST_COMMANDS = {
    "apt": "apt list --installed",
    "dnf": "dnf list --installed",
    "apk": "apk list --installed",
    "pkg": "pkg query '%n %v'",
}

APK_PACKAGE_RE = re.compile(r"^(?P<name>.+?)-(?P<version>\d[^-\s]*-r\d+)$")


def split_package_string(value):
    """
    Split ``name-version`` at the last dash.

    @param value str e.g. "openssl-1.0.1g"
    @return tuple (name, version)
    @throws PackageNameError If there is no dash, or either side is empty
    """
    name, sep, version = value.strip().rpartition("-")
    if not sep or not name or not version:
        raise PackageNameError(value)
    return name, version


def detect_package_manager(os_release):
    """
    Choose the package manager from /etc/os-release content.

    @param os_release str Output of ``cat /etc/os-release``
    @return str Key of LIST_COMMANDS, or None if the distribution is unknown
    """
    os_id = os_release.lower()
    if "almalinux" in os_id or "fedora" in os_id or "rhel" in os_id:
        return "dnf"
    if "ubuntu" in os_id or "debian" in os_id:
        return "apt"
    if "alpine" in os_id:
        return "apk"
    if "freebsd" in os_id:
        return "pkg"
    return None


def _decode(output):
    # Package names are not guaranteed to be UTF-8; keep the line, mark bad bytes
    return output.decode("utf-8", errors="replace")


def _parse_apt(line):
    # package-name/distro version architecture [status]
    if "/" not in line:
        return None
    fields = line.split()
    if len(fields) < 2:
        return None
    return fields[0].split("/")[0], fields[1]


def _parse_dnf(line):
    # package-name.architecture version repo
    fields = line.split()
    if len(fields) < 2 or not fields[1][0].isdigit():
        return None
    name = fields[0]
    if "." in name and not name.startswith("."):
        name = name.rsplit(".", 1)[0]
    return name, fields[1]


def _parse_apk(line):
    match = APK_PACKAGE_RE.match(line.split()[0])
    if not match:
        return None
    return match.group("name"), match.group("version")


def _parse_pkg(line):
    fields = line.split()
    if len(fields) != 2:
        return None
    return fields[0], fields[1]


LINE_PARSERS = {
    "apt": _parse_apt,
    "dnf": _parse_dnf,
    "apk": _parse_apk,
    "pkg": _parse_pkg,
}


def parse_package_listing(output, package_manager) -> list:
    """
    Extract (name, version) pairs from a package manager listing.

    @param output str Raw command output
    @param package_manager str Key of LINE_PARSERS

    @return list (name, version) tuples in listing order
    """
    parse = LINE_PARSERS[package_manager]
    packages = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        package = parse(line)
        if package is None:
            logger.debug(f"Skipping unrecognized {package_manager} line: {line}")
            continue
        packages.append(package)
    logger.info(f"Parsed {len(packages)} packages from {package_manager} output ({len(output.splitlines())} lines)")
    return packages


def get_installed_packages_local() -> list:
    """
    List packages registered in the local FreeBSD package database.

    @return list (name, version) tuples

    @throws PackageSourceError If pkg(8) is missing or fails
    """
    command = ["pkg", "query", "%n %v"]
    logger.debug(f"Running {' '.join(command)}")
    try:
        result = subprocess.run(command, capture_output=True, check=False)
    except OSError as e:
        logger.error(f"Cannot run pkg query: {e}")
        raise PackageSourceError(f"cannot query local package database: {e}") from e
    if result.returncode != 0:
        error = _decode(result.stderr).strip()
        logger.error(f"pkg query failed ({result.returncode}): {error}")
        raise PackageSourceError(f"cannot query local database: {error}")
    return parse_package_listing(_decode(result.stdout), "pkg")


def read_package_file(path):
    """
    Yield (name, version) from a package list file.

    @param path str File with one ``name-version`` or ``name version`` per line;
                ``#`` comments and blank lines are ignored

    @throws PackageSourceError If the file cannot be read
    @throws PackageNameError On a line that is not a package string
    """
    try:
        with open(path, "r", encoding="utf-8") as package_file:
            lines = package_file.readlines()
    except OSError as e:
        logger.error(f"Cannot read package list {path}: {e}")
        raise PackageSourceError(f"cannot read package list {path}: {e}") from e

    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        fields = line.split()
        if len(fields) == 2:
            yield fields[0], fields[1]
        else:
            yield split_package_string(line)


def get_installed_packages_remote(config, machine) -> list:
    """
    Retrieve installed packages from a remote machine via SSH.

    @param config configparser.ConfigParser Inventory with host/user/password per machine
    @param machine str Section name of the machine in the inventory

    @return list (name, version) tuples

    @throws PackageSourceError On connection failure or unknown distribution

    @details
    **Connection Process:**
    1. Establish SSH connection using paramiko
    2. Query /etc/os-release to detect OS type
    3. Select the package manager and run its listing command
    4. Parse the output and close the connection
    """
    section = config[machine]
    host = section["host"]

    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
    try:
        logger.debug(f"Connecting to {machine} ({host})")
        client.connect(host, username=section["user"], password=section.get("password"), timeout=SSH_TIMEOUT)
        _, stdout, _ = client.exec_command("cat /etc/os-release | grep -i id")
        os_id = _decode(stdout.read()).strip()
        logger.debug(f"OS information for {machine}: {os_id}")

        package_manager = detect_package_manager(os_id)
        if package_manager is None:
            logger.warning(f"Could not determine the package manager for {machine}")
            raise PackageSourceError(f"unknown distribution on {machine}")
        logger.info(f"{machine} uses {package_manager}")

        _, stdout, _ = client.exec_command(LIST_COMMANDS[package_manager])
        listing = _decode(stdout.read())
    except (paramiko.SSHException, OSError) as e:
        logger.error(f"Connection error to {machine} ({host}): {e}")
        raise PackageSourceError(f"cannot connect to {machine} ({host}): {e}") from e
    finally:
        client.close()
        logger.debug(f"Closed SSH connection to {machine}")

    return parse_package_listing(listing, package_manager)
