"""
@file constants.py
@brief Configuration constants for the package audit tool

@details
Every value can be overridden from the environment:

| Variable               | Default                                          |
|------------------------|--------------------------------------------------|
| PKGAUDIT_DB_DIR        | /var/db/pkg                                      |
| PKGAUDIT_AUDIT_FILE    | {PKGAUDIT_DB_DIR}/auditfile                      |
| PKGAUDIT_URL           | https://vuxml.freebsd.org/freebsd/auditfile.tbz  |
| PKGAUDIT_CACHE_DIR     | cache                                            |
| PKGAUDIT_LOG_DIR       | logs                                             |
| PKGAUDIT_INVENTORY     | inventory.ini                                    |
| PKGAUDIT_FETCH_TIMEOUT | 60 (seconds)                                     |
| PKGAUDIT_SSH_TIMEOUT   | 15 (seconds)                                     |

Machine credentials are not stored here; they come from the inventory file
(one configparser section per machine with type, host, user and password).
"""

import os

DB_DIR = os.environ.get("PKGAUDIT_DB_DIR", "/var/db/pkg")
AUDIT_FILE = os.environ.get("PKGAUDIT_AUDIT_FILE", os.path.join(DB_DIR, "auditfile"))
AUDIT_URL = os.environ.get("PKGAUDIT_URL", "https://vuxml.freebsd.org/freebsd/auditfile.tbz")

CACHE_DIR = os.environ.get("PKGAUDIT_CACHE_DIR", "cache")
LOG_DIR = os.environ.get("PKGAUDIT_LOG_DIR", "logs")
DEFAULT_INVENTORY = os.environ.get("PKGAUDIT_INVENTORY", "inventory.ini")

FETCH_TIMEOUT = float(os.environ.get("PKGAUDIT_FETCH_TIMEOUT", "60"))
SSH_TIMEOUT = float(os.environ.get("PKGAUDIT_SSH_TIMEOUT", "15"))

# sysexits(3) codes used by the command line tool
EX_OK = 0
EX_VULNERABLE = 1
EX_USAGE = 64
EX_DATAERR = 65
EX_IOERR = 74
EX_CONFIG = 78
EX_INTERRUPTED = 130
