"""
@file fetcher.py
@brief Download and extraction of the remote advisory database

@details
**Fetch Process:**
1. Use the local audit file's modification time as ``If-Modified-Since``
2. HTTP 304 means the local copy is current: nothing is written
3. Otherwise stream the body to a temporary file under $TMPDIR
4. If the body is a tar archive (any compression tarfile understands, the
   upstream file is a bzip2 tarball), copy its regular file member into the
   destination; a plain body is copied as-is
5. The destination is replaced atomically and the temporary file removed

**Error Handling:**
Network failures, HTTP errors and unreadable archives raise FetchError.
There is no retry logic; a failed fetch leaves the previous audit file in
place.
"""

import enum
import logging
import os
import shutil
import tarfile
import tempfile
from email.utils import formatdate

import requests

from pkgaudit.caching.constants import FETCH_TIMEOUT
from pkgaudit.matching.errors import FetchError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class FetchStatus(enum.Enum):
    UPDATED = "updated"
    UP_TO_DATE = "up-to-date"


def _conditional_headers(dest):
    try:
        mtime = os.stat(dest).st_mtime
    except FileNotFoundError:
        return {}
    return {"If-Modified-Since": formatdate(mtime, usegmt=True)}


def _download(response, tmp_path):
    with open(tmp_path, "wb") as tmp_file:
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if chunk:
                tmp_file.write(chunk)


def extract_database(archive_path, dest):
    """
    Copy the audit file out of a downloaded archive into dest.

    @param archive_path str Downloaded file (tar archive or plain audit file)
    @param dest str Final audit file location

    @throws FetchError When the archive holds no regular file or cannot be read
    """
    partial = f"{dest}.part"
    try:
        if tarfile.is_tarfile(archive_path):
            with tarfile.open(archive_path, "r:*") as archive:
                members = [member for member in archive.getmembers() if member.isfile()]
                if not members:
                    raise FetchError(f"no audit file in archive {archive_path}")
                # Upstream ships a single member; the last one wins otherwise
                member = members[-1]
                logger.debug(f"Extracting {member.name} from {archive_path}")
                with archive.extractfile(member) as source, open(partial, "wb") as target:
                    shutil.copyfileobj(source, target)
        else:
            shutil.copyfile(archive_path, partial)
        os.replace(partial, dest)
    except (OSError, tarfile.TarError) as e:
        raise FetchError(f"cannot extract audit file to {dest}: {e}") from e
    finally:
        if os.path.exists(partial):
            os.unlink(partial)


def fetch_database(url, dest, timeout=FETCH_TIMEOUT, session=None) -> FetchStatus:
    """
    Retrieve the advisory database if the remote copy is newer than dest.

    @param url str Remote audit file location
    @param dest str Local audit file path
    @param timeout float Request timeout in seconds
    @param session requests.Session Optional session (connection reuse, tests)

    @return FetchStatus UPDATED when dest was rewritten, UP_TO_DATE on HTTP 304

    @throws FetchError On network, HTTP or extraction failure
    """
    http = session or requests
    headers = _conditional_headers(dest)
    logger.info(f"Fetching audit file from {url}")

    try:
        response = http.get(url, headers=headers, timeout=timeout, stream=True)
    except requests.RequestException as e:
        logger.error(f"Cannot fetch audit file from {url}: {e}")
        raise FetchError(f"cannot fetch audit file: {e}") from e

    with response:
        if response.status_code == 304:
            logger.info(f"Audit file {dest} is up to date")
            return FetchStatus.UP_TO_DATE
        if response.status_code != 200:
            logger.error(f"Cannot fetch audit file from {url}: HTTP {response.status_code}")
            raise FetchError(f"cannot fetch audit file: HTTP {response.status_code}")

        fd, tmp_path = tempfile.mkstemp(prefix="auditfile", suffix=".tbz")
        os.close(fd)
        try:
            try:
                _download(response, tmp_path)
                dest_dir = os.path.dirname(dest)
                if dest_dir:
                    os.makedirs(dest_dir, exist_ok=True)
            except (OSError, requests.RequestException) as e:
                raise FetchError(f"cannot download audit file: {e}") from e
            extract_database(tmp_path, dest)
        finally:
            os.unlink(tmp_path)

    logger.info(f"Audit file saved to {dest}")
    return FetchStatus.UPDATED
