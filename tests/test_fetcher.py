"""Tests for the advisory database download."""

import io
import os
import tarfile
from unittest.mock import MagicMock

import pytest
import requests

from pkgaudit.acquisition.fetcher import FetchStatus, extract_database, fetch_database
from pkgaudit.matching.errors import FetchError

AUDIT_CONTENT = b"openssl>=1.0.1<1.0.2|http://example/adv|heartbleed\n"


class FakeResponse:
    def __init__(self, status_code, body=b""):
        self.status_code = status_code
        self.body = body
        self.closed = False

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start:start + chunk_size]

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True
        return False


def make_tarball(content, mode="w:bz2"):
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode=mode) as archive:
        info = tarfile.TarInfo("auditfile")
        info.size = len(content)
        archive.addfile(info, io.BytesIO(content))
    return buffer.getvalue()


def session_returning(response):
    session = MagicMock()
    session.get.return_value = response
    return session


class TestFetchDatabase:
    def test_extracts_tarball(self, tmp_path):
        dest = tmp_path / "db" / "auditfile"
        response = FakeResponse(200, make_tarball(AUDIT_CONTENT))

        status = fetch_database("http://example/auditfile.tbz", str(dest), session=session_returning(response))

        assert status is FetchStatus.UPDATED
        assert dest.read_bytes() == AUDIT_CONTENT
        assert response.closed
        assert not (tmp_path / "db" / "auditfile.part").exists()

    def test_plain_body_is_copied(self, tmp_path):
        dest = tmp_path / "auditfile"
        fetch_database("http://example/auditfile", str(dest), session=session_returning(FakeResponse(200, AUDIT_CONTENT)))
        assert dest.read_bytes() == AUDIT_CONTENT

    def test_not_modified_keeps_local_copy(self, tmp_path):
        dest = tmp_path / "auditfile"
        dest.write_bytes(b"old\n")
        session = session_returning(FakeResponse(304))

        assert fetch_database("http://example/a", str(dest), session=session) is FetchStatus.UP_TO_DATE
        assert dest.read_bytes() == b"old\n"
        headers = session.get.call_args.kwargs["headers"]
        assert "If-Modified-Since" in headers

    def test_no_conditional_header_without_local_copy(self, tmp_path):
        session = session_returning(FakeResponse(200, AUDIT_CONTENT))
        fetch_database("http://example/a", str(tmp_path / "auditfile"), session=session)
        assert session.get.call_args.kwargs["headers"] == {}

    def test_http_error(self, tmp_path):
        dest = tmp_path / "auditfile"
        with pytest.raises(FetchError, match="HTTP 500"):
            fetch_database("http://example/a", str(dest), session=session_returning(FakeResponse(500)))
        assert not dest.exists()

    def test_network_error(self, tmp_path):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("unreachable")
        with pytest.raises(FetchError, match="unreachable"):
            fetch_database("http://example/a", str(tmp_path / "auditfile"), session=session)


class TestExtractDatabase:
    def test_gzip_archive(self, tmp_path):
        archive = tmp_path / "auditfile.tgz"
        archive.write_bytes(make_tarball(AUDIT_CONTENT, mode="w:gz"))
        dest = tmp_path / "auditfile"
        extract_database(str(archive), str(dest))
        assert dest.read_bytes() == AUDIT_CONTENT

    def test_archive_without_files(self, tmp_path):
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w") as empty:
            info = tarfile.TarInfo("dir")
            info.type = tarfile.DIRTYPE
            empty.addfile(info)
        archive = tmp_path / "empty.tar"
        archive.write_bytes(buffer.getvalue())
        dest = tmp_path / "auditfile"

        with pytest.raises(FetchError):
            extract_database(str(archive), str(dest))
        assert not dest.exists()
        assert not os.path.exists(f"{dest}.part")
