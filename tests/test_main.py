"""Tests for the pkgaudit command line."""

import logging
import os
import subprocess

import pytest

from pkgaudit.acquisition import pkg_finder
from pkgaudit.caching import constants
from pkgaudit.core import main as cli
from pkgaudit.matching.errors import PackageSourceError

setup_logging = cli.setup_logging


@pytest.fixture(autouse=True)
def no_log_file(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "setup_logging", lambda verbose=False: str(tmp_path / "test.log"))


@pytest.fixture
def packages_file(tmp_path):
    path = tmp_path / "packages.txt"
    path.write_text("openssl-1.0.1g\ncurl-8.0.1\nbash 4.3.20\n", encoding="utf-8")
    return path


class TestSinglePackage:
    def test_vulnerable(self, capsys, audit_file):
        assert cli.main(["-f", str(audit_file), "openssl-1.0.1g"]) == constants.EX_VULNERABLE
        out = capsys.readouterr().out
        assert "openssl-1.0.1g is vulnerable:" in out
        assert "WWW: http://example/adv" in out

    def test_not_vulnerable(self, capsys, audit_file):
        assert cli.main(["-f", str(audit_file), "openssl-1.0.2"]) == constants.EX_OK
        assert capsys.readouterr().out == ""

    def test_quiet(self, capsys, audit_file):
        assert cli.main(["-q", "-f", str(audit_file), "bash-4.3.20"]) == constants.EX_VULNERABLE
        assert capsys.readouterr().out == "bash-4.3.20\n"

    def test_bad_package_string(self, capsys, audit_file):
        assert cli.main(["-f", str(audit_file), "openssl"]) == constants.EX_USAGE
        assert "bad package name format" in capsys.readouterr().err


class TestDatabaseErrors:
    def test_missing_database(self, capsys, tmp_path):
        assert cli.main(["-f", str(tmp_path / "missing"), "openssl-1.0.1g"]) == constants.EX_DATAERR
        assert "pkgaudit -F" in capsys.readouterr().err

    def test_fetch_failure(self, monkeypatch, audit_file):
        def failing_fetch(url, dest):
            raise cli.FetchError("HTTP 503")

        monkeypatch.setattr(cli, "fetch_database", failing_fetch)
        assert cli.main(["-F", "-f", str(audit_file), "openssl-1.0.1g"]) == constants.EX_IOERR

    def test_fetch_up_to_date(self, capsys, monkeypatch, audit_file):
        monkeypatch.setattr(cli, "fetch_database", lambda url, dest: cli.FetchStatus.UP_TO_DATE)
        assert cli.main(["-F", "-f", str(audit_file), "curl-8.0"]) == constants.EX_OK
        assert "Audit file up-to-date." in capsys.readouterr().out


class TestPackageSources:
    def test_packages_file(self, capsys, audit_file, packages_file):
        code = cli.main(["-f", str(audit_file), "--packages-file", str(packages_file)])
        assert code == constants.EX_VULNERABLE
        out = capsys.readouterr().out
        assert "openssl-1.0.1g is vulnerable:" in out
        assert "bash-4.3.20 is vulnerable:" in out
        assert "curl" not in out
        assert "2 problem(s) in your installed packages found." in out

    def test_packages_file_with_workers(self, capsys, audit_file, packages_file):
        code = cli.main(["-q", "--workers", "3", "-f", str(audit_file), "--packages-file", str(packages_file)])
        assert code == constants.EX_VULNERABLE
        assert capsys.readouterr().out.splitlines() == ["openssl-1.0.1g", "bash-4.3.20"]

    def test_bad_line_in_packages_file(self, tmp_path, audit_file):
        path = tmp_path / "packages.txt"
        path.write_text("noversion\n", encoding="utf-8")
        assert cli.main(["-f", str(audit_file), "--packages-file", str(path)]) == constants.EX_DATAERR

    def test_local_packages(self, capsys, monkeypatch, audit_file):
        monkeypatch.setattr(pkg_finder, "get_installed_packages_local", lambda: [("zlib-devel", "1.0")])
        assert cli.main(["-f", str(audit_file)]) == constants.EX_VULNERABLE
        assert "zlib-devel-1.0 is vulnerable:" in capsys.readouterr().out

    def test_local_package_database_unavailable(self, monkeypatch, audit_file):
        def unavailable():
            raise PackageSourceError("pkg not found")

        monkeypatch.setattr(pkg_finder, "get_installed_packages_local", unavailable)
        assert cli.main(["-f", str(audit_file)]) == constants.EX_IOERR

    def test_interrupted_audit(self, monkeypatch, audit_file):
        def interrupted():
            yield "openssl", "1.0.1g"
            raise KeyboardInterrupt

        monkeypatch.setattr(pkg_finder, "get_installed_packages_local", interrupted)
        assert cli.main(["-q", "-f", str(audit_file)]) == constants.EX_INTERRUPTED

    def test_local_listing_with_undecodable_name(self, capsys, monkeypatch, audit_file):
        completed = subprocess.CompletedProcess(["pkg"], 0, stdout=b"caf\xe9 1.0\nopenssl 1.0.1g\n", stderr=b"")
        monkeypatch.setattr(pkg_finder.subprocess, "run", lambda *args, **kwargs: completed)
        assert cli.main(["-q", "-f", str(audit_file)]) == constants.EX_VULNERABLE
        assert capsys.readouterr().out == "openssl-1.0.1g\n"


class TestInventory:
    @pytest.fixture
    def inventory(self, tmp_path):
        path = tmp_path / "inventory.ini"
        path.write_text(
            "[web1]\ntype = linux\nhost = 10.0.0.5\nuser = audit\npassword = secret\n\n"
            "[printer]\ntype = windows\nhost = 10.0.0.9\nuser = admin\n",
            encoding="utf-8",
        )
        return path

    def test_audits_supported_machines(self, capsys, monkeypatch, audit_file, inventory):
        audited = []

        def remote(config, machine):
            audited.append(machine)
            return [("openssl", "1.0.1g")]

        monkeypatch.setattr(pkg_finder, "get_installed_packages_remote", remote)
        code = cli.main(["-f", str(audit_file), "--inventory", str(inventory)])

        assert code == constants.EX_VULNERABLE
        assert audited == ["web1"]
        out = capsys.readouterr().out
        assert "not supported" in out
        assert "openssl-1.0.1g is vulnerable:" in out

    def test_unknown_machine(self, audit_file, inventory):
        code = cli.main(["-f", str(audit_file), "--inventory", str(inventory), "--machine", "db9"])
        assert code == constants.EX_IOERR

    def test_machine_requires_inventory(self, audit_file):
        assert cli.main(["-f", str(audit_file), "--machine", "web1"]) == constants.EX_USAGE

    def test_interrupted_machine_stops_the_inventory(self, monkeypatch, audit_file, inventory):
        def remote(config, machine):
            yield "openssl", "1.0.1g"
            raise KeyboardInterrupt

        monkeypatch.setattr(pkg_finder, "get_installed_packages_remote", remote)
        code = cli.main(["-q", "-f", str(audit_file), "--inventory", str(inventory)])
        assert code == constants.EX_INTERRUPTED


class TestReports:
    def test_json_and_html(self, monkeypatch, tmp_path, audit_file):
        cache_dir = str(tmp_path / "cache")
        monkeypatch.setattr(cli.report_generator, "save_audit_report",
                            _bind_cache_dir(cli.report_generator.save_audit_report, cache_dir))
        monkeypatch.setattr(cli.html_report_generator, "generate_html_report",
                            _bind_cache_dir(cli.html_report_generator.generate_html_report, cache_dir))

        code = cli.main(["-q", "--json", "--html", "-f", str(audit_file), "openssl-1.0.1g"])

        assert code == constants.EX_VULNERABLE
        assert os.path.isfile(os.path.join(cache_dir, "machines", "openssl-1.0.1g", "audit_report.json"))
        assert os.path.isfile(os.path.join(cache_dir, "audit_report.html"))

    def test_html_for_single_package(self, capsys, monkeypatch, tmp_path, audit_file):
        cache_dir = str(tmp_path / "cache")
        monkeypatch.setattr(cli.report_generator, "save_audit_report",
                            _bind_cache_dir(cli.report_generator.save_audit_report, cache_dir))
        monkeypatch.setattr(cli.html_report_generator, "generate_html_report",
                            _bind_cache_dir(cli.html_report_generator.generate_html_report, cache_dir))

        code = cli.main(["--json", "--html", "-f", str(audit_file), "openssl-1.0.1g"])

        assert code == constants.EX_VULNERABLE
        assert os.path.isfile(os.path.join(cache_dir, "audit_report.html"))
        assert "HTML report generated" in capsys.readouterr().out


def _bind_cache_dir(function, cache_dir):
    def bound(*args, **kwargs):
        kwargs.setdefault("cache_dir", cache_dir)
        return function(*args, **kwargs)
    return bound


def test_setup_logging_writes_to_log_dir(tmp_path):
    root = logging.getLogger()
    saved = root.handlers[:]
    level = root.level
    try:
        log_file = setup_logging(log_dir=str(tmp_path / "logs"))
        assert os.path.dirname(log_file) == str(tmp_path / "logs")
        assert os.path.isfile(log_file)
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved
        root.setLevel(level)
