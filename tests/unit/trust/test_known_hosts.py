"""Tests for known_hosts store primitives."""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from ssh_key_bootstrap.trust.exceptions import TrustStoreError
from ssh_key_bootstrap.trust.known_hosts import (
    HostKeyStatus,
    append_host_key,
    ensure_known_hosts_file,
    fingerprint_sha256,
    format_known_hosts_line,
    load_host_keys,
    lookup_host_key,
)
from tests.factories import make_host_key


class TestFingerprint:
    def test_openssh_format(self) -> None:
        fingerprint = fingerprint_sha256(make_host_key())
        assert fingerprint.startswith("SHA256:")
        assert not fingerprint.endswith("=")
        assert len(fingerprint) == len("SHA256:") + 43


class TestEnsureKnownHostsFile:
    def test_creates_with_permissions(self, tmp_path: Path) -> None:
        path = tmp_path / "ssh" / "known_hosts"
        ensure_known_hosts_file(path)

        assert path.is_file()
        assert stat.S_IMODE(path.stat().st_mode) & 0o077 == 0
        assert stat.S_IMODE(path.parent.stat().st_mode) & 0o077 == 0

    def test_existing_file_untouched(self, tmp_path: Path) -> None:
        path = tmp_path / "known_hosts"
        path.write_text("web1 ssh-ed25519 AAAA\n", encoding="utf-8")
        ensure_known_hosts_file(path)
        assert path.read_text(encoding="utf-8") == "web1 ssh-ed25519 AAAA\n"

    @pytest.mark.skipif(os.geteuid() == 0, reason="root ignores directory permissions")
    def test_unwritable_directory(self, tmp_path: Path) -> None:
        locked = tmp_path / "locked"
        locked.mkdir(mode=0o500)
        try:
            with pytest.raises(TrustStoreError, match="prepare known_hosts file"):
                ensure_known_hosts_file(locked / "sub" / "known_hosts")
        finally:
            locked.chmod(0o700)


class TestAppendAndLookup:
    def test_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "known_hosts"
        ensure_known_hosts_file(path)
        key = make_host_key()

        append_host_key(path, "[web1]:2222", key)
        status, stored = lookup_host_key(load_host_keys(path), "[web1]:2222", key)

        assert status == HostKeyStatus.MATCH
        assert stored is not None
        assert stored.asbytes() == key.asbytes()

    def test_unknown_host(self, tmp_path: Path) -> None:
        path = tmp_path / "known_hosts"
        ensure_known_hosts_file(path)
        assert lookup_host_key(load_host_keys(path), "web1", make_host_key()) == (HostKeyStatus.UNKNOWN, None)

    def test_mismatch_reports_stored_key(self, tmp_path: Path) -> None:
        path = tmp_path / "known_hosts"
        ensure_known_hosts_file(path)
        stored_key = make_host_key()
        append_host_key(path, "web1", stored_key)

        status, stored = lookup_host_key(load_host_keys(path), "web1", make_host_key())

        assert status == HostKeyStatus.MISMATCH
        assert stored is not None
        assert stored.asbytes() == stored_key.asbytes()

    def test_missing_trailing_newline_repaired(self, tmp_path: Path) -> None:
        path = tmp_path / "known_hosts"
        other = make_host_key()
        path.write_text(format_known_hosts_line("other", other), encoding="utf-8")

        key = make_host_key()
        append_host_key(path, "web1", key)

        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines == [format_known_hosts_line("other", other), format_known_hosts_line("web1", key)]

    def test_existing_lines_preserved(self, tmp_path: Path) -> None:
        path = tmp_path / "known_hosts"
        path.write_text("# managed elsewhere\n", encoding="utf-8")
        append_host_key(path, "web1", make_host_key())
        assert path.read_text(encoding="utf-8").startswith("# managed elsewhere\n")

    def test_undecodable_store(self, tmp_path: Path) -> None:
        path = tmp_path / "known_hosts"
        path.write_bytes(b"\xff\xfe web1 ssh-ed25519 AAAA\n")

        with pytest.raises(TrustStoreError, match="load known_hosts"):
            load_host_keys(path)

    def test_format_line(self) -> None:
        key = make_host_key()
        assert format_known_hosts_line("web1", key) == f"web1 {key.get_name()} {key.get_base64()}"
