"""Unit tests for source discovery."""

from __future__ import annotations

import stat
from pathlib import Path
from types import SimpleNamespace

import pytest

from core.errors import NmonTransportError
from core.types import SourceFile
from ingest.source_locator import locate_source_files, parse_remote_spec, select_nmon_files
from ingest.transport import SftpSessionPool


class _FakeSession:
    """In-memory SFTP session exposing a tiny remote tree."""

    def __init__(self, tree: dict[str, list[str] | None]) -> None:
        self._tree = tree

    def stat(self, path: str) -> SimpleNamespace:
        if path not in self._tree:
            raise FileNotFoundError(path)
        mode = stat.S_IFDIR if self._tree[path] is not None else stat.S_IFREG
        return SimpleNamespace(st_mode=mode | 0o755)

    def listdir_attr(self, path: str) -> list[SimpleNamespace]:
        entries = []
        for name in self._tree[path] or []:
            child = f"{path}/{name}"
            mode = stat.S_IFDIR if self._tree.get(child) is not None else stat.S_IFREG
            entries.append(SimpleNamespace(filename=name, st_mode=mode))
        return entries

    def close(self) -> None:
        return None


def _pool(tree: dict[str, list[str] | None], calls: list[tuple] | None = None) -> SftpSessionPool:
    def _connect(host: str, user: str, key_path: str | None) -> _FakeSession:
        if calls is not None:
            calls.append((host, user, key_path))
        return _FakeSession(tree)

    return SftpSessionPool(_connect)


def test_parse_remote_spec_reads_user_and_host() -> None:
    """Explicit user@ should override the default user."""
    remote_spec = parse_remote_spec("admin@server01:/var/nmon", "root")

    assert (remote_spec.user, remote_spec.host, remote_spec.path) == (
        "admin",
        "server01",
        "/var/nmon",
    )


def test_parse_remote_spec_applies_default_user() -> None:
    """Bare host:path should use the default SSH user."""
    remote_spec = parse_remote_spec("server01:/var/nmon", "root")

    assert remote_spec is not None and remote_spec.user == "root"


def test_parse_remote_spec_returns_none_for_local_paths(tmp_path: Path) -> None:
    """Plain local paths should not be treated as remote."""
    assert parse_remote_spec(str(tmp_path), "root") is None


def test_locate_expands_local_directory(tmp_path: Path) -> None:
    """Directory specs should expand to their files with extension types."""
    (tmp_path / "a.nmon").write_text("", encoding="utf-8")
    (tmp_path / "b.nmon.gz").write_bytes(b"")
    (tmp_path / "notes.txt").write_text("", encoding="utf-8")
    (tmp_path / "nested").mkdir()

    with _pool({}) as sessions:
        candidates = locate_source_files([str(tmp_path)], "root", None, sessions)

    assert [candidate.file_type for candidate in candidates] == [".nmon", ".gz", ".txt"]


def test_locate_skips_missing_local_path(tmp_path: Path) -> None:
    """Missing paths should be skipped without failing the run."""
    (tmp_path / "a.nmon").write_text("", encoding="utf-8")
    specs = [str(tmp_path / "missing.nmon"), str(tmp_path / "a.nmon")]

    with _pool({}) as sessions:
        candidates = locate_source_files(specs, "root", None, sessions)

    assert [candidate.base_name for candidate in candidates] == ["a.nmon"]


def test_locate_expands_remote_directory_with_one_session() -> None:
    """Remote directories should list through one pooled session."""
    tree: dict[str, list[str] | None] = {
        "/var/nmon": ["a.nmon", "old"],
        "/var/nmon/a.nmon": None,
        "/var/nmon/old": [],
        "/tmp/b.nmon.gz": None,
    }
    calls: list[tuple] = []
    specs = ["admin@server01:/var/nmon", "admin@server01:/tmp/b.nmon.gz"]

    with _pool(tree, calls) as sessions:
        candidates = locate_source_files(specs, "root", "/keys/id_rsa", sessions)

    located = [(source.path, source.file_type, source.ssh_user) for source in candidates]
    expected = [("/var/nmon/a.nmon", ".nmon", "admin"), ("/tmp/b.nmon.gz", ".gz", "admin")]
    assert located == expected and len(calls) == 1


def test_locate_skips_missing_remote_path() -> None:
    """Missing remote paths should be reported and skipped."""
    with _pool({}) as sessions:
        candidates = locate_source_files(["server01:/nope.nmon"], "root", None, sessions)

    assert candidates == []


def _failing_pool() -> SftpSessionPool:
    def _connect(host: str, user: str, key_path: str | None) -> _FakeSession:
        raise NmonTransportError(f"cannot reach {host}")

    return SftpSessionPool(_connect)


def test_locate_fails_fast_on_session_error() -> None:
    """Session failures should abort discovery by default."""
    with _failing_pool() as sessions, pytest.raises(NmonTransportError):
        locate_source_files(["down:/var/nmon"], "root", None, sessions)


def test_locate_can_continue_after_session_error(tmp_path: Path) -> None:
    """With fail-fast disabled, other specs should still be located."""
    (tmp_path / "a.nmon").write_text("", encoding="utf-8")
    specs = ["down:/var/nmon", str(tmp_path / "a.nmon")]

    with _failing_pool() as sessions:
        candidates = locate_source_files(
            specs, "root", None, sessions, fail_fast_remote=False
        )

    assert len(candidates) == 1


def test_select_nmon_files_keeps_plain_and_gzip() -> None:
    """Only .nmon and .gz candidates should be selected."""
    candidates = [
        SourceFile(path="a.nmon", file_type=".nmon"),
        SourceFile(path="a.nmon.gz", file_type=".gz"),
        SourceFile(path="a.csv", file_type=".csv"),
    ]

    selected = select_nmon_files(candidates)

    assert [source.path for source in selected] == ["a.nmon", "a.nmon.gz"]


class _UnlistableSession(_FakeSession):
    """Fake session whose directory listings are denied."""

    def listdir_attr(self, path: str) -> list[SimpleNamespace]:
        raise PermissionError(f"permission denied: {path}")


def test_locate_skips_unreadable_remote_directory(tmp_path: Path) -> None:
    """A remote directory that cannot be listed should be skipped."""
    (tmp_path / "a.nmon").write_text("", encoding="utf-8")
    specs = ["server01:/var/nmon", str(tmp_path / "a.nmon")]
    pool = SftpSessionPool(lambda *_: _UnlistableSession({"/var/nmon": []}))

    with pool as sessions:
        candidates = locate_source_files(specs, "root", None, sessions)

    assert [candidate.base_name for candidate in candidates] == ["a.nmon"]


def test_locate_skips_unreadable_local_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A local directory that cannot be listed should be skipped."""

    def _deny(self: Path):
        raise PermissionError(f"permission denied: {self}")

    monkeypatch.setattr(Path, "iterdir", _deny)

    with _pool({}) as sessions:
        candidates = locate_source_files([str(tmp_path)], "root", None, sessions)

    assert candidates == []
