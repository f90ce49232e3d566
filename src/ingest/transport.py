"""Byte stream access for local and remote nmon files.

This module opens local files or SFTP files behind one interface,
decompresses gzip content, and computes the cached tail checksum and
sorted line content of a source file.
"""

from __future__ import annotations

import gzip
import hashlib
import io
import zlib
from contextlib import contextmanager
from pathlib import Path
from typing import Any, BinaryIO, Callable, Iterable, Iterator

from core.constants import CHECKSUM_ALGORITHM, CHECKSUM_TAIL_BYTES, SSH_PORT
from core.errors import NmonDependencyError, NmonIngestError, NmonTransportError
from core.logging_config import get_logger
from core.types import SourceFile

_LOGGER = get_logger(__name__)


class SftpSession:
    """Authenticated SSH connection with an open SFTP channel."""

    def __init__(self, ssh_client: Any, sftp_client: Any, host: str, user: str) -> None:
        self._ssh_client = ssh_client
        self._sftp_client = sftp_client
        self.host = host
        self.user = user

    def stat(self, path: str) -> Any:
        return self._sftp_client.stat(path)

    def listdir_attr(self, path: str) -> list[Any]:
        return self._sftp_client.listdir_attr(path)

    def open(self, path: str) -> BinaryIO:
        return self._sftp_client.open(path, "rb")

    def close(self) -> None:
        self._sftp_client.close()
        self._ssh_client.close()


SessionFactory = Callable[[str, str, str | None], SftpSession]


class SftpSessionPool:
    """Reuse one SFTP session per (user, host, key) until the pool closes."""

    def __init__(self, connect: SessionFactory | None = None) -> None:
        self._connect = connect or open_sftp_session
        self._sessions: dict[tuple[str, str, str | None], SftpSession] = {}

    def session_for(self, host: str, user: str, key_path: str | None) -> SftpSession:
        """Return a pooled session, connecting on first use.

        Raises:
            NmonTransportError: If the session cannot be established.
        """
        pool_key = (user, host, key_path)
        session = self._sessions.get(pool_key)
        if session is None:
            session = self._connect(host, user, key_path)
            self._sessions[pool_key] = session
        return session

    def close(self) -> None:
        """Close every pooled session."""
        for session in self._sessions.values():
            session.close()
        self._sessions.clear()

    def __enter__(self) -> "SftpSessionPool":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_sftp_session(host: str, user: str, key_path: str | None) -> SftpSession:
    """Open an SSH connection and SFTP channel to ``host``.

    Authentication tries the private key file first, then the keys of a
    running ssh-agent.

    Args:
        host: Remote host name.
        user: SSH user name.
        key_path: Optional private key file path.

    Returns:
        Connected SFTP session.

    Raises:
        NmonTransportError: If connection or authentication fails.
        NmonDependencyError: If paramiko is missing.
    """
    paramiko = _import_paramiko()
    private_key = load_private_key(key_path)
    ssh_client = paramiko.SSHClient()
    ssh_client.load_system_host_keys()
    ssh_client.set_missing_host_key_policy(paramiko.WarningPolicy())
    try:
        ssh_client.connect(
            host,
            port=SSH_PORT,
            username=user,
            pkey=private_key,
            allow_agent=True,
            look_for_keys=False,
        )
        sftp_client = ssh_client.open_sftp()
    except (paramiko.SSHException, OSError) as error:
        ssh_client.close()
        raise NmonTransportError(
            f"Failed to open SFTP session to {user}@{host}:{SSH_PORT}: {error}. "
            "Check the host, the SSH user and the key file or ssh-agent."
        ) from error
    _LOGGER.debug("sftp_session_opened", host=host, user=user)
    return SftpSession(ssh_client, sftp_client, host, user)


def load_private_key(key_path: str | None) -> Any | None:
    """Load a private key file when it exists.

    Raises:
        NmonTransportError: If the file exists but cannot be parsed.
    """
    if not key_path:
        return None
    resolved_path = Path(key_path).expanduser()
    if not resolved_path.is_file():
        return None
    paramiko = _import_paramiko()
    try:
        return paramiko.PKey.from_path(resolved_path)
    except (paramiko.SSHException, OSError, ValueError) as error:
        raise NmonTransportError(
            f"Failed to parse SSH private key at {resolved_path}: {error}. "
            "Provide an unencrypted key or load it into ssh-agent."
        ) from error


@contextmanager
def open_source_stream(source: SourceFile, sessions: SftpSessionPool) -> Iterator[BinaryIO]:
    """Open the raw byte stream of a source file.

    Args:
        source: Local or remote source file.
        sessions: Session pool for remote files.

    Yields:
        Binary stream positioned at the start of the file.

    Raises:
        NmonIngestError: If the file cannot be opened.
        NmonTransportError: If the remote session cannot be established.
    """
    try:
        if source.is_remote:
            session = sessions.session_for(
                str(source.host), str(source.ssh_user), source.ssh_key
            )
            stream = session.open(source.path)
        else:
            stream = open(source.path, "rb")
    except OSError as error:
        raise NmonIngestError(
            f"Failed to open {source.display_name}: {error}. "
            "Check that the file exists and is readable."
        ) from error
    try:
        yield stream
    finally:
        stream.close()


def source_checksum(source: SourceFile, sessions: SftpSessionPool) -> str:
    """Return the cached tail checksum of a source file."""

    def _compute() -> str:
        with open_source_stream(source, sessions) as stream:
            return compute_tail_checksum(stream)

    return source.checksum_cell.get(_compute)


def compute_tail_checksum(stream: BinaryIO) -> str:
    """Hash the last bytes of a stream.

    Args:
        stream: Seekable binary stream.

    Returns:
        Hex digest of at most ``CHECKSUM_TAIL_BYTES`` trailing bytes.
    """
    stream.seek(0, io.SEEK_END)
    size = stream.tell()
    stream.seek(max(0, size - CHECKSUM_TAIL_BYTES))
    hasher = hashlib.new(CHECKSUM_ALGORITHM)
    hasher.update(stream.read())
    return hasher.hexdigest()


def read_source_lines(source: SourceFile, sessions: SftpSessionPool) -> tuple[str, ...]:
    """Return the cached, lexically sorted lines of a source file.

    Raises:
        NmonIngestError: If the file cannot be read or decompressed.
    """

    def _compute() -> tuple[str, ...]:
        with open_source_stream(source, sessions) as stream:
            raw_bytes = _read_content(source, stream)
        return sort_lines(split_lines(raw_bytes.decode("utf-8", errors="replace")))

    return source.lines_cell.get(_compute)


def split_lines(text: str) -> list[str]:
    """Split text on newlines, dropping carriage returns and the final empty line."""
    lines = [line.rstrip("\r") for line in text.split("\n")]
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def sort_lines(lines: Iterable[str]) -> tuple[str, ...]:
    """Sort raw lines lexically.

    Sorting groups records by type prefix; it does not preserve chronology,
    which is rebuilt from time codes during parsing.
    """
    return tuple(sorted(lines))


def _read_content(source: SourceFile, stream: BinaryIO) -> bytes:
    try:
        raw_bytes = stream.read()
        if source.is_compressed:
            return gzip.decompress(raw_bytes)
        return raw_bytes
    except (OSError, EOFError, zlib.error) as error:
        raise NmonIngestError(
            f"Failed to read {source.display_name}: {error}. "
            "Check that the file is a complete nmon or gzip file."
        ) from error


def _import_paramiko() -> Any:
    try:
        import paramiko
    except ImportError as error:
        raise NmonDependencyError(
            "Remote sources require paramiko, but it is not installed. "
            "Install paramiko to import nmon files over SFTP."
        ) from error
    return paramiko
