"""Source file discovery for nmon imports.

This module expands local paths and ``[user@]host:path`` remote specs
into candidate source files, then selects the nmon-compatible ones.
"""

from __future__ import annotations

import re
import stat
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterable

from core.constants import SUPPORTED_NMON_EXTENSIONS
from core.errors import NmonTransportError
from core.logging_config import get_logger
from core.types import SourceFile
from ingest.transport import SftpSessionPool

_LOGGER = get_logger(__name__)

_REMOTE_SPEC_PATTERN = re.compile(r"^(\S+?):(\S+)$")
_REMOTE_USER_PATTERN = re.compile(r"^(\S+)@(\S+)$")


@dataclass(frozen=True)
class RemoteSpec:
    """Parsed ``[user@]host:path`` remote source."""

    host: str
    user: str
    path: str


def parse_remote_spec(spec: str, default_user: str) -> RemoteSpec | None:
    """Parse a remote source spec.

    Args:
        spec: Source argument.
        default_user: SSH user applied when the spec has no ``user@`` part.

    Returns:
        Parsed remote spec, or None for local paths.
    """
    if Path(spec).exists():
        return None
    matched = _REMOTE_SPEC_PATTERN.match(spec)
    if matched is None:
        return None
    host, remote_path = matched.group(1), matched.group(2)
    user = default_user
    user_matched = _REMOTE_USER_PATTERN.match(host)
    if user_matched is not None:
        user, host = user_matched.group(1), user_matched.group(2)
    return RemoteSpec(host=host, user=user, path=remote_path)


def locate_source_files(
    specs: Iterable[str],
    default_user: str,
    default_key: str | None,
    sessions: SftpSessionPool,
    fail_fast_remote: bool = True,
) -> list[SourceFile]:
    """Expand source specs into candidate files.

    Missing and unreadable paths are logged and skipped. Directories
    expand to their non-directory entries.

    Args:
        specs: Local paths or remote specs in command-line order.
        default_user: Default SSH user.
        default_key: Default private key path.
        sessions: Session pool reused for every remote spec of this pass.
        fail_fast_remote: Re-raise session failures instead of skipping the spec.

    Returns:
        Candidate files in source-list order, with any file type.

    Raises:
        NmonTransportError: If a remote session fails and fail_fast_remote is set.
    """
    candidates: list[SourceFile] = []
    for spec in specs:
        remote_spec = parse_remote_spec(spec, default_user)
        if remote_spec is None:
            candidates.extend(_locate_local(spec))
            continue
        try:
            candidates.extend(_locate_remote(spec, remote_spec, default_key, sessions))
        except NmonTransportError as error:
            if fail_fast_remote:
                raise
            _LOGGER.error("source_unreachable", source=spec, error=str(error))
    return candidates


def select_nmon_files(candidates: Iterable[SourceFile]) -> list[SourceFile]:
    """Keep only plain or gzip-compressed nmon files."""
    selected: list[SourceFile] = []
    for candidate in candidates:
        if candidate.file_type in SUPPORTED_NMON_EXTENSIONS:
            selected.append(candidate)
            continue
        _LOGGER.debug(
            "source_excluded",
            source=candidate.display_name,
            file_type=candidate.file_type,
        )
    return selected


def _locate_local(spec: str) -> list[SourceFile]:
    source_path = Path(spec)
    if not source_path.exists():
        _LOGGER.warning("source_missing", source=spec)
        return []
    if not source_path.is_dir():
        return [SourceFile(path=spec, file_type=source_path.suffix)]
    try:
        entries = sorted(source_path.iterdir())
    except OSError as error:
        _LOGGER.warning("source_unreadable", source=spec, error=str(error))
        return []
    return [
        SourceFile(path=str(entry), file_type=entry.suffix)
        for entry in entries
        if not entry.is_dir()
    ]


def _locate_remote(
    spec: str,
    remote_spec: RemoteSpec,
    key_path: str | None,
    sessions: SftpSessionPool,
) -> list[SourceFile]:
    session = sessions.session_for(remote_spec.host, remote_spec.user, key_path)
    try:
        attributes = session.stat(remote_spec.path)
    except OSError as error:
        _LOGGER.warning("source_missing", source=spec, error=str(error))
        return []
    if not stat.S_ISDIR(attributes.st_mode or 0):
        return [_remote_source(remote_spec.path, remote_spec, key_path)]
    try:
        entries = session.listdir_attr(remote_spec.path)
    except OSError as error:
        _LOGGER.warning("source_unreadable", source=spec, error=str(error))
        return []
    entries = sorted(entries, key=lambda entry: entry.filename)
    return [
        _remote_source(
            str(PurePosixPath(remote_spec.path) / entry.filename), remote_spec, key_path
        )
        for entry in entries
        if not stat.S_ISDIR(entry.st_mode or 0)
    ]


def _remote_source(path: str, remote_spec: RemoteSpec, key_path: str | None) -> SourceFile:
    return SourceFile(
        path=path,
        file_type=PurePosixPath(path).suffix,
        host=remote_spec.host,
        ssh_user=remote_spec.user,
        ssh_key=key_path,
    )
