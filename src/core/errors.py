"""nmon2tsdb exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class NmonError(Exception):
    """Base exception for all nmon2tsdb failures."""


class NmonConfigError(NmonError):
    """Raised for invalid runtime configuration."""


class NmonIngestError(NmonError):
    """Raised for source reading and nmon parsing failures."""


class NmonTransportError(NmonError):
    """Raised when an SSH/SFTP session cannot be established."""


class NmonStoreError(NmonError):
    """Raised for time-series store read and write failures."""


class NmonDependencyError(NmonError):
    """Raised when an optional runtime dependency is missing."""
