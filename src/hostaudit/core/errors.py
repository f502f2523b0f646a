"""Exception hierarchy for hostaudit."""

from __future__ import annotations

from pathlib import Path


class HostAuditError(Exception):
    """Base class for all hostaudit errors."""


class CatalogError(HostAuditError):
    """The check catalog could not be loaded.

    Always fatal: raised before any scan activity starts.
    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class CheckProcessError(HostAuditError):
    """A check process could not be spawned, read or awaited.

    This is an infrastructure failure, distinct from a check reporting FAIL.
    The scan engine converts it into an Error event plus a FAIL outcome.
    """

    def __init__(self, check_id: str, message: str) -> None:
        super().__init__(message)
        self.check_id = check_id


class SinkClosedError(HostAuditError):
    """The event consumer is gone; the scan cannot continue."""


class ConfigError(HostAuditError):
    """The configuration file is unreadable or invalid."""
