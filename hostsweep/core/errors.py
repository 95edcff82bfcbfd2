"""Exception taxonomy for hostsweep."""
from __future__ import annotations

from typing import Sequence


class HostsweepError(Exception):
    """Base class for every error raised by the sweep."""


class ConfigError(HostsweepError, ValueError):
    """Missing or invalid runtime configuration."""


class EnumerationError(HostsweepError, OSError):
    """The list of top-level volumes could not be read."""


class SnapshotError(HostsweepError):
    """Base class for snapshot lifecycle failures."""


class SnapshotCreateError(SnapshotError):
    """The snapshot facility is unavailable or refused to create a snapshot."""


class SnapshotMountError(SnapshotError):
    """A created snapshot could not be exposed at its mount path."""


class SnapshotRemoveError(SnapshotError):
    """Unmounting or deleting a snapshot failed."""


class ScanError(HostsweepError):
    """Base class for scanner failures."""


class ScanExecutionError(ScanError):
    """The scanner could not be run or exited with an unexpected status."""

    def __init__(self, message: str, *, returncode: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class ScanParseError(ScanError):
    """The scanner output did not contain a decodable report."""


class ScannerProvisionError(HostsweepError):
    """The scanner binary could not be downloaded or authenticated."""


class RemoteError(HostsweepError):
    """Base class for remote service failures."""


class RemoteAuthError(RemoteError):
    """Exchanging client credentials for a bearer token failed."""


class RemoteQueryError(RemoteError):
    """A query was rejected, returned errors or exhausted its retries."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        messages: Sequence[str] = (),
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.messages = tuple(messages)
        self.retryable = retryable

    @property
    def not_found(self) -> bool:
        return any("not found" in message.lower() for message in self.messages)


class ResourceResolutionError(RemoteQueryError):
    """The scanned host could not be matched to exactly one cloud resource."""


class PublishError(HostsweepError):
    """Base class for publish pipeline failures."""


class UploadRequestError(PublishError):
    """The service did not hand out a usable upload slot."""


class UploadTransferError(PublishError):
    """Transferring the payload to the upload URL failed."""


class IngestionTimeoutError(PublishError):
    """Ingestion did not reach a terminal state within the polling budget."""

    def __init__(self, message: str, *, tracking_id: str = "", attempts: int = 0) -> None:
        super().__init__(message)
        self.tracking_id = tracking_id
        self.attempts = attempts


__all__ = [
    "HostsweepError",
    "ConfigError",
    "EnumerationError",
    "SnapshotError",
    "SnapshotCreateError",
    "SnapshotMountError",
    "SnapshotRemoveError",
    "ScanError",
    "ScanExecutionError",
    "ScanParseError",
    "ScannerProvisionError",
    "RemoteError",
    "RemoteAuthError",
    "RemoteQueryError",
    "ResourceResolutionError",
    "PublishError",
    "UploadRequestError",
    "UploadTransferError",
    "IngestionTimeoutError",
]
