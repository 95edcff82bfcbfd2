"""Remote inventory service client."""

from .publish import Publisher, PublishState, UploadJob
from .resources import fetch_known_vulnerabilities, resolve_resource_id
from .session import Session

__all__ = [
    "Publisher",
    "PublishState",
    "Session",
    "UploadJob",
    "fetch_known_vulnerabilities",
    "resolve_resource_id",
]
