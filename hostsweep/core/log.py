"""Logging setup for hostsweep."""
from __future__ import annotations

import logging
import re
import sys

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

_SECRET_PATTERNS = (
    re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=-]+", re.IGNORECASE),
    re.compile(r"""(["']?(?:access_token|client_secret|AuthToken)["']?\s*[:=]\s*["']?)[^"'\s,&}]+"""),
    re.compile(r"(--secret\s+)\S+"),
)


def redact(text: str) -> str:
    """Mask bearer tokens and client secrets in free-form text."""

    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(r"\1REDACTED", text)
    return text


class RedactingFilter(logging.Filter):
    """Scrub credentials from log records before they are emitted."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = redact(message)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def configure_logging(verbose: bool = False) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RedactingFilter())

    root = logging.getLogger("hostsweep")
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


__all__ = ["configure_logging", "redact", "RedactingFilter", "LOG_FORMAT"]
