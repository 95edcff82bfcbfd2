"""Utility helpers for hostsweep."""
from __future__ import annotations

import json
import logging
import os
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Exit status and combined output of an external command."""

    args: tuple[str, ...]
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


def json_dump(obj: Any) -> str:
    return json.dumps(obj, indent=2, sort_keys=True, default=_json_default)


def _json_default(obj: Any) -> Any:  # pragma: no cover - fallback for datetime etc.
    if isinstance(obj, datetime):
        return obj.isoformat()
    if hasattr(obj, "__dict__"):
        return obj.__dict__
    return str(obj)


def run_command(args: Sequence[str], *, timeout: float | None = None) -> CommandResult:
    """Run a command without a shell and capture stdout and stderr together.

    Raises ``OSError`` when the executable cannot be started; a non-zero exit
    is reported through ``CommandResult.returncode``.
    """

    argv = tuple(str(arg) for arg in args)
    logger.debug("Running command: %s", " ".join(argv))
    completed = subprocess.run(
        argv,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        timeout=timeout,
        check=False,
    )
    output = completed.stdout.decode("utf-8", errors="replace") if completed.stdout else ""
    return CommandResult(args=argv, returncode=completed.returncode, output=output)


def env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def env_list(name: str) -> list[str]:
    value = os.getenv(name, "")
    return [item.strip() for item in value.split(",") if item.strip()]


__all__ = ["CommandResult", "json_dump", "now_utc", "run_command", "env_bool", "env_list"]
