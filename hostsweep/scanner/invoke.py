"""External scanner invocation."""
from __future__ import annotations

import logging
import socket
import subprocess
from typing import FrozenSet, List, Optional

from ..core.errors import ScanExecutionError
from ..core.models import ScanReport
from ..core.utils import run_command
from .parse import decode_report

logger = logging.getLogger(__name__)

# Exit status the scanner uses when it finished and found vulnerabilities.
FINDINGS_EXIT_CODE = 4
SUCCESS_EXIT_CODES: FrozenSet[int] = frozenset({0, FINDINGS_EXIT_CODE})


class Scanner:
    """Runs the content scanner against a directory and decodes its report."""

    def __init__(
        self,
        binary: str,
        *,
        timeout: Optional[float] = None,
        hostname: Optional[str] = None,
    ) -> None:
        self.binary = binary
        self.timeout = timeout
        self.hostname = hostname or socket.gethostname()

    def command(self, path: str) -> List[str]:
        return [
            self.binary,
            "dir",
            "scan",
            "--path",
            path,
            "-f",
            "json",
            "--name",
            f"{self.hostname}-{path}",
        ]

    def scan(self, path: str) -> ScanReport:
        logger.debug("Initiating scan for directory: %s", path)
        try:
            result = run_command(self.command(path), timeout=self.timeout)
        except subprocess.TimeoutExpired as exc:
            raise ScanExecutionError(f"Scan of {path} timed out after {exc.timeout}s") from exc
        except OSError as exc:
            raise ScanExecutionError(f"Cannot run scanner {self.binary}: {exc}") from exc

        if result.returncode not in SUCCESS_EXIT_CODES:
            raise ScanExecutionError(
                f"Scanner failed on {path} with exit status {result.returncode}",
                returncode=result.returncode,
                output=result.output,
            )
        report = decode_report(result.output)
        logger.debug("Scan completed for %s: %d findings", path, report.finding_count)
        return report


__all__ = ["Scanner", "FINDINGS_EXIT_CODE", "SUCCESS_EXIT_CODES"]
