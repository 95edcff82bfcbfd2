"""Cross-volume aggregation of scan reports."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Any, List, Mapping

from ..core.models import Application, Library, ScanReport


def prefix_path(volume: str, path: str, sep: str = os.sep) -> str:
    """Rebase a scanner-relative ``path`` onto ``volume``.

    ``/home`` and ``/lib/libfoo.so`` give ``/home/lib/libfoo.so``; on Windows
    forward slashes are converted first, so ``C:\\`` and ``/Windows/x.dll``
    give ``C:\\Windows\\x.dll``.
    """

    if sep == "\\":
        path = path.replace("/", "\\")
    relative = path.lstrip(sep)
    if not relative:
        return volume
    return f"{volume.rstrip(sep)}{sep}{relative}"


def _rebase_application(volume: str, app: Application, sep: str) -> Application:
    details = tuple(
        replace(detail, path=prefix_path(volume, detail.path, sep)) if detail.path else detail
        for detail in app.vulnerabilities
    )
    return replace(app, vulnerabilities=details)


@dataclass
class AggregatedInventory:
    """Findings of every scanned volume, with volume-absolute paths."""

    libraries: List[Library] = field(default_factory=list)
    applications: List[Application] = field(default_factory=list)
    volumes: List[str] = field(default_factory=list)

    def add(self, volume: str, report: ScanReport, sep: str = os.sep) -> None:
        """Append the findings of one volume. Nothing is de-duplicated."""

        self.libraries.extend(
            replace(lib, path=prefix_path(volume, lib.path, sep)) for lib in report.libraries
        )
        self.applications.extend(
            _rebase_application(volume, app, sep) for app in report.applications
        )
        self.volumes.append(volume)

    @property
    def finding_count(self) -> int:
        return len(self.libraries) + len(self.applications)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AggregatedInventory":
        report = ScanReport.from_dict(data)
        volumes = data.get("volumes")
        return cls(
            libraries=list(report.libraries),
            applications=list(report.applications),
            volumes=[str(item) for item in volumes] if isinstance(volumes, list) else [],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "libraries": [lib.to_dict() for lib in self.libraries],
            "applications": [app.to_dict() for app in self.applications],
            "volumes": list(self.volumes),
        }


__all__ = ["AggregatedInventory", "prefix_path"]
