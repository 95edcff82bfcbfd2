"""Per-volume snapshot, scan and aggregation loop."""
from __future__ import annotations

import logging
import os
from typing import Optional, Protocol, Sequence

from ..inventory.aggregate import AggregatedInventory
from ..volumes.snapshot import SnapshotProvider, snapshot_scope
from .errors import ScanError, SnapshotMountError
from .models import ScanReport, Volume

logger = logging.getLogger(__name__)


class PathScanner(Protocol):
    def scan(self, path: str) -> ScanReport:  # pragma: no cover - protocol
        ...


def run_pipeline(
    volumes: Sequence[Volume],
    provider: SnapshotProvider,
    scanner: PathScanner,
    *,
    sep: str = os.sep,
    inventory: Optional[AggregatedInventory] = None,
) -> AggregatedInventory:
    """Scan volumes one after another and collect their findings.

    A volume whose snapshot cannot be mounted or whose scan fails is logged
    and skipped; the remaining volumes are still scanned.
    """

    inventory = inventory if inventory is not None else AggregatedInventory()
    for volume in volumes:
        if volume.excluded:
            continue
        logger.info("Scanning %s", volume.path)
        try:
            with snapshot_scope(provider, volume) as scan_path:
                report = scanner.scan(scan_path)
        except (SnapshotMountError, ScanError) as exc:
            logger.error("Failed to scan %s: %s", volume.path, exc)
            continue
        inventory.add(volume.path, report, sep)
        logger.info("Collected %d findings from %s", report.finding_count, volume.path)
    return inventory


__all__ = ["run_pipeline", "PathScanner"]
