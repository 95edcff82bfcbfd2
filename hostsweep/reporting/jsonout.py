"""JSON reporting and local artifact files."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

from ..core.models import AssetFindings, KnownVulnerabilities
from ..core.utils import json_dump
from ..inventory.aggregate import AggregatedInventory

logger = logging.getLogger(__name__)

SCAN_ARTIFACT = "scan.json"
KNOWN_ARTIFACT = "known_vulns.json"


def to_json(findings: AssetFindings) -> str:
    """Serialize new findings to JSON."""

    return json_dump(findings.to_dict())


def _write(path: Path, data: Mapping[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json_dump(data), encoding="utf-8")
    logger.debug("Wrote %s", path)
    return path


def _read(path: Path) -> Mapping[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return data


def save_inventory(inventory: AggregatedInventory, artifact_dir: Path) -> Path:
    return _write(artifact_dir / SCAN_ARTIFACT, inventory.to_dict())


def load_inventory(artifact_dir: Path) -> AggregatedInventory:
    return AggregatedInventory.from_dict(_read(artifact_dir / SCAN_ARTIFACT))


def save_known(known: KnownVulnerabilities, artifact_dir: Path) -> Path:
    return _write(artifact_dir / KNOWN_ARTIFACT, known.to_dict())


def load_known(artifact_dir: Path) -> KnownVulnerabilities:
    return KnownVulnerabilities.from_dict(_read(artifact_dir / KNOWN_ARTIFACT))


__all__ = [
    "to_json",
    "save_inventory",
    "load_inventory",
    "save_known",
    "load_known",
    "SCAN_ARTIFACT",
    "KNOWN_ARTIFACT",
]
