"""hostsweep core package."""

from .core.models import (
    Application,
    AssetFindings,
    AssetIdentity,
    KnownVulnerabilities,
    Library,
    NewFinding,
    ScanReport,
    Snapshot,
    Volume,
    Vulnerability,
)

__all__ = [
    "Application",
    "AssetFindings",
    "AssetIdentity",
    "KnownVulnerabilities",
    "Library",
    "NewFinding",
    "ScanReport",
    "Snapshot",
    "Volume",
    "Vulnerability",
]

__version__ = "0.1.0"
