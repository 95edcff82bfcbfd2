"""Core data models for hostsweep."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _number(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _items(value: Any) -> list[Mapping[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, Mapping)]


@dataclass(frozen=True)
class Volume:
    """A top-level mount point or drive root."""

    path: str
    excluded: bool = False


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time copy of a volume.

    ``snapshot_id`` is used for deletion, ``device`` for mounting. Both are
    empty when the host has no snapshot facility.
    """

    volume: str
    snapshot_id: str = ""
    device: str = ""

    @property
    def is_passthrough(self) -> bool:
        return not self.snapshot_id


@dataclass(frozen=True)
class Vulnerability:
    """A single vulnerability reported by the scanner."""

    name: str
    severity: str = ""
    fixed_version: str = ""
    source: str = ""
    description: Any = None
    score: float = 0.0
    exploitability_score: float = 0.0
    has_exploit: bool = False
    has_cisa_kev_exploit: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Vulnerability":
        return cls(
            name=_text(data.get("name")),
            severity=_text(data.get("severity")),
            fixed_version=_text(data.get("fixedVersion")),
            source=_text(data.get("source")),
            description=data.get("description"),
            score=_number(data.get("score")),
            exploitability_score=_number(data.get("exploitabilityScore")),
            has_exploit=bool(data.get("hasExploit", False)),
            has_cisa_kev_exploit=bool(data.get("hasCisaKevExploit", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "severity": self.severity,
            "fixedVersion": self.fixed_version,
            "source": self.source,
            "description": self.description,
            "score": self.score,
            "exploitabilityScore": self.exploitability_score,
            "hasExploit": self.has_exploit,
            "hasCisaKevExploit": self.has_cisa_kev_exploit,
        }


@dataclass(frozen=True)
class Library:
    """A library found on disk together with its vulnerabilities."""

    name: str
    version: str = ""
    path: str = ""
    vulnerabilities: Sequence[Vulnerability] = field(default_factory=tuple)
    detection_method: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Library":
        return cls(
            name=_text(data.get("name")),
            version=_text(data.get("version")),
            path=_text(data.get("path")),
            vulnerabilities=tuple(
                Vulnerability.from_dict(item) for item in _items(data.get("vulnerabilities"))
            ),
            detection_method=_text(data.get("detectionMethod")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "path": self.path,
            "vulnerabilities": [vuln.to_dict() for vuln in self.vulnerabilities],
            "detectionMethod": self.detection_method,
        }


@dataclass(frozen=True)
class ApplicationVulnerability:
    """Where an application vulnerability was observed."""

    vulnerability: Vulnerability
    path: str = ""
    path_type: str = ""
    version: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ApplicationVulnerability":
        inner = data.get("vulnerability")
        return cls(
            vulnerability=Vulnerability.from_dict(inner if isinstance(inner, Mapping) else {}),
            path=_text(data.get("path")),
            path_type=_text(data.get("pathType")),
            version=_text(data.get("version")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "pathType": self.path_type,
            "version": self.version,
            "vulnerability": self.vulnerability.to_dict(),
        }


@dataclass(frozen=True)
class Application:
    """An application detected by the scanner."""

    name: str
    vulnerabilities: Sequence[ApplicationVulnerability] = field(default_factory=tuple)
    detection_method: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Application":
        return cls(
            name=_text(data.get("name")),
            vulnerabilities=tuple(
                ApplicationVulnerability.from_dict(item)
                for item in _items(data.get("vulnerabilities"))
            ),
            detection_method=_text(data.get("detectionMethod")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "vulnerabilities": [item.to_dict() for item in self.vulnerabilities],
            "detectionMethod": self.detection_method,
        }


@dataclass(frozen=True)
class ScanReport:
    """Decoded result of one scanner invocation."""

    libraries: Sequence[Library] = field(default_factory=tuple)
    applications: Sequence[Application] = field(default_factory=tuple)
    scan_id: str = ""
    report_url: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScanReport":
        """Build a report from scanner output or from a saved inventory.

        Scanner output nests findings under ``result``; saved inventories keep
        them at the top level.
        """

        result = data.get("result")
        body: Mapping[str, Any] = result if isinstance(result, Mapping) else data
        return cls(
            libraries=tuple(Library.from_dict(item) for item in _items(body.get("libraries"))),
            applications=tuple(
                Application.from_dict(item) for item in _items(body.get("applications"))
            ),
            scan_id=_text(data.get("id")),
            report_url=_text(data.get("reportUrl")),
        )

    @property
    def finding_count(self) -> int:
        return len(self.libraries) + len(self.applications)


@dataclass(frozen=True)
class KnownVulnerability:
    """A finding the remote service already has on record."""

    name: str
    detailed_name: str = ""
    version: str = ""
    fixed_version: str = ""
    location_path: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "KnownVulnerability":
        return cls(
            name=_text(data.get("name")),
            detailed_name=_text(data.get("detailedName")),
            version=_text(data.get("version")),
            fixed_version=_text(data.get("fixedVersion")),
            location_path=_text(data.get("locationPath")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "detailedName": self.detailed_name,
            "version": self.version,
            "fixedVersion": self.fixed_version,
            "locationPath": self.location_path,
        }


@dataclass(frozen=True)
class KnownVulnerabilities:
    """Read-only snapshot of the findings on record for one resource."""

    resource_id: str
    findings: Sequence[KnownVulnerability] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "KnownVulnerabilities":
        return cls(
            resource_id=_text(data.get("resourceId")),
            findings=tuple(KnownVulnerability.from_dict(item) for item in _items(data.get("findings"))),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "resourceId": self.resource_id,
            "findings": [finding.to_dict() for finding in self.findings],
        }

    def __len__(self) -> int:
        return len(self.findings)


@dataclass(frozen=True)
class AssetIdentity:
    """Identifies the cloud asset findings are attributed to."""

    cloud_platform: str
    provider_id: str

    def to_dict(self) -> dict[str, str]:
        return {"cloudPlatform": self.cloud_platform, "providerId": self.provider_id}


@dataclass(frozen=True)
class NewFinding:
    """A vulnerability present in the scan but absent from the known set."""

    detailed_name: str
    vulnerability: Vulnerability
    version: str = ""
    path: str = ""
    detection_method: str = ""

    def to_dict(self) -> dict[str, Any]:
        vuln = self.vulnerability
        data: dict[str, Any] = {
            "name": vuln.name,
            "detailedName": self.detailed_name,
            "severity": vuln.severity,
            "fixedVersion": vuln.fixed_version,
            "version": self.version,
            "source": vuln.source,
            "score": vuln.score,
            "exploitabilityScore": vuln.exploitability_score,
            "hasExploit": vuln.has_exploit,
            "hasCisaKevExploit": vuln.has_cisa_kev_exploit,
            "detectionMethod": self.detection_method,
            "locationPath": self.path,
        }
        if vuln.description is not None:
            data["description"] = vuln.description
        return data


@dataclass(frozen=True)
class AssetFindings:
    """New findings grouped under the asset they belong to."""

    asset: AssetIdentity
    findings: Sequence[NewFinding] = field(default_factory=tuple)

    def __bool__(self) -> bool:
        return bool(self.findings)

    def to_dict(self) -> dict[str, Any]:
        return {
            "assetIdentifier": self.asset.to_dict(),
            "vulnerabilityFindings": [finding.to_dict() for finding in self.findings],
        }


__all__ = [
    "Volume",
    "Snapshot",
    "Vulnerability",
    "Library",
    "ApplicationVulnerability",
    "Application",
    "ScanReport",
    "KnownVulnerability",
    "KnownVulnerabilities",
    "AssetIdentity",
    "NewFinding",
    "AssetFindings",
]
