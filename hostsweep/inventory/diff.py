"""Known-versus-new vulnerability differencing."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, FrozenSet, Iterator, List, Optional, Tuple

from ..core.models import AssetFindings, AssetIdentity, KnownVulnerabilities, NewFinding
from ..core.utils import now_utc
from .aggregate import AggregatedInventory

logger = logging.getLogger(__name__)

FindingKey = Tuple[str, str, str]


def finding_key(detailed_name: str, vulnerability_name: str, fixed_version: str) -> FindingKey:
    """Identity of a finding: component name, vulnerability name, fixed version.

    Version and location deliberately do not take part in the key.
    """

    return (
        detailed_name.strip().lower(),
        vulnerability_name.strip().lower(),
        fixed_version.strip().lower(),
    )


def iter_findings(inventory: AggregatedInventory) -> Iterator[NewFinding]:
    """Flatten libraries and applications into one finding per vulnerability."""

    for lib in inventory.libraries:
        for vuln in lib.vulnerabilities:
            yield NewFinding(
                detailed_name=lib.name,
                vulnerability=vuln,
                version=lib.version,
                path=lib.path,
                detection_method=lib.detection_method,
            )
    for app in inventory.applications:
        for detail in app.vulnerabilities:
            yield NewFinding(
                detailed_name=app.name,
                vulnerability=detail.vulnerability,
                version=detail.version,
                path=detail.path,
                detection_method=app.detection_method,
            )


def known_keys(known: KnownVulnerabilities) -> FrozenSet[FindingKey]:
    return frozenset(
        finding_key(item.detailed_name, item.name, item.fixed_version) for item in known.findings
    )


def diff(
    aggregated: AggregatedInventory,
    known: KnownVulnerabilities,
    asset: AssetIdentity,
) -> AssetFindings:
    """Return the findings of ``aggregated`` that ``known`` does not contain."""

    keys = known_keys(known)
    new: List[NewFinding] = []
    total = 0
    for finding in iter_findings(aggregated):
        total += 1
        key = finding_key(finding.detailed_name, finding.vulnerability.name, finding.vulnerability.fixed_version)
        if key not in keys:
            new.append(finding)
    logger.info("%d of %d findings are new for %s", len(new), total, asset.provider_id)
    return AssetFindings(asset=asset, findings=tuple(new))


def build_payload(
    findings: AssetFindings,
    *,
    integration_id: str,
    data_source_id: str,
    analysis_date: Optional[datetime] = None,
) -> dict[str, Any]:
    """Shape new findings as an enrichment ingestion document."""

    analysis_date = analysis_date or now_utc()
    return {
        "integrationId": integration_id,
        "dataSources": [
            {
                "id": data_source_id,
                "analysisDate": analysis_date.isoformat().replace("+00:00", "Z"),
                "assets": [findings.to_dict()],
            }
        ],
    }


__all__ = ["diff", "build_payload", "finding_key", "iter_findings", "known_keys"]
