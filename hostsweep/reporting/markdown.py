"""Markdown reporting."""
from __future__ import annotations

from collections import Counter
from typing import List

from ..core.models import AssetFindings, NewFinding

_SEVERITIES = ["CRITICAL", "HIGH", "MEDIUM", "LOW"]


def _summary_table(findings: List[NewFinding]) -> List[str]:
    lines = ["| Vulnerability | Severity | Component | Fixed in | Path |", "| --- | --- | --- | --- | --- |"]
    for finding in findings:
        vuln = finding.vulnerability
        lines.append(
            f"| {vuln.name} | {vuln.severity or 'UNKNOWN'} | {finding.detailed_name} {finding.version} "
            f"| {vuln.fixed_version or '-'} | {finding.path or '-'} |"
        )
    return lines


def to_markdown(result: AssetFindings) -> str:
    """Render new findings to a Markdown report."""

    findings = list(result.findings)
    counts = Counter(finding.vulnerability.severity.upper() for finding in findings)
    lines: List[str] = [
        "# hostsweep New Findings",
        "",
        f"**Asset:** {result.asset.cloud_platform} / {result.asset.provider_id}",
        "",
        "## Severity Overview",
    ]
    for severity in _SEVERITIES:
        lines.append(f"- **{severity.title()}:** {counts.get(severity, 0)} findings")
    lines.extend(["", "## Findings", ""])
    if findings:
        lines.extend(_summary_table(findings))
    else:
        lines.append("No new findings were identified.")
    return "\n".join(lines)


__all__ = ["to_markdown"]
