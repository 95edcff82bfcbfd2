from datetime import datetime, timezone

from conftest import application, library

from hostsweep.core.models import AssetIdentity, KnownVulnerabilities, KnownVulnerability
from hostsweep.inventory.aggregate import AggregatedInventory
from hostsweep.inventory.diff import build_payload, diff

ASSET = AssetIdentity(cloud_platform="AWS", provider_id="i-0abc")


def _inventory(make_report) -> AggregatedInventory:
    inventory = AggregatedInventory()
    inventory.add(
        "/usr",
        make_report(
            [
                library("openssl", "/lib/libssl.so", ("CVE-2023-0001", "3.0.8"), version="3.0.1"),
                library("zlib", "/lib/libz.so", ("CVE-2022-3777", "1.2.13")),
            ],
            [application("nginx", "/sbin/nginx", "CVE-2021-23017", "1.21.0")],
        ),
        "/",
    )
    return inventory


def _known(*items: tuple[str, str, str], **extra: str) -> KnownVulnerabilities:
    return KnownVulnerabilities(
        resource_id="res-1",
        findings=tuple(
            KnownVulnerability(name=name, detailed_name=component, fixed_version=fixed, **extra)
            for component, name, fixed in items
        ),
    )


def test_reports_only_unknown_findings(make_report) -> None:
    known = _known(("openssl", "CVE-2023-0001", "3.0.8"))
    result = diff(_inventory(make_report), known, ASSET)
    assert [(f.detailed_name, f.vulnerability.name) for f in result.findings] == [
        ("zlib", "CVE-2022-3777"),
        ("nginx", "CVE-2021-23017"),
    ]
    assert result.findings[1].path == "/usr/sbin/nginx"


def test_version_and_location_do_not_affect_identity(make_report) -> None:
    known = _known(
        ("OpenSSL ", "cve-2023-0001", "3.0.8"),
        ("zlib", "CVE-2022-3777", "1.2.13"),
        ("nginx", "CVE-2021-23017", "1.21.0"),
        version="0.0.1",
        location_path="/somewhere/else",
    )
    result = diff(_inventory(make_report), known, ASSET)
    assert not result
    assert result.to_dict()["vulnerabilityFindings"] == []


def test_different_fixed_version_is_new(make_report) -> None:
    known = _known(("openssl", "CVE-2023-0001", "3.0.9"))
    result = diff(_inventory(make_report), known, ASSET)
    assert "openssl" in [finding.detailed_name for finding in result.findings]


def test_diff_is_deterministic(make_report) -> None:
    inventory = _inventory(make_report)
    known = _known(("zlib", "CVE-2022-3777", "1.2.13"))
    assert diff(inventory, known, ASSET) == diff(inventory, known, ASSET)


def test_everything_is_new_without_known_findings(make_report) -> None:
    result = diff(_inventory(make_report), _known(), ASSET)
    assert len(result.findings) == 3


def test_payload_shape(make_report) -> None:
    result = diff(_inventory(make_report), _known(), ASSET)
    payload = build_payload(
        result,
        integration_id="integration-1",
        data_source_id="source-1",
        analysis_date=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )
    assert payload["integrationId"] == "integration-1"
    (source,) = payload["dataSources"]
    assert source["id"] == "source-1"
    assert source["analysisDate"] == "2024-05-01T12:00:00Z"
    (asset,) = source["assets"]
    assert asset["assetIdentifier"] == {"cloudPlatform": "AWS", "providerId": "i-0abc"}
    first = asset["vulnerabilityFindings"][0]
    assert first["name"] == "CVE-2023-0001"
    assert first["detailedName"] == "openssl"
    assert first["fixedVersion"] == "3.0.8"
    assert first["version"] == "3.0.1"
    assert first["locationPath"] == "/usr/lib/libssl.so"
    assert first["detectionMethod"] == "FILE"
