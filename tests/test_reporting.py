import json
from pathlib import Path

from conftest import library

from hostsweep.core.models import AssetFindings, AssetIdentity, KnownVulnerabilities, KnownVulnerability
from hostsweep.inventory.aggregate import AggregatedInventory
from hostsweep.inventory.diff import diff
from hostsweep.reporting import (
    load_inventory,
    load_known,
    save_inventory,
    save_known,
    to_json,
    to_markdown,
)

ASSET = AssetIdentity(cloud_platform="GCP", provider_id="1234567890")


def test_artifacts_are_written_and_replayed(tmp_path: Path, make_report) -> None:
    inventory = AggregatedInventory()
    inventory.add("/opt", make_report([library("log4j", "/app/log4j.jar", ("CVE-2021-44228", "2.15.0"))]), "/")
    known = KnownVulnerabilities(resource_id="res-9", findings=(KnownVulnerability(name="CVE-1"),))

    assert save_inventory(inventory, tmp_path / "out").name == "scan.json"
    assert save_known(known, tmp_path / "out").name == "known_vulns.json"
    assert load_inventory(tmp_path / "out") == inventory
    assert load_known(tmp_path / "out") == known


def test_json_report(make_report) -> None:
    inventory = AggregatedInventory()
    inventory.add("/opt", make_report([library("log4j", "/app/log4j.jar", ("CVE-2021-44228", "2.15.0"))]), "/")
    findings = diff(inventory, KnownVulnerabilities(resource_id="res-9"), ASSET)
    document = json.loads(to_json(findings))
    assert document["assetIdentifier"]["providerId"] == "1234567890"
    assert document["vulnerabilityFindings"][0]["locationPath"] == "/opt/app/log4j.jar"


def test_markdown_report(make_report) -> None:
    inventory = AggregatedInventory()
    inventory.add("/opt", make_report([library("log4j", "/app/log4j.jar", ("CVE-2021-44228", "2.15.0"))]), "/")
    text = to_markdown(diff(inventory, KnownVulnerabilities(resource_id="res-9"), ASSET))
    assert text.startswith("# hostsweep New Findings")
    assert "- **High:** 1 findings" in text
    assert "| CVE-2021-44228 | HIGH | log4j 1.0.0 | 2.15.0 | /opt/app/log4j.jar |" in text


def test_markdown_without_findings() -> None:
    assert "No new findings were identified." in to_markdown(AssetFindings(asset=ASSET))
