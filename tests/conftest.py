import json
import logging
from collections.abc import Iterator
from typing import Any, Callable

import pytest

from hostsweep.core import config
from hostsweep.core.config import ENV_PREFIX
from hostsweep.core.models import ScanReport


def library(name: str, path: str, *vulns: tuple[str, str], version: str = "1.0.0") -> dict[str, Any]:
    return {
        "name": name,
        "version": version,
        "path": path,
        "detectionMethod": "FILE",
        "vulnerabilities": [
            {"name": vuln, "severity": "HIGH", "fixedVersion": fixed, "score": 7.5}
            for vuln, fixed in vulns
        ],
    }


def application(name: str, path: str, vuln: str, fixed: str = "") -> dict[str, Any]:
    return {
        "name": name,
        "detectionMethod": "INSTALLED_PROGRAM",
        "vulnerabilities": [
            {
                "path": path,
                "pathType": "FILE",
                "version": "2.0",
                "vulnerability": {"name": vuln, "severity": "CRITICAL", "fixedVersion": fixed},
            }
        ],
    }


def scanner_document(libraries: list[dict[str, Any]], applications: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    return {
        "id": "scan-1",
        "createdAt": "2024-05-01T10:00:00Z",
        "result": {
            "osPackages": None,
            "libraries": libraries,
            "applications": applications or [],
            "cpes": None,
        },
        "reportUrl": "https://example.invalid/report/scan-1",
    }


@pytest.fixture
def make_report() -> Callable[..., ScanReport]:
    def factory(libraries: list[dict[str, Any]], applications: list[dict[str, Any]] | None = None) -> ScanReport:
        return ScanReport.from_dict(scanner_document(libraries, applications))

    return factory


@pytest.fixture
def noisy_output() -> str:
    document = scanner_document([library("libfoo", "/lib/libfoo.so", ("CVE-2024-0001", "1.0.1"))])
    return "Scanning directory...\n" + json.dumps(document) + "\nScan finished with findings\n"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory) -> Iterator[None]:
    monkeypatch.setattr(config, "CONFIG_PATH", tmp_path_factory.mktemp("home") / "config.toml")
    for name in (
        "CLIENT_ID",
        "CLIENT_SECRET",
        "AUTH_URL",
        "QUERY_URL",
        "SUBSCRIPTION_ID",
        "CLOUD_PLATFORM",
        "PROVIDER_ID",
        "INTEGRATION_ID",
        "SCANNER_PATH",
        "ARTIFACT_DIR",
        "EXCLUSIONS",
        "VERBOSE",
    ):
        monkeypatch.delenv(f"{ENV_PREFIX}{name}", raising=False)
    yield
    # configure_logging binds a handler to the per-test stderr capture
    logger = logging.getLogger("hostsweep")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
