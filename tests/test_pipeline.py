import pytest
from conftest import library

from hostsweep.core.errors import ScanExecutionError, ScanParseError, SnapshotMountError
from hostsweep.core.models import ScanReport, Snapshot, Volume
from hostsweep.core.pipeline import run_pipeline


class TrackingProvider:
    name = "tracking"

    def __init__(self, fail_mount: frozenset = frozenset()) -> None:
        self.fail_mount = fail_mount
        self.created: list[str] = []
        self.removed: list[str] = []

    def create(self, volume: str) -> Snapshot:
        self.created.append(volume)
        return Snapshot(volume=volume, snapshot_id=f"snap{len(self.created)}", device="dev")

    def mount(self, volume: str, snapshot: Snapshot) -> str:
        if volume in self.fail_mount:
            raise SnapshotMountError(f"cannot mount {volume}")
        return f"/snapshots/{snapshot.snapshot_id}"

    def remove(self, mounted_path: str, snapshot_id: str) -> None:
        self.removed.append(snapshot_id)


class ScriptedScanner:
    def __init__(self, results: dict) -> None:
        self.results = results
        self.scanned: list[str] = []

    def scan(self, path: str) -> ScanReport:
        self.scanned.append(path)
        result = self.results[path]
        if isinstance(result, Exception):
            raise result
        return result


def test_each_volume_is_scanned_through_its_snapshot(make_report) -> None:
    provider = TrackingProvider()
    scanner = ScriptedScanner(
        {
            "/snapshots/snap1": make_report([library("libfoo", "/lib/libfoo.so", ("CVE-1", ""))]),
            "/snapshots/snap2": make_report([library("libbar", "/lib/libbar.so", ("CVE-2", ""))]),
        }
    )
    inventory = run_pipeline([Volume("/home"), Volume("/var")], provider, scanner, sep="/")

    assert scanner.scanned == ["/snapshots/snap1", "/snapshots/snap2"]
    assert provider.removed == ["snap1", "snap2"]
    assert [lib.path for lib in inventory.libraries] == ["/home/lib/libfoo.so", "/var/lib/libbar.so"]


@pytest.mark.parametrize("error", [ScanExecutionError("exit 1", returncode=1), ScanParseError("no json")])
def test_scan_failure_skips_volume_and_continues(make_report, error: Exception) -> None:
    provider = TrackingProvider()
    scanner = ScriptedScanner(
        {
            "/snapshots/snap1": error,
            "/snapshots/snap2": make_report([library("libbar", "/lib/libbar.so", ("CVE-2", ""))]),
        }
    )
    inventory = run_pipeline([Volume("/home"), Volume("/var")], provider, scanner, sep="/")

    assert provider.removed == ["snap1", "snap2"]
    assert inventory.volumes == ["/var"]
    assert inventory.finding_count == 1


def test_mount_failure_skips_volume(make_report) -> None:
    provider = TrackingProvider(fail_mount=frozenset({"/home"}))
    scanner = ScriptedScanner({"/snapshots/snap2": make_report([])})
    inventory = run_pipeline([Volume("/home"), Volume("/var")], provider, scanner, sep="/")

    assert scanner.scanned == ["/snapshots/snap2"]
    assert provider.removed == ["snap1", "snap2"]
    assert inventory.volumes == ["/var"]


def test_excluded_volumes_are_not_touched(make_report) -> None:
    provider = TrackingProvider()
    scanner = ScriptedScanner({"/snapshots/snap1": make_report([])})
    run_pipeline([Volume("/proc", excluded=True), Volume("/home")], provider, scanner, sep="/")
    assert provider.created == ["/home"]
