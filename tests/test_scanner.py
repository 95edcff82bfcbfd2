import json
import subprocess

import pytest

from hostsweep.core.errors import ScanExecutionError, ScanParseError
from hostsweep.core.utils import CommandResult
from hostsweep.scanner import invoke
from hostsweep.scanner.invoke import FINDINGS_EXIT_CODE, Scanner
from hostsweep.scanner.parse import decode_report, extract_json


def test_extract_json_strips_surrounding_noise(noisy_output: str) -> None:
    span = extract_json(noisy_output)
    assert span.startswith("{") and span.endswith("}")
    assert json.loads(span)["id"] == "scan-1"


def test_extract_json_ignores_braces_inside_strings() -> None:
    output = 'warn: cache miss\n{"msg": "odd } brace \\" and {", "n": {"k": 1}}\ntrailing }'
    assert json.loads(extract_json(output)) == {"msg": 'odd } brace " and {', "n": {"k": 1}}


def test_extract_json_returns_first_of_concatenated_objects() -> None:
    output = 'log {"first": 1} middle {"second": 2} end'
    assert extract_json(output) == '{"first": 1}'


@pytest.mark.parametrize(
    "output",
    [
        "no structured output at all",
        'prefix {"result": {"libraries": [] } trailing',
        '{"unterminated": "string}',
    ],
)
def test_extract_json_rejects_unbalanced_output(output: str) -> None:
    with pytest.raises(ScanParseError):
        extract_json(output)


def test_decode_report_rejects_invalid_json() -> None:
    with pytest.raises(ScanParseError):
        decode_report("noise {not: json} noise")


def test_decode_report_builds_findings(noisy_output: str) -> None:
    report = decode_report(noisy_output)
    assert report.scan_id == "scan-1"
    assert [lib.name for lib in report.libraries] == ["libfoo"]
    vuln = report.libraries[0].vulnerabilities[0]
    assert vuln.name == "CVE-2024-0001"
    assert vuln.fixed_version == "1.0.1"


def _patch_runner(monkeypatch: pytest.MonkeyPatch, result: CommandResult, calls: list) -> None:
    def run(args, timeout=None):
        calls.append(tuple(args))
        return result

    monkeypatch.setattr(invoke, "run_command", run)


def test_scan_accepts_findings_exit_code(monkeypatch: pytest.MonkeyPatch, noisy_output: str) -> None:
    calls: list = []
    _patch_runner(monkeypatch, CommandResult(args=(), returncode=FINDINGS_EXIT_CODE, output=noisy_output), calls)
    report = Scanner("/opt/scanner", hostname="web-1").scan("/home")
    assert report.finding_count == 1
    assert calls == [
        ("/opt/scanner", "dir", "scan", "--path", "/home", "-f", "json", "--name", "web-1-/home")
    ]


def test_scan_rejects_other_exit_codes(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_runner(monkeypatch, CommandResult(args=(), returncode=1, output="fatal: not authenticated"), [])
    with pytest.raises(ScanExecutionError) as excinfo:
        Scanner("/opt/scanner", hostname="web-1").scan("/home")
    assert excinfo.value.returncode == 1
    assert "not authenticated" in excinfo.value.output


def test_scan_reports_missing_binary(monkeypatch: pytest.MonkeyPatch) -> None:
    def missing(args, timeout=None):
        raise FileNotFoundError(args[0])

    monkeypatch.setattr(invoke, "run_command", missing)
    with pytest.raises(ScanExecutionError):
        Scanner("/missing/scanner", hostname="web-1").scan("/home")


def test_scan_reports_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    def slow(args, timeout=None):
        raise subprocess.TimeoutExpired(args, timeout)

    monkeypatch.setattr(invoke, "run_command", slow)
    with pytest.raises(ScanExecutionError, match="timed out"):
        Scanner("/opt/scanner", timeout=5, hostname="web-1").scan("/home")
