"""Command line interface for hostsweep."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Sequence, Tuple

from ..core.config import RuntimeConfig, load_config
from ..core.errors import HostsweepError
from ..core.log import configure_logging
from ..core.models import AssetFindings, AssetIdentity, KnownVulnerabilities, Volume
from ..core.pipeline import run_pipeline
from ..core.utils import json_dump, now_utc
from ..inventory.aggregate import AggregatedInventory
from ..inventory.diff import build_payload, diff
from ..remote.publish import Publisher
from ..remote.resources import fetch_known_vulnerabilities, resolve_resource_id
from ..remote.session import Session
from ..reporting import (
    load_inventory,
    load_known,
    save_inventory,
    save_known,
    to_json,
    to_markdown,
)
from ..scanner.provision import provisioned_scanner
from ..volumes.enumerate import enumerate_volumes
from ..volumes.snapshot import select_provider

logger = logging.getLogger("hostsweep.cli")

_FORMATTERS = {
    "json": to_json,
    "md": to_markdown,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hostsweep",
        description="hostsweep - snapshot-isolated host vulnerability inventory",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to a TOML configuration file")
    parser.add_argument("--output", type=Path, help="Write the new-findings report to file", default=None)
    parser.add_argument("--format", choices=sorted(_FORMATTERS), default="json")
    parser.add_argument("--scanner-path", dest="scanner_path", default=None)
    parser.add_argument("--artifact-dir", dest="artifact_dir", type=Path, default=None)
    parser.add_argument(
        "--exclude",
        action="append",
        default=[],
        help="Additional top-level path or drive to skip",
    )
    parser.add_argument("--verbose", action="store_true")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Scan every volume and publish new findings")
    run_parser.add_argument(
        "--replay",
        action="store_true",
        help="Reuse the saved inventory and known vulnerabilities instead of scanning",
    )
    run_parser.add_argument(
        "--no-publish",
        dest="no_publish",
        action="store_true",
        help="Stop after differencing",
    )

    subparsers.add_parser("volumes", help="List the volumes a sweep would scan")

    scan_parser = subparsers.add_parser("scan", help="Scan a single path without publishing")
    scan_parser.add_argument("path")

    return parser


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "scanner_path": args.scanner_path,
        "artifact_dir": args.artifact_dir,
        "exclusions": args.exclude or None,
        "verbose": True if args.verbose else None,
    }


def _write_output(path: Path | None, content: str) -> None:
    if path is None:
        print(content)
    else:
        path.write_text(content, encoding="utf-8")
        print(f"Report written to {path}", file=sys.stderr)


def _format_volume(volume: Volume) -> str:
    return f"{volume.path} (excluded)" if volume.excluded else volume.path


def _collect(
    args: argparse.Namespace, config: RuntimeConfig, session: Session
) -> Tuple[AggregatedInventory, KnownVulnerabilities]:
    if args.replay:
        logger.info("Replaying saved artifacts from %s", config.artifact_dir)
        return load_inventory(config.artifact_dir), load_known(config.artifact_dir)

    resource_id = resolve_resource_id(session, config.cloud_platform, config.provider_id)
    known = fetch_known_vulnerabilities(session, resource_id)
    save_known(known, config.artifact_dir)

    with provisioned_scanner(config) as scanner:
        volumes = enumerate_volumes(exclusions=config.exclusions)
        provider = select_provider()
        logger.info("Initiating scan of %d volumes using %s snapshots", len(volumes), provider.name)
        inventory = run_pipeline(volumes, provider, scanner)
    path = save_inventory(inventory, config.artifact_dir)
    logger.info("Aggregated %d findings into %s", inventory.finding_count, path)
    return inventory, known


def _publish(config: RuntimeConfig, session: Session, findings: AssetFindings) -> int:
    payload = build_payload(
        findings,
        integration_id=config.integration_id,
        data_source_id=config.subscription_id,
    )
    filename = f"hostsweep-{config.provider_id}-{now_utc():%Y%m%dT%H%M%SZ}.json"
    job = Publisher(session).publish(json_dump(payload).encode("utf-8"), filename)
    if job.succeeded:
        return 0
    logger.error("Ingestion finished with status %s: %s", job.status, job.status_info)
    return 2


def _run(args: argparse.Namespace, config: RuntimeConfig) -> int:
    config.validate()
    asset = AssetIdentity(cloud_platform=config.cloud_platform, provider_id=config.provider_id)
    with Session.from_config(config) as session:
        session.authenticate()
        inventory, known = _collect(args, config, session)
        findings = diff(inventory, known, asset)
        if args.output is not None:
            _write_output(args.output, _FORMATTERS[args.format](findings))
        if not findings:
            logger.info("No new vulnerabilities found")
            return 0
        if args.no_publish:
            logger.info("Skipping publication of %d new findings", len(findings.findings))
            return 0
        return _publish(config, session, findings)


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        config = load_config(config_path=args.config, overrides=_overrides(args))
        configure_logging(config.verbose)

        if args.command == "volumes":
            volumes = enumerate_volumes(exclusions=config.exclusions, include_excluded=True)
            for volume in volumes:
                print(_format_volume(volume))
            return 0

        if args.command == "scan":
            with provisioned_scanner(config) as scanner:
                report = scanner.scan(args.path)
            inventory = AggregatedInventory()
            inventory.add(args.path, report)
            _write_output(args.output, json_dump(inventory.to_dict()))
            return 0

        if args.command == "run":
            return _run(args, config)

        parser.error("Unsupported command")
    except (HostsweepError, ValueError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
