"""Snapshot lifecycle management.

A volume moves through ``create`` -> ``mount`` -> scan -> ``remove`` (unmount
then delete). Providers hide the platform facility; :func:`snapshot_scope`
guarantees that every created snapshot is removed exactly once.
"""
from __future__ import annotations

import logging
import os
import platform
import shutil
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Protocol, Tuple

from ..core.errors import SnapshotCreateError, SnapshotMountError, SnapshotRemoveError
from ..core.models import Snapshot, Volume
from ..core.utils import CommandResult, run_command

logger = logging.getLogger(__name__)

SNAPSHOT_MOUNT_ROOT = "/run/hostsweep/snapshots"


class SnapshotProvider(Protocol):
    """Capability interface over one OS snapshot facility."""

    name: str

    def create(self, volume: str) -> Snapshot:  # pragma: no cover - protocol
        ...

    def mount(self, volume: str, snapshot: Snapshot) -> str:  # pragma: no cover - protocol
        ...

    def remove(self, mounted_path: str, snapshot_id: str) -> None:  # pragma: no cover - protocol
        ...


def _run(args: List[str]) -> CommandResult:
    try:
        return run_command(args)
    except OSError as exc:
        return CommandResult(args=tuple(args), returncode=-1, output=str(exc))


def _field_after(output: str, label: str) -> str:
    for line in output.splitlines():
        if label in line:
            value = line.split(label, 1)[1].strip()
            if value:
                return value
    return ""


class PassthroughSnapshotProvider:
    """Used where no snapshot facility exists: the live volume is scanned."""

    name = "passthrough"

    def create(self, volume: str) -> Snapshot:
        return Snapshot(volume=volume)

    def mount(self, volume: str, snapshot: Snapshot) -> str:
        return ""

    def remove(self, mounted_path: str, snapshot_id: str) -> None:
        return None


class VssSnapshotProvider:
    """Volume Shadow Copy snapshots exposed through a directory symlink."""

    name = "vss"

    def create(self, volume: str) -> Snapshot:
        result = _run(["vssadmin", "create", "shadow", f"/For={volume}"])
        if not result.ok:
            raise SnapshotCreateError(
                f"vssadmin could not snapshot {volume} (exit {result.returncode}): {result.output.strip()}"
            )
        snapshot_id = _field_after(result.output, "Shadow Copy ID:")
        if not snapshot_id:
            raise SnapshotCreateError(f"Shadow copy ID not found in vssadmin output for {volume}")
        device = _field_after(result.output, "Shadow Copy Volume Name:")
        if not device:
            try:
                self.remove("", snapshot_id)
            except SnapshotRemoveError as exc:
                logger.error("Failed to delete unusable snapshot %s: %s", snapshot_id, exc)
            raise SnapshotCreateError(f"Shadow copy volume name not found for {volume}")
        logger.debug("Created VSS snapshot %s for %s", snapshot_id, volume)
        return Snapshot(volume=volume, snapshot_id=snapshot_id, device=device.rstrip("\\") + "\\")

    def mount(self, volume: str, snapshot: Snapshot) -> str:
        drive = volume.rstrip("\\")
        mount_path = f"{drive}\\ShadowCopy"
        result = _run(["cmd", "/C", "mklink", "/D", mount_path, snapshot.device])
        if not result.ok:
            raise SnapshotMountError(
                f"Failed to link {snapshot.device} at {mount_path}: {result.output.strip()}"
            )
        logger.debug("Mounted VSS snapshot at %s", mount_path)
        return mount_path

    def remove(self, mounted_path: str, snapshot_id: str) -> None:
        failures: List[str] = []
        if mounted_path:
            result = _run(["cmd", "/C", "rd", mounted_path])
            if result.ok:
                logger.debug("Removed snapshot link %s", mounted_path)
            else:
                failures.append(f"rd {mounted_path}: {result.output.strip()}")
        if snapshot_id:
            result = _run(["vssadmin", "delete", "shadows", f"/Shadow={snapshot_id}", "/quiet"])
            if result.ok:
                logger.debug("Deleted VSS snapshot %s", snapshot_id)
            else:
                failures.append(f"vssadmin delete {snapshot_id}: {result.output.strip()}")
        if failures:
            raise SnapshotRemoveError("; ".join(failures))


class LvmSnapshotProvider:
    """Copy-on-write LVM snapshots mounted read-only below ``mount_root``."""

    name = "lvm"

    def __init__(self, mount_root: str = SNAPSHOT_MOUNT_ROOT, extents: str = "10%ORIGIN") -> None:
        self.mount_root = mount_root
        self.extents = extents
        # snapshot id -> (filesystem mount point, filesystem type)
        self._origins: Dict[str, Tuple[str, str]] = {}

    @staticmethod
    def _slug(volume: str) -> str:
        return volume.strip("/").replace("/", "_") or "root"

    def _mount_point(self, snapshot_id: str) -> str:
        return os.path.join(self.mount_root, snapshot_id.rsplit("/", 1)[-1])

    def create(self, volume: str) -> Snapshot:
        found = _run(["findmnt", "--noheadings", "--output", "SOURCE,TARGET,FSTYPE", "--target", volume])
        parts = found.output.split()
        if not found.ok or len(parts) < 3:
            raise SnapshotCreateError(f"Cannot resolve the filesystem backing {volume}")
        source, fs_root, fs_type = parts[0], parts[1], parts[2]

        lvs = _run(["lvs", "--noheadings", "--options", "vg_name,lv_name", source])
        names = lvs.output.split()
        if not lvs.ok or len(names) < 2:
            raise SnapshotCreateError(f"{source} backing {volume} is not a logical volume")
        vg_name, lv_name = names[0], names[1]

        snap_name = f"hostsweep-{self._slug(volume)}"
        created = _run(
            [
                "lvcreate",
                "--snapshot",
                "--name",
                snap_name,
                "--extents",
                self.extents,
                f"{vg_name}/{lv_name}",
            ]
        )
        if not created.ok:
            raise SnapshotCreateError(
                f"lvcreate failed for {vg_name}/{lv_name}: {created.output.strip()}"
            )
        snapshot_id = f"{vg_name}/{snap_name}"
        self._origins[snapshot_id] = (fs_root, fs_type)
        logger.debug("Created LVM snapshot %s for %s", snapshot_id, volume)
        return Snapshot(volume=volume, snapshot_id=snapshot_id, device=f"/dev/{snapshot_id}")

    def mount(self, volume: str, snapshot: Snapshot) -> str:
        fs_root, fs_type = self._origins.get(snapshot.snapshot_id, (volume, ""))
        mount_point = self._mount_point(snapshot.snapshot_id)
        try:
            os.makedirs(mount_point, exist_ok=True)
        except OSError as exc:
            raise SnapshotMountError(f"Cannot create mount point {mount_point}: {exc}") from exc
        options = "ro,nouuid" if fs_type == "xfs" else "ro"
        result = _run(["mount", "-o", options, snapshot.device, mount_point])
        if not result.ok:
            raise SnapshotMountError(
                f"Failed to mount {snapshot.device} at {mount_point}: {result.output.strip()}"
            )
        relative = os.path.relpath(volume, fs_root)
        logger.debug("Mounted LVM snapshot %s at %s", snapshot.snapshot_id, mount_point)
        return mount_point if relative == "." else os.path.join(mount_point, relative)

    def remove(self, mounted_path: str, snapshot_id: str) -> None:
        failures: List[str] = []
        if snapshot_id:
            mount_point = self._mount_point(snapshot_id)
            unmounted = True
            if mounted_path:
                result = _run(["umount", mount_point])
                unmounted = result.ok
                if not unmounted:
                    failures.append(f"umount {mount_point}: {result.output.strip()}")
            # a failed mount still leaves the directory created for it
            if unmounted and os.path.isdir(mount_point):
                try:
                    os.rmdir(mount_point)
                except OSError as exc:
                    logger.debug("Leaving mount point %s in place: %s", mount_point, exc)
            result = _run(["lvremove", "--force", snapshot_id])
            if result.ok:
                logger.debug("Deleted LVM snapshot %s", snapshot_id)
            else:
                failures.append(f"lvremove {snapshot_id}: {result.output.strip()}")
            self._origins.pop(snapshot_id, None)
        if failures:
            raise SnapshotRemoveError("; ".join(failures))


def select_provider(system: Optional[str] = None) -> SnapshotProvider:
    """Pick the snapshot facility of this host."""

    system = system or platform.system()
    if system == "Windows":
        return VssSnapshotProvider()
    if system == "Linux" and shutil.which("lvcreate"):
        return LvmSnapshotProvider()
    return PassthroughSnapshotProvider()


def _teardown(provider: SnapshotProvider, mounted_path: str, snapshot: Snapshot) -> None:
    try:
        provider.remove(mounted_path, snapshot.snapshot_id)
    except SnapshotRemoveError as exc:
        logger.error("Failed to remove snapshot of %s: %s", snapshot.volume, exc)


@contextmanager
def snapshot_scope(provider: SnapshotProvider, volume: Volume) -> Iterator[str]:
    """Yield the path to scan for ``volume`` and tear the snapshot down after.

    When no snapshot can be created the live volume path is yielded. A mount
    failure removes the snapshot and re-raises :class:`SnapshotMountError`.
    """

    try:
        snapshot = provider.create(volume.path)
    except SnapshotCreateError as exc:
        logger.warning("No snapshot for %s, scanning the live volume: %s", volume.path, exc)
        yield volume.path
        return

    mounted_path = ""
    try:
        mounted_path = provider.mount(volume.path, snapshot)
        yield mounted_path or volume.path
    finally:
        _teardown(provider, mounted_path, snapshot)


__all__ = [
    "SnapshotProvider",
    "PassthroughSnapshotProvider",
    "VssSnapshotProvider",
    "LvmSnapshotProvider",
    "select_provider",
    "snapshot_scope",
]
