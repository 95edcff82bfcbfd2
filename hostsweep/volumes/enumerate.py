"""Top-level volume discovery."""
from __future__ import annotations

import logging
import os
import platform
import string
from typing import AbstractSet, List, Optional

from ..core.config import DEFAULT_EXCLUSIONS
from ..core.errors import EnumerationError
from ..core.models import Volume

logger = logging.getLogger(__name__)


def _drive_exists(drive: str) -> bool:
    return os.path.exists(drive)


def _drive_root(entry: str) -> str:
    """Normalise ``d``, ``D:`` and ``d:/`` to the ``D:\\`` drive root form."""

    text = entry.strip().upper().replace("/", "\\")
    if len(text) == 1 and text.isalpha():
        return f"{text}:\\"
    if len(text) == 2 and text[1] == ":":
        return f"{text}\\"
    return text


def _windows_drives(exclusions: AbstractSet[str], include_excluded: bool) -> List[Volume]:
    volumes: List[Volume] = []
    excluded_roots = {_drive_root(entry) for entry in exclusions}
    for letter in string.ascii_uppercase:
        drive = f"{letter}:\\"
        excluded = drive in excluded_roots
        if excluded and not include_excluded:
            continue
        if _drive_exists(drive):
            volumes.append(Volume(path=drive, excluded=excluded))
    return volumes


def _posix_directories(
    root: str, exclusions: AbstractSet[str], include_excluded: bool
) -> List[Volume]:
    try:
        with os.scandir(root) as listing:
            entries = sorted(listing, key=lambda entry: entry.name)
    except OSError as exc:
        raise EnumerationError(f"Cannot list {root}: {exc}") from exc

    volumes: List[Volume] = []
    for entry in entries:
        full_path = os.path.join(root, entry.name)
        excluded = full_path in exclusions
        if excluded and not include_excluded:
            continue
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError as exc:
            logger.warning("Skipping %s: %s", full_path, exc)
            continue
        if is_dir:
            volumes.append(Volume(path=full_path, excluded=excluded))
    return volumes


def enumerate_volumes(
    *,
    system: Optional[str] = None,
    root: str = "/",
    exclusions: AbstractSet[str] = DEFAULT_EXCLUSIONS,
    include_excluded: bool = False,
) -> List[Volume]:
    """Return the top-level scan targets of this host.

    Windows hosts yield existing drive roots, everything else the directories
    directly below ``root``. Entries in ``exclusions`` are dropped unless
    ``include_excluded`` is set, in which case they are flagged instead.
    """

    system = system or platform.system()
    if system == "Windows":
        volumes = _windows_drives(exclusions, include_excluded)
    else:
        volumes = _posix_directories(root, exclusions, include_excluded)
    logger.debug("Volumes to scan: %s", [volume.path for volume in volumes if not volume.excluded])
    return volumes


__all__ = ["enumerate_volumes"]
