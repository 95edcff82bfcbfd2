"""Download and authentication of the scanner binary."""
from __future__ import annotations

import logging
import os
import platform
import shutil
import stat
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Tuple

import httpx

from ..core.config import RuntimeConfig
from ..core.errors import ScannerProvisionError
from ..core.log import redact
from ..core.utils import run_command
from .invoke import Scanner

logger = logging.getLogger(__name__)

DOWNLOAD_URLS = {
    ("linux", "amd64"): "https://wizcli.app.wiz.io/latest/wizcli-linux-amd64",
    ("linux", "arm64"): "https://wizcli.app.wiz.io/latest/wizcli-linux-arm64",
    ("darwin", "arm64"): "https://wizcli.app.wiz.io/latest/wizcli-darwin-arm64",
    ("windows", "amd64"): "https://wizcli.app.wiz.io/latest/wizcli-windows-amd64.exe",
}
_ARCH_ALIASES = {"x86_64": "amd64", "amd64": "amd64", "aarch64": "arm64", "arm64": "arm64"}


def platform_key(system: Optional[str] = None, machine: Optional[str] = None) -> Tuple[str, str]:
    system = (system or platform.system()).lower()
    machine = (machine or platform.machine()).lower()
    return system, _ARCH_ALIASES.get(machine, machine)


def download_url(system: Optional[str] = None, machine: Optional[str] = None) -> str:
    key = platform_key(system, machine)
    try:
        return DOWNLOAD_URLS[key]
    except KeyError:
        raise ScannerProvisionError(f"Unsupported platform or architecture: {key[0]}/{key[1]}") from None


def download(client: httpx.Client, url: str, destination: Path) -> None:
    logger.debug("Downloading scanner from %s to %s", url, destination)
    try:
        with client.stream("GET", url, follow_redirects=True) as response:
            if response.status_code >= 400:
                raise ScannerProvisionError(
                    f"Scanner download failed with status {response.status_code}"
                )
            with destination.open("wb") as fh:
                for chunk in response.iter_bytes():
                    fh.write(chunk)
    except httpx.HTTPError as exc:
        raise ScannerProvisionError(f"Scanner download failed: {exc}") from exc


def authenticate(binary: str, client_id: str, client_secret: str) -> None:
    try:
        result = run_command([binary, "auth", "--id", client_id, "--secret", client_secret])
    except OSError as exc:
        raise ScannerProvisionError(f"Cannot run scanner {binary}: {exc}") from exc
    if not result.ok:
        raise ScannerProvisionError(
            f"Scanner authentication failed (exit {result.returncode}): {redact(result.output.strip())}"
        )
    logger.info("Scanner authenticated successfully")


@contextmanager
def provisioned_scanner(
    config: RuntimeConfig, client: Optional[httpx.Client] = None
) -> Iterator[Scanner]:
    """Yield a ready-to-use :class:`Scanner`.

    A configured ``scanner_path`` is used as is. Otherwise the binary for this
    platform is downloaded into a temporary directory that is removed again
    on exit.
    """

    if config.scanner_path:
        if config.client_id and config.client_secret:
            authenticate(config.scanner_path, config.client_id, config.client_secret)
        yield Scanner(config.scanner_path)
        return

    url = download_url()
    workdir = Path(tempfile.mkdtemp(prefix="hostsweep-scanner-"))
    previous_wiz_dir = os.environ.get("WIZ_DIR")
    try:
        name = "wizcli.exe" if url.endswith(".exe") else "wizcli"
        binary = workdir / name
        owns_client = client is None
        http = client or httpx.Client(timeout=httpx.Timeout(60.0, read=300.0))
        try:
            download(http, url, binary)
        finally:
            if owns_client:
                http.close()
        if platform.system() != "Windows":
            binary.chmod(binary.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        os.environ["WIZ_DIR"] = str(workdir)
        authenticate(str(binary), config.client_id, config.client_secret)
        yield Scanner(str(binary))
    finally:
        if previous_wiz_dir is None:
            os.environ.pop("WIZ_DIR", None)
        else:
            os.environ["WIZ_DIR"] = previous_wiz_dir
        shutil.rmtree(workdir, ignore_errors=True)
        logger.debug("Removed scanner directory %s", workdir)


__all__ = ["provisioned_scanner", "download_url", "download", "authenticate", "platform_key"]
