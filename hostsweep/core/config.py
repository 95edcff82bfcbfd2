"""Configuration loading for hostsweep."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, FrozenSet, Mapping, Optional

from .errors import ConfigError
from .utils import env_bool, env_list

try:  # pragma: no cover - Python >=3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - Python 3.10
    import tomli as tomllib  # type: ignore[no-redef]


CONFIG_PATH = Path.home() / ".config" / "hostsweep" / "config.toml"
ENV_PREFIX = "HOSTSWEEP_"

DEFAULT_EXCLUSIONS: FrozenSet[str] = frozenset(
    {
        "/cores",
        "/dev",
        "/lost+found",
        "/media",
        "/mnt",
        "/proc",
        "/run",
        "/snap",
        "/sys",
        "/tmp",
    }
)
DEFAULT_INTEGRATION_ID = "e7ddcf48-a2f3-fd39-89f4-b27c4efca17c"

_REQUIRED = (
    "client_id",
    "client_secret",
    "auth_url",
    "query_url",
    "subscription_id",
    "cloud_platform",
    "provider_id",
)


@dataclass(frozen=True)
class RuntimeConfig:
    """Computed runtime configuration values."""

    client_id: str = ""
    client_secret: str = field(default="", repr=False)
    auth_url: str = ""
    query_url: str = ""
    subscription_id: str = ""
    cloud_platform: str = ""
    provider_id: str = ""
    integration_id: str = DEFAULT_INTEGRATION_ID
    scanner_path: str = ""
    artifact_dir: Path = Path("artifacts")
    exclusions: FrozenSet[str] = DEFAULT_EXCLUSIONS
    verbose: bool = False

    def validate(self) -> "RuntimeConfig":
        for name in _REQUIRED:
            if not getattr(self, name):
                raise ConfigError(f"Missing required setting '{name}'")
        return self


def _load_file_config(path: Path) -> dict[str, object]:
    if not path.exists():
        return {}
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid configuration file {path}: {exc}") from exc
    section = data.get("hostsweep")
    if not isinstance(section, dict):
        return {}
    return section


def _env_config() -> dict[str, object]:
    values: dict[str, object] = {}
    for item in fields(RuntimeConfig):
        env_name = f"{ENV_PREFIX}{item.name.upper()}"
        if item.name == "verbose":
            if os.getenv(env_name) is not None:
                values["verbose"] = env_bool(env_name)
        elif item.name == "exclusions":
            extra = env_list(env_name)
            if extra:
                values["exclusions"] = extra
        else:
            value = os.getenv(env_name)
            if value:
                values[item.name] = value
    return values


def _apply(config: RuntimeConfig, values: Mapping[str, Any]) -> RuntimeConfig:
    known = {item.name for item in fields(RuntimeConfig)}
    changes: dict[str, Any] = {}
    for key, value in values.items():
        if key not in known or value is None:
            continue
        if key == "exclusions":
            if isinstance(value, str) or not hasattr(value, "__iter__"):
                raise ConfigError("'exclusions' must be a list of paths")
            changes[key] = frozenset(changes.get(key, config.exclusions)) | {
                str(entry) for entry in value if entry
            }
        elif key == "artifact_dir":
            changes[key] = Path(str(value))
        elif key == "verbose":
            if not isinstance(value, bool):
                raise ConfigError("'verbose' must be true or false")
            changes[key] = value
        else:
            changes[key] = str(value)
    return replace(config, **changes)


def load_config(
    *,
    config_path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> RuntimeConfig:
    """Compose runtime configuration respecting precedence.

    Defaults are overlaid by the ``[hostsweep]`` table of the TOML file, then
    by ``HOSTSWEEP_*`` environment variables, then by command-line overrides.
    Exclusions accumulate instead of replacing each other.
    """

    path = config_path or CONFIG_PATH
    if config_path is not None and not config_path.exists():
        raise ConfigError(f"Configuration file {config_path} does not exist")

    config = RuntimeConfig()
    config = _apply(config, _load_file_config(path))
    config = _apply(config, _env_config())
    if overrides:
        config = _apply(config, overrides)
    return config


__all__ = ["RuntimeConfig", "load_config", "CONFIG_PATH", "DEFAULT_EXCLUSIONS"]
