"""Volume discovery and snapshot handling."""

from .enumerate import enumerate_volumes
from .snapshot import select_provider, snapshot_scope

__all__ = ["enumerate_volumes", "select_provider", "snapshot_scope"]
