"""Aggregation and differencing of scan findings."""

from .aggregate import AggregatedInventory, prefix_path
from .diff import build_payload, diff

__all__ = ["AggregatedInventory", "build_payload", "diff", "prefix_path"]
