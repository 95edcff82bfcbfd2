"""Reporting helpers."""

from .jsonout import load_inventory, load_known, save_inventory, save_known, to_json
from .markdown import to_markdown

__all__ = ["load_inventory", "load_known", "save_inventory", "save_known", "to_json", "to_markdown"]
