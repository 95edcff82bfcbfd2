"""Content scanner integration."""

from .invoke import Scanner
from .parse import decode_report, extract_json
from .provision import provisioned_scanner

__all__ = ["Scanner", "decode_report", "extract_json", "provisioned_scanner"]
