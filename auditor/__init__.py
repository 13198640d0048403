"""Single-page WCAG accessibility scanner."""

from auditor.engine import perform_scan
from auditor.errors import ScanError

__all__ = ["ScanError", "perform_scan"]
