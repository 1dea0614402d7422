# File: data_manifest/sheets/__init__.py
"""data_manifest.sheets: клиент Google Sheets API v4."""

from .client import SheetsClient, a1_range

__all__ = ["SheetsClient", "a1_range"]
