# File: data_manifest/errors.py
"""data_manifest.errors: виды ошибок цикла захвата и иерархия исключений."""

from __future__ import annotations

from enum import Enum
from typing import Optional

__all__ = [
    "ErrorKind",
    "DataManifestError",
    "ExtractionError",
    "CredentialError",
    "ConfigurationError",
    "SheetsApiError",
]


class ErrorKind(str, Enum):
    """Failure categories a capture cycle can report."""

    EXTRACTION_FAILURE = "extraction_failure"
    CREDENTIAL_FAILURE = "credential_failure"
    CONFIGURATION_INVALID = "configuration_invalid"
    METADATA_CHECK_FAILURE = "metadata_check_failure"
    SHEET_CREATION_FAILURE = "sheet_creation_failure"
    HEADER_WRITE_FAILURE = "header_write_failure"
    APPEND_FAILURE = "append_failure"
    UNEXPECTED = "unexpected"


class DataManifestError(Exception):
    """Базовое исключение проекта."""

    kind: ErrorKind = ErrorKind.UNEXPECTED


class ExtractionError(DataManifestError):
    kind = ErrorKind.EXTRACTION_FAILURE


class CredentialError(DataManifestError):
    kind = ErrorKind.CREDENTIAL_FAILURE


class ConfigurationError(DataManifestError):
    kind = ErrorKind.CONFIGURATION_INVALID


class SheetsApiError(DataManifestError):
    """A Sheets API request failed (non-2xx status or transport error).

    ``status`` is ``None`` when no HTTP response was received at all.
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"HTTP {self.status}: {self.message}"
