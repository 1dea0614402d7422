# data_manifest/models.py
"""
Data models for the Data Manifest capture cycle.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

from data_manifest.errors import ErrorKind

HEADER_ROW: Tuple[str, str, str, str] = ("URL", "Title", "Content", "Timestamp")
HEADER_RANGE = "A1:D1"
APPEND_RANGE = "A:A"

SheetRow = Tuple[str, str, str, str]


@dataclass(frozen=True, slots=True)
class TabEvent:
    """Tab-state-changed notification from the host (``{tabId, status, url}``)."""

    tab_id: int
    status: str
    url: Optional[str] = None

    @property
    def is_load_complete(self) -> bool:
        return self.status == "complete" and bool(self.url)

    @property
    def hostname(self) -> str:
        return urlparse(self.url or "").hostname or ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TabEvent:
        """Build an event from the host's JSON shape (``tabId`` or ``tab_id``)."""
        tab_id = data.get("tabId", data.get("tab_id", 0))
        return cls(tab_id=int(tab_id or 0), status=str(data.get("status") or ""), url=data.get("url") or None)


@dataclass(frozen=True, slots=True)
class CapturedPage:
    """Результат работы экстрактора: URL, заголовок и усечённый текст."""

    url: str
    title: str
    content: str

    @classmethod
    def from_response(cls, data: Mapping[str, Any], max_length: int) -> CapturedPage:
        """Validate an extractor response; *content* is cut to *max_length*."""
        if not isinstance(data, Mapping):
            raise TypeError(f"Extractor response must be a mapping, got {type(data).__name__}")
        missing = [k for k in ("url", "title", "content") if k not in data]
        if missing:
            raise KeyError(f"Extractor response missing {', '.join(missing)}")
        return cls(
            url=str(data["url"]),
            title=str(data["title"] or ""),
            content=str(data["content"] or "")[:max_length],
        )

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


@dataclass(slots=True)
class CycleOutcome:
    """Итог одного цикла захвата."""

    status: str
    tab_id: Optional[int] = None
    sheet_title: Optional[str] = None
    row: Optional[SheetRow] = None
    created: bool = False
    errors: List[ErrorKind] = field(default_factory=list)

    SKIPPED = "skipped"
    ABORTED = "aborted"
    APPENDED = "appended"
    APPEND_FAILED = "append_failed"

    @property
    def appended(self) -> bool:
        return self.status == self.APPENDED

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "tab_id": self.tab_id,
            "sheet_title": self.sheet_title,
            "row": list(self.row) if self.row is not None else None,
            "created": self.created,
            "errors": [e.value for e in self.errors],
        }


__all__ = [
    "HEADER_ROW",
    "HEADER_RANGE",
    "APPEND_RANGE",
    "SheetRow",
    "TabEvent",
    "CapturedPage",
    "CycleOutcome",
]
