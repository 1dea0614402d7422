# File: data_manifest/orchestrator.py
"""data_manifest.orchestrator: цикл захвата страницы и записи строки в таблицу.

One cycle per load-complete tab event:

1. ask the extractor for the page (``{"action": "scrape"}``);
2. ask the credential provider for a token, prompting allowed;
3. validate the configuration;
4. make sure the per-host sheet exists, creating it with a header row;
5. append ``[url, title, content, timestamp]``.

Steps 1-3 are fatal for the cycle. Everything after them degrades: a failed
existence check counts as "sheet absent", failed creation or header write is
logged and the append still runs. No exception leaves :meth:`handle_event`.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Set

from data_manifest.config import ManifestConfig, validate_config
from data_manifest.credentials import Credential, CredentialFailure, CredentialProvider
from data_manifest.diagnostics import DiagnosticEvent, DiagnosticObserver, LoggingObserver
from data_manifest.errors import (
    ConfigurationError,
    CredentialError,
    DataManifestError,
    ErrorKind,
    ExtractionError,
    SheetsApiError,
)
from data_manifest.extractor import SCRAPE_REQUEST, PageExtractor
from data_manifest.models import (
    APPEND_RANGE,
    HEADER_RANGE,
    HEADER_ROW,
    CapturedPage,
    CycleOutcome,
    TabEvent,
)
from data_manifest.sheets.client import a1_range

__all__ = ["SheetStore", "CaptureOrchestrator"]


class SheetStore(Protocol):
    async def get_spreadsheet_metadata(self, spreadsheet_id: str, token: str) -> Set[str]: ...

    async def create_sheet(self, spreadsheet_id: str, title: str, token: str) -> Any: ...

    async def write_range(
        self, spreadsheet_id: str, range_ref: str, values: Sequence[Sequence[Any]], token: str
    ) -> Any: ...

    async def append_row(
        self, spreadsheet_id: str, range_ref: str, values: Sequence[Sequence[Any]], token: str
    ) -> Any: ...


class CaptureOrchestrator:
    """Реагирует на события вкладок и проводит цикл захвата до конца."""

    def __init__(
        self,
        config: ManifestConfig,
        extractor: PageExtractor,
        credentials: CredentialProvider,
        sheets: SheetStore,
        observer: Optional[DiagnosticObserver] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.config = config
        self.extractor = extractor
        self.credentials = credentials
        self.sheets = sheets
        self.observer = observer if observer is not None else LoggingObserver()
        self.clock = clock
        self._host_locks: Dict[str, asyncio.Lock] = {}
        self._host_users: Dict[str, int] = {}

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    async def handle_event(self, event: TabEvent) -> CycleOutcome:
        """Run one capture cycle for *event*; never raises."""
        if not event.is_load_complete:
            return CycleOutcome(CycleOutcome.SKIPPED, tab_id=event.tab_id)

        outcome = CycleOutcome(CycleOutcome.ABORTED, tab_id=event.tab_id)
        try:
            await self._run_cycle(event, outcome)
        except DataManifestError as exc:
            outcome.status = CycleOutcome.ABORTED
            self._fail(outcome, exc.kind, "Capture aborted", exc)
        except Exception as exc:
            outcome.status = CycleOutcome.ABORTED
            self._fail(outcome, ErrorKind.UNEXPECTED, "Error in capture cycle", exc)
        return outcome

    async def dispatch(self, events: Iterable[TabEvent]) -> List[CycleOutcome]:
        """Run a cycle per event concurrently; outcomes keep the event order."""
        return list(await asyncio.gather(*(self.handle_event(e) for e in events)))

    def sheet_title_for(self, event: TabEvent) -> str:
        if not self.config.create_domain_sheets:
            return self.config.default_sheet_name
        hostname = event.hostname
        if not hostname:
            raise ExtractionError(f"Cannot derive a sheet name from {event.url!r}")
        return hostname

    # ------------------------------------------------------------------ #
    # Cycle steps                                                        #
    # ------------------------------------------------------------------ #

    async def _run_cycle(self, event: TabEvent, outcome: CycleOutcome) -> None:
        self._emit(logging.DEBUG, f"Capturing tab {event.tab_id}: {event.url}", tab_id=event.tab_id)
        page = await self._request_page(event)
        token = await self._request_token()

        check = validate_config(self.config)
        if not check.ok:
            raise ConfigurationError(check.error or "Invalid spreadsheet configuration")
        spreadsheet_id = check.spreadsheet_id or ""

        sheet_title = self.sheet_title_for(event)
        outcome.sheet_title = sheet_title

        async with self._serialized(sheet_title):
            outcome.created = await self._ensure_sheet(spreadsheet_id, sheet_title, token, outcome)
            await self._append(spreadsheet_id, sheet_title, event, page, token, outcome)

    async def _request_page(self, event: TabEvent) -> CapturedPage:
        try:
            response = await asyncio.wait_for(
                self.extractor.send_message(event, SCRAPE_REQUEST),
                timeout=self.config.message_timeout,
            )
        except ExtractionError:
            raise
        except asyncio.TimeoutError as exc:
            raise ExtractionError(
                f"No response from the page extractor within {self.config.message_timeout} s"
            ) from exc
        except Exception as exc:
            raise ExtractionError(f"Page extraction failed: {exc}") from exc
        try:
            return CapturedPage.from_response(response, self.config.max_content_length)
        except (TypeError, KeyError) as exc:
            raise ExtractionError(f"Malformed extractor response: {exc}") from exc

    async def _request_token(self) -> str:
        try:
            result = await self.credentials.get_token(interactive=True)
        except Exception as exc:
            raise CredentialError(f"Credential provider failed: {exc}") from exc
        if isinstance(result, CredentialFailure):
            raise CredentialError(result.reason)
        if not isinstance(result, Credential) or not result.token:
            raise CredentialError("Credential provider returned no token")
        return result.token

    async def _ensure_sheet(
        self, spreadsheet_id: str, sheet_title: str, token: str, outcome: CycleOutcome
    ) -> bool:
        """Create *sheet_title* with a header row unless it exists. True if created."""
        try:
            titles = await self.sheets.get_spreadsheet_metadata(spreadsheet_id, token)
            exists = sheet_title in titles
        except SheetsApiError as exc:
            self._fail(outcome, ErrorKind.METADATA_CHECK_FAILURE, "Error checking for existing sheet", exc)
            exists = False

        if exists:
            return False

        try:
            await self.sheets.create_sheet(spreadsheet_id, sheet_title, token)
        except SheetsApiError as exc:
            self._fail(outcome, ErrorKind.SHEET_CREATION_FAILURE, "Error creating sheet", exc)
            return False
        self._emit(logging.INFO, f"New sheet '{sheet_title}' created successfully", sheet_title=sheet_title)

        try:
            await self.sheets.write_range(
                spreadsheet_id, a1_range(sheet_title, HEADER_RANGE), [list(HEADER_ROW)], token
            )
        except SheetsApiError as exc:
            self._fail(
                outcome,
                ErrorKind.HEADER_WRITE_FAILURE,
                "Could not add header row to sheet",
                exc,
                level=logging.WARNING,
            )
        return True

    async def _append(
        self,
        spreadsheet_id: str,
        sheet_title: str,
        event: TabEvent,
        page: CapturedPage,
        token: str,
        outcome: CycleOutcome,
    ) -> None:
        # Timestamp is taken now, not when the page was extracted.
        timestamp = self.clock().strftime(self.config.timestamp_format)
        row = (event.url or "", page.title, page.content, timestamp)
        outcome.row = row
        try:
            await self.sheets.append_row(
                spreadsheet_id, a1_range(sheet_title, APPEND_RANGE), [list(row)], token
            )
        except SheetsApiError as exc:
            outcome.status = CycleOutcome.APPEND_FAILED
            self._fail(outcome, ErrorKind.APPEND_FAILURE, "Error appending data", exc)
            return
        outcome.status = CycleOutcome.APPENDED
        self._emit(
            logging.INFO,
            f"Data appended successfully to '{sheet_title}' sheet",
            sheet_title=sheet_title,
            tab_id=event.tab_id,
        )

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    @contextlib.asynccontextmanager
    async def _serialized(self, sheet_title: str) -> AsyncIterator[None]:
        if not self.config.serialize_per_host:
            yield
            return
        lock = self._host_locks.setdefault(sheet_title, asyncio.Lock())
        self._host_users[sheet_title] = self._host_users.get(sheet_title, 0) + 1
        try:
            async with lock:
                yield
        finally:
            # замок живёт, пока его держат или ждут
            self._host_users[sheet_title] -= 1
            if not self._host_users[sheet_title]:
                del self._host_users[sheet_title]
                del self._host_locks[sheet_title]

    def _fail(
        self,
        outcome: CycleOutcome,
        kind: ErrorKind,
        message: str,
        exc: BaseException,
        level: int = logging.ERROR,
    ) -> None:
        outcome.errors.append(kind)
        self._emit(
            level,
            message,
            kind=kind,
            sheet_title=outcome.sheet_title,
            tab_id=outcome.tab_id,
            detail=str(exc) or type(exc).__name__,
        )

    def _emit(self, level: int, message: str, **fields: Any) -> None:
        self.observer.emit(DiagnosticEvent(level=level, message=message, **fields))
