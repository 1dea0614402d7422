# File: data_manifest/engine.py
"""data_manifest.engine: сборка зависимостей и запуск циклов захвата для CLI и тестов."""

from __future__ import annotations

import json
from typing import Iterable, Iterator, List, Optional

from data_manifest.config import ManifestConfig
from data_manifest.credentials import CredentialProvider, PromptCredentialProvider, StaticCredentialProvider
from data_manifest.diagnostics import DiagnosticObserver
from data_manifest.extractor import HtmlPageExtractor
from data_manifest.logger import logger
from data_manifest.models import CapturedPage, CycleOutcome, TabEvent
from data_manifest.orchestrator import CaptureOrchestrator
from data_manifest.sheets.client import SheetsClient

__all__ = [
    "credentials_for",
    "parse_events",
    "start_capture",
    "start_watch",
    "start_scrape",
]


def credentials_for(token: Optional[str]) -> CredentialProvider:
    """Токен из опции/окружения, иначе интерактивный запрос на каждый цикл."""
    if token:
        return StaticCredentialProvider(token)
    return PromptCredentialProvider()


def parse_events(lines: Iterable[str]) -> Iterator[TabEvent]:
    """Read tab events from JSON lines, skipping blanks and malformed lines."""
    for lineno, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            yield TabEvent.from_dict(data)
        except ValueError as exc:
            logger.warning("Skipping event on line %d: %s", lineno, exc)


async def start_watch(
    cfg: ManifestConfig,
    events: Iterable[TabEvent],
    credentials: CredentialProvider,
    observer: Optional[DiagnosticObserver] = None,
) -> List[CycleOutcome]:
    """Run a capture cycle for every event; cycles run concurrently."""
    async with HtmlPageExtractor(
        max_content_length=cfg.max_content_length,
        timeout=cfg.message_timeout,
        user_agent=f"{cfg.extension_name}/{cfg.extension_version}",
    ) as extractor, SheetsClient(cfg.api_base_url, timeout=cfg.api_timeout) as sheets:
        orchestrator = CaptureOrchestrator(cfg, extractor, credentials, sheets, observer=observer)
        outcomes = await orchestrator.dispatch(events)

    appended = sum(1 for o in outcomes if o.appended)
    logger.info("Processed %d event(s), %d row(s) appended", len(outcomes), appended)
    return outcomes


async def start_capture(
    cfg: ManifestConfig,
    url: str,
    credentials: CredentialProvider,
    tab_id: int = 1,
    observer: Optional[DiagnosticObserver] = None,
) -> CycleOutcome:
    """Capture *url* as though its tab had just finished loading."""
    event = TabEvent(tab_id=tab_id, status="complete", url=url)
    outcomes = await start_watch(cfg, [event], credentials, observer=observer)
    return outcomes[0]


async def start_scrape(cfg: ManifestConfig, url: str) -> CapturedPage:
    """Extract *url* without writing anything to the spreadsheet."""
    async with HtmlPageExtractor(
        max_content_length=cfg.max_content_length, timeout=cfg.message_timeout
    ) as extractor:
        return await extractor.scrape(url)
