# File: tests/conftest.py
from __future__ import annotations

import asyncio
import re
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from aiohttp import web

from data_manifest.config import ManifestConfig
from data_manifest.credentials import Credential, CredentialFailure
from data_manifest.diagnostics import ActivityLog
from data_manifest.orchestrator import CaptureOrchestrator
from data_manifest.sheets.client import SheetsClient

SPREADSHEET_ID = "1xZUtDQM0ogdr7YKwwSQ0I3MqU0OWqn48e0DGdNfw2qQ"
SPREADSHEET_URL = f"https://docs.google.com/spreadsheets/d/{SPREADSHEET_ID}/edit?usp=sharing"
FIXED_NOW = datetime(2026, 10, 18, 12, 30, 0)

_PATH_RE = re.compile(r"^/v4/spreadsheets/(?P<sid>[^/:]+)(?P<rest>.*)$")


async def _serve_app(app: web.Application, port: int) -> AsyncIterator[str]:
    """Start *app* on *port*, yield base URL, ensure cleanup."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "localhost", port)
    await site.start()
    try:
        yield f"http://localhost:{port}"
    finally:
        await runner.cleanup()


# --------------------------------------------------------------------------- #
#                         In-memory Google Sheets API                         #
# --------------------------------------------------------------------------- #


class FakeSheetsApi:
    """Minimal Sheets v4 stand-in that records every request it receives."""

    def __init__(self) -> None:
        self.base_url = ""
        self.sheets: List[str] = []
        self.rows: Dict[str, List[List[Any]]] = {}
        self.calls: List[Dict[str, Any]] = []
        # op -> (status, body); body may be a dict (JSON) or str (plain text)
        self.fail: Dict[str, Tuple[int, Any]] = {}
        self.delay: Dict[str, float] = {}

    def ops(self) -> List[str]:
        return [c["op"] for c in self.calls]

    def calls_for(self, op: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["op"] == op]

    async def handle(self, request: web.Request) -> web.Response:
        match = _PATH_RE.match(request.path)
        if not match:
            return web.json_response({"error": {"message": "Not found"}}, status=404)
        sid, rest = match.group("sid"), match.group("rest")

        if request.method == "GET" and rest == "":
            op, rng = "metadata", None
        elif request.method == "POST" and rest == ":batchUpdate":
            op, rng = "create", None
        elif request.method == "PUT" and rest.startswith("/values/"):
            op, rng = "write", rest[len("/values/"):]
        elif request.method == "POST" and rest.startswith("/values/") and rest.endswith(":append"):
            op, rng = "append", rest[len("/values/"):-len(":append")]
        else:
            return web.json_response({"error": {"message": "Unsupported"}}, status=404)

        body = await request.json() if request.can_read_body else None
        self.calls.append(
            {
                "op": op,
                "spreadsheet_id": sid,
                "range": rng,
                "query": dict(request.query),
                "auth": request.headers.get("Authorization"),
                "body": body,
            }
        )

        if op in self.delay:
            await asyncio.sleep(self.delay[op])
        if op in self.fail:
            status, payload = self.fail[op]
            if isinstance(payload, dict):
                return web.json_response(payload, status=status)
            return web.Response(text=str(payload), status=status)

        if op == "metadata":
            return web.json_response(
                {"spreadsheetId": sid, "sheets": [{"properties": {"title": t}} for t in self.sheets]}
            )
        if op == "create":
            title = body["requests"][0]["addSheet"]["properties"]["title"]
            if title in self.sheets:
                return web.json_response(
                    {"error": {"code": 400, "message": f'A sheet with the name "{title}" already exists.'}},
                    status=400,
                )
            self.sheets.append(title)
            return web.json_response({"replies": [{"addSheet": {"properties": {"title": title}}}]})
        sheet = rng.split("!", 1)[0]
        self.rows.setdefault(sheet, []).extend(body["values"])
        return web.json_response({"spreadsheetId": sid, "updatedRange": rng})


@pytest_asyncio.fixture
async def sheets_api(unused_tcp_port: int) -> AsyncIterator[FakeSheetsApi]:
    api = FakeSheetsApi()
    app = web.Application()
    app.router.add_route("*", "/{tail:.*}", api.handle)
    async for url in _serve_app(app, unused_tcp_port):
        api.base_url = url
        yield api


@pytest.fixture()
def manifest_config(sheets_api: FakeSheetsApi) -> ManifestConfig:
    return ManifestConfig(
        spreadsheet_url=SPREADSHEET_URL,
        api_base_url=sheets_api.base_url,
        api_timeout=2.0,
        message_timeout=1.0,
        max_content_length=100,
    )


@pytest_asyncio.fixture
async def sheets_client(manifest_config: ManifestConfig) -> AsyncIterator[SheetsClient]:
    async with SheetsClient(manifest_config.api_base_url, timeout=manifest_config.api_timeout) as client:
        yield client


# --------------------------------------------------------------------------- #
#                          Extractor / credential stubs                       #
# --------------------------------------------------------------------------- #


class StubExtractor:
    """Answers scrape messages with a canned response."""

    def __init__(
        self,
        response: Optional[Dict[str, Any]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ) -> None:
        self.response = response if response is not None else {
            "url": "https://example.com/test",
            "title": "Test Page Title",
            "content": "This is test content...",
        }
        self.error = error
        self.delay = delay
        self.requests: List[Tuple[int, Dict[str, Any]]] = []

    async def send_message(self, event, message):
        self.requests.append((event.tab_id, dict(message)))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


class StubCredentials:
    def __init__(self, result=None, error: Optional[Exception] = None) -> None:
        self.result = result if result is not None else Credential("mock-access-token")
        self.error = error
        self.calls: List[bool] = []

    async def get_token(self, interactive: bool):
        self.calls.append(interactive)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture()
def extractor() -> StubExtractor:
    return StubExtractor()


@pytest.fixture()
def credentials() -> StubCredentials:
    return StubCredentials()


@pytest.fixture()
def failing_credentials() -> StubCredentials:
    return StubCredentials(CredentialFailure("The user did not approve access"))


@pytest.fixture()
def activity() -> ActivityLog:
    return ActivityLog(maxlen=None)


@pytest.fixture()
def make_orchestrator(manifest_config, extractor, credentials, sheets_client, activity):
    """Factory so tests can override any single collaborator."""

    def _make(**overrides) -> CaptureOrchestrator:
        kwargs = dict(
            config=manifest_config,
            extractor=extractor,
            credentials=credentials,
            sheets=sheets_client,
            observer=activity,
            clock=lambda: FIXED_NOW,
        )
        kwargs.update(overrides)
        return CaptureOrchestrator(**kwargs)

    return _make
