# data_manifest/sheets/client.py
"""
Sheets client: the four Google Sheets v4 requests the capture cycle needs.

Each call is a single request with a JSON body, carries the bearer token of
the current cycle and either returns or raises :class:`SheetsApiError`.
Nothing is retried here and no state is kept between calls.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Set
from urllib.parse import quote

from aiohttp import ClientError, ClientResponse, ClientSession, ClientTimeout

from data_manifest.errors import SheetsApiError
from data_manifest.logger import get_logger

__all__ = ("SheetsClient", "a1_range")

Values = Sequence[Sequence[Any]]


def a1_range(sheet_title: str, cells: str) -> str:
    """``example.com`` + ``A1:D1`` -> ``example.com!A1:D1``."""
    return f"{sheet_title}!{cells}"


class SheetsClient:
    """Асинхронный клиент Sheets API поверх aiohttp."""

    def __init__(
        self,
        base_url: str = "https://sheets.googleapis.com",
        timeout: float = 30.0,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session
        self._owns_session = session is None
        self.logger = get_logger("sheets")

    async def __aenter__(self) -> SheetsClient:
        if self.session is None:
            self.session = ClientSession(timeout=ClientTimeout(total=self.timeout), raise_for_status=False)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    # ------------------------------------------------------------------ #
    # Operations                                                         #
    # ------------------------------------------------------------------ #

    async def get_spreadsheet_metadata(self, spreadsheet_id: str, token: str) -> Set[str]:
        """Return the titles of all sheets in the spreadsheet."""
        data = await self._request("GET", self._spreadsheet_url(spreadsheet_id), token)
        sheets = data.get("sheets", []) if isinstance(data, dict) else None
        if not isinstance(sheets, list):
            raise SheetsApiError("Malformed spreadsheet metadata")
        titles: Set[str] = set()
        for sheet in sheets:
            properties = sheet.get("properties", {}) if isinstance(sheet, dict) else None
            if not isinstance(properties, dict):
                raise SheetsApiError("Malformed spreadsheet metadata")
            title = properties.get("title")
            if title is not None:
                titles.add(title)
        return titles

    async def create_sheet(self, spreadsheet_id: str, title: str, token: str) -> Dict[str, Any]:
        body = {"requests": [{"addSheet": {"properties": {"title": title}}}]}
        return await self._request(
            "POST", f"{self._spreadsheet_url(spreadsheet_id)}:batchUpdate", token, json=body
        )

    async def write_range(
        self, spreadsheet_id: str, range_ref: str, values: Values, token: str
    ) -> Dict[str, Any]:
        return await self._request(
            "PUT",
            self._values_url(spreadsheet_id, range_ref),
            token,
            params={"valueInputOption": "RAW"},
            json={"values": _rows(values)},
        )

    async def append_row(
        self, spreadsheet_id: str, range_ref: str, values: Values, token: str
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"{self._values_url(spreadsheet_id, range_ref)}:append",
            token,
            params={"valueInputOption": "RAW", "insertDataOption": "INSERT_ROWS"},
            json={"values": _rows(values)},
        )

    # ------------------------------------------------------------------ #
    # Internals                                                          #
    # ------------------------------------------------------------------ #

    def _spreadsheet_url(self, spreadsheet_id: str) -> str:
        return f"{self.base_url}/v4/spreadsheets/{quote(spreadsheet_id, safe='')}"

    def _values_url(self, spreadsheet_id: str, range_ref: str) -> str:
        return f"{self._spreadsheet_url(spreadsheet_id)}/values/{quote(range_ref, safe='!:')}"

    async def _request(
        self,
        method: str,
        url: str,
        token: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if not self.session:
            raise RuntimeError("Session not initialized")
        headers = {"Authorization": f"Bearer {token}"}
        self.logger.debug("%s %s", method, url)
        try:
            async with self.session.request(
                method, url, headers=headers, params=params, json=json
            ) as resp:
                if resp.status >= 400:
                    raise SheetsApiError(await _error_message(resp), status=resp.status)
                if resp.content_type != "application/json":
                    return {}
                data = await resp.json()
                return data if isinstance(data, dict) else {}
        except asyncio.TimeoutError as exc:
            raise SheetsApiError(f"Request timed out after {self.timeout} s") from exc
        except ClientError as exc:
            raise SheetsApiError(str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            raise SheetsApiError(f"Malformed JSON response: {exc}") from exc


def _rows(values: Values) -> List[List[Any]]:
    return [list(row) for row in values]


async def _error_message(resp: ClientResponse) -> str:
    """``error.message`` from a Google error body, else a generic marker."""
    try:
        data = await resp.json(content_type=None)
    except (ClientError, ValueError):
        return "Unknown error"
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return "Unknown error"
