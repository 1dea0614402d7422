# File: data_manifest/credentials.py
"""data_manifest.credentials: получение bearer-токена для одного цикла захвата.

Провайдер вызывается в каждом цикле заново и возвращает либо
:class:`Credential`, либо :class:`CredentialFailure`; токен нигде не кэшируется.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional, Protocol, Union

import click

__all__ = [
    "Credential",
    "CredentialFailure",
    "CredentialResult",
    "CredentialProvider",
    "StaticCredentialProvider",
    "PromptCredentialProvider",
]


@dataclass(frozen=True, slots=True)
class Credential:
    token: str

    def __repr__(self) -> str:
        return "Credential(token=***)"


@dataclass(frozen=True, slots=True)
class CredentialFailure:
    reason: str


CredentialResult = Union[Credential, CredentialFailure]


class CredentialProvider(Protocol):
    async def get_token(self, interactive: bool) -> CredentialResult: ...


class StaticCredentialProvider:
    """Отдаёт заранее известный токен (из опции ``--token`` или переменной окружения)."""

    def __init__(self, token: Optional[str]) -> None:
        self._token = (token or "").strip()

    async def get_token(self, interactive: bool) -> CredentialResult:
        if not self._token:
            return CredentialFailure("No access token configured")
        return Credential(self._token)


class PromptCredentialProvider:
    """Asks the user for a token on every call when prompting is allowed."""

    def __init__(self, prompt: str = "Google OAuth access token") -> None:
        self.prompt = prompt
        # один терминал: запросы идут по очереди
        self._lock = asyncio.Lock()

    async def get_token(self, interactive: bool) -> CredentialResult:
        if not interactive:
            return CredentialFailure("Interactive sign-in is not allowed")
        async with self._lock:
            try:
                token = await asyncio.to_thread(click.prompt, self.prompt, hide_input=True)
            except click.Abort:
                return CredentialFailure("The user did not approve access")
        token = (token or "").strip()
        if not token:
            return CredentialFailure("Empty access token")
        return Credential(token)
