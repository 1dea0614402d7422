# === FILE: data_manifest/config.py ===
"""
Модуль для загрузки и валидации конфигурации Data Manifest.
Используется Pydantic для описания схемы и проверки данных.

Схема проверяется при загрузке файла, а пригодность конфигурации для записи в
таблицу (извлекаемый ID таблицы) проверяется чистой функцией
:func:`validate_config` в начале каждого цикла захвата.
"""
from __future__ import annotations

import errno
import json
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

SPREADSHEET_ID_RE = re.compile(r"/d/([A-Za-z0-9_-]+)")

DEFAULT_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]


class ManifestConfig(BaseModel):
    """Конфигурация процесса: таблица, таймауты, лимиты и OAuth scopes."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    spreadsheet_url: str = Field(..., description="URL Google-таблицы (содержит /d/<id>).")
    api_base_url: str = Field(
        "https://sheets.googleapis.com", min_length=1, description="Базовый URL Sheets API."
    )
    api_timeout: float = Field(30.0, gt=0, description="Таймаут на один запрос к API (секунд).")
    message_timeout: float = Field(
        10.0, gt=0, description="Сколько ждать ответа экстрактора страницы (секунд)."
    )
    max_content_length: int = Field(100, ge=0, description="Максимальная длина текста страницы.")
    oauth_scopes: List[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))

    create_domain_sheets: bool = Field(True, description="Отдельный лист на каждый домен.")
    default_sheet_name: str = Field("ScrapedData", min_length=1)
    serialize_per_host: bool = Field(
        True, description="Не выполнять параллельно два цикла для одного листа."
    )
    timestamp_format: str = Field("%Y-%m-%d %H:%M:%S", min_length=1)

    extension_name: str = "Website Data Scraper"
    extension_version: str = "1.0.0"

    @field_validator("api_base_url", mode="before")
    def _strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v


@dataclass(frozen=True, slots=True)
class ConfigCheck:
    """Result of :func:`validate_config`."""

    ok: bool
    spreadsheet_id: Optional[str] = None
    error: Optional[str] = None


def extract_spreadsheet_id(url: str) -> Optional[str]:
    match = SPREADSHEET_ID_RE.search(url or "")
    return match.group(1) if match else None


def validate_config(config: ManifestConfig) -> ConfigCheck:
    """Check that *config* can drive a capture cycle. Never raises."""
    if not config.spreadsheet_url:
        return ConfigCheck(ok=False, error="Spreadsheet URL is not configured")
    spreadsheet_id = extract_spreadsheet_id(config.spreadsheet_url)
    if spreadsheet_id is None:
        return ConfigCheck(ok=False, error="Invalid spreadsheet URL - could not extract ID")
    if not config.oauth_scopes:
        return ConfigCheck(ok=False, error="No OAuth scopes configured")
    return ConfigCheck(ok=True, spreadsheet_id=spreadsheet_id)


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> ManifestConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект ManifestConfig.
    При отсутствии файла конфига бросает FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    return ManifestConfig(**data)


__all__ = [
    "ManifestConfig",
    "ConfigCheck",
    "extract_spreadsheet_id",
    "validate_config",
    "load_config",
]
