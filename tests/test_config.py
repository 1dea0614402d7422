# File: tests/test_config.py
import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from data_manifest.config import (
    ManifestConfig,
    extract_spreadsheet_id,
    load_config,
    validate_config,
)

SHEET_URL = "https://docs.google.com/spreadsheets/d/1xZUtDQM0ogdr7YKwwSQ0I3MqU0OWqn48e0DGdNfw2qQ/edit?usp=sharing"


def write_file(tmp_path: Path, content: str, suffix: str) -> Path:
    path = tmp_path / f"config{suffix}"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.mark.parametrize(
    "content,loader,expect_exc",
    [
        (f"spreadsheet_url: {SHEET_URL}", load_config, None),
        (json.dumps({"spreadsheet_url": SHEET_URL}), load_config, None),
        ("{}", load_config, ValidationError),
        ("not: a: mapping", load_config, ValueError),
        ("- just\n- a list", load_config, TypeError),
    ],
)
def test_load_config_variants(tmp_path, content, loader, expect_exc):
    # Write YAML or JSON based on content
    suffix = ".yaml" if not content.strip().startswith("{") else ".json"
    cfg_path = write_file(tmp_path, content, suffix)
    if expect_exc:
        with pytest.raises(expect_exc):
            loader(cfg_path)
    else:
        cfg = loader(cfg_path)
        assert isinstance(cfg, ManifestConfig)
        assert cfg.spreadsheet_url == SHEET_URL
        assert cfg.max_content_length == 100
        assert cfg.api_timeout == 30.0
        assert cfg.oauth_scopes == ["https://www.googleapis.com/auth/spreadsheets"]


def test_load_config_default_missing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(FileNotFoundError):
        load_config(None)


def test_load_config_default_present(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "configs").mkdir()
    (tmp_path / "configs" / "default.yaml").write_text(f"spreadsheet_url: {SHEET_URL}\n", encoding="utf-8")

    assert validate_config(load_config(None)).spreadsheet_id == "1xZUtDQM0ogdr7YKwwSQ0I3MqU0OWqn48e0DGdNfw2qQ"


def test_unsupported_suffix(tmp_path):
    with pytest.raises(ValueError):
        load_config(write_file(tmp_path, "spreadsheet_url = 'x'", ".toml"))


@pytest.mark.parametrize(
    "field,value",
    [
        ("api_timeout", 0),
        ("max_content_length", -1),
        ("unknown_option", True),
    ],
)
def test_schema_rejects_bad_values(field, value):
    with pytest.raises(ValidationError):
        ManifestConfig(spreadsheet_url=SHEET_URL, **{field: value})


def test_api_base_url_trailing_slash_is_stripped():
    cfg = ManifestConfig(spreadsheet_url=SHEET_URL, api_base_url="http://localhost:8080/")
    assert cfg.api_base_url == "http://localhost:8080"


@pytest.mark.parametrize(
    "url,expected",
    [
        (SHEET_URL, "1xZUtDQM0ogdr7YKwwSQ0I3MqU0OWqn48e0DGdNfw2qQ"),
        ("https://docs.google.com/spreadsheets/d/abc_DEF-123", "abc_DEF-123"),
        ("https://docs.google.com/spreadsheets/u/0/", None),
        ("", None),
    ],
)
def test_extract_spreadsheet_id(url, expected):
    assert extract_spreadsheet_id(url) == expected


def test_validate_config_ok():
    check = validate_config(ManifestConfig(spreadsheet_url=SHEET_URL))
    assert check.ok
    assert check.spreadsheet_id == "1xZUtDQM0ogdr7YKwwSQ0I3MqU0OWqn48e0DGdNfw2qQ"
    assert check.error is None


@pytest.mark.parametrize(
    "overrides",
    [
        {"spreadsheet_url": "https://example.com/sheet"},
        {"spreadsheet_url": ""},
        {"spreadsheet_url": SHEET_URL, "oauth_scopes": []},
    ],
)
def test_validate_config_failures_do_not_raise(overrides):
    check = validate_config(ManifestConfig(**overrides))
    assert not check.ok
    assert check.spreadsheet_id is None
    assert check.error
