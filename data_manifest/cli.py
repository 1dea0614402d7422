# === FILE: data_manifest/cli.py ===
#!/usr/bin/env python3
"""
Точка входа Data Manifest для командной строки.

Команды:
  capture URL   Захватить страницу и дописать строку в лист её домена
  watch [FILE]  Обработать поток событий вкладок (JSON lines, stdin по умолчанию)
  scrape URL    Тестовое извлечение без записи в таблицу
  config        Показать текущую конфигурацию
  open          Открыть таблицу в браузере

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Опции capture/watch:
  --token TOKEN       OAuth access token (или DATA_MANIFEST_TOKEN); без него
                      токен запрашивается интерактивно в каждом цикле

Пример:
  data-manifest capture https://example.com/article --token ya29....
"""
import asyncio
import json
import sys
from pathlib import Path

import click

from data_manifest import __version__
from data_manifest.config import extract_spreadsheet_id, load_config
from data_manifest.engine import credentials_for, parse_events, start_capture, start_scrape, start_watch
from data_manifest.logger import init_logging

CONTEXT_SETTINGS = dict(help_option_names=["--help"])

token_option = click.option(
    '--token', 'token',
    envvar='DATA_MANIFEST_TOKEN',
    default=None,
    help='OAuth access token (по умолчанию запрашивается интерактивно)'
)


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='Data Manifest, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default='configs/default.yaml',
    show_default=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (только stderr, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд Data Manifest CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('capture', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--tab-id', 'tab_id', type=int, default=1, show_default=True, help='ID вкладки')
@token_option
@click.pass_context
def capture(ctx, url, tab_id, token):
    """Захватить страницу URL и дописать строку в таблицу."""
    cfg = ctx.obj['config']
    outcome = asyncio.run(start_capture(cfg, url, credentials_for(token), tab_id=tab_id))
    click.echo(json.dumps(outcome.to_dict(), ensure_ascii=False))
    if not outcome.appended:
        sys.exit(1)


@cli.command('watch', context_settings=CONTEXT_SETTINGS)
@click.argument('events', type=click.File('r', encoding='utf-8'), default='-')
@token_option
@click.pass_context
def watch(ctx, events, token):
    """Обработать события вкладок ({"tabId", "status", "url"} по строке)."""
    cfg = ctx.obj['config']
    tab_events = list(parse_events(events))
    outcomes = asyncio.run(start_watch(cfg, tab_events, credentials_for(token)))
    for outcome in outcomes:
        click.echo(json.dumps(outcome.to_dict(), ensure_ascii=False))


@cli.command('scrape', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.pass_context
def scrape(ctx, url):
    """Тестовое извлечение страницы без записи в таблицу."""
    cfg = ctx.obj['config']
    try:
        page = asyncio.run(start_scrape(cfg, url))
    except Exception as e:
        print_error(f'Ошибка извлечения: {e}')
    click.echo(json.dumps(page.to_dict(), ensure_ascii=False, indent=2))


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    data = cfg.model_dump()
    data['spreadsheet_id'] = extract_spreadsheet_id(cfg.spreadsheet_url)
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


@cli.command('open', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def open_sheet(ctx):
    """Открыть таблицу в браузере."""
    cfg = ctx.obj['config']
    if extract_spreadsheet_id(cfg.spreadsheet_url) is None:
        print_error('Неверный URL таблицы в конфигурации')
    click.launch(cfg.spreadsheet_url)
    click.echo(f'Opened {cfg.spreadsheet_url}')


if __name__ == "__main__":
    cli()
