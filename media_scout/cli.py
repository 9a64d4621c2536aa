# === FILE: media_scout/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска сканера MediaScout через командную строку.

Команды:
  scan INPUT  Просканировать сайты (файл со списком URL или один URL) и записать CSV
  config      Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Команда scan опции:
  --country NAME        Фильтр по стране для запроса метрик
  --secrets PATH        JSON-файл с api_key и api_url сервиса метрик
  --max-concurrent N    Число одновременно сканируемых сайтов
  --json PATH           Сохранить JSON-сводку в файл
  --html PATH           Сохранить HTML-сводку в файл
  --template DIR        Папка с Jinja2-шаблонами
  --scan-timeout SEC    Таймаут всего сканирования (секунд)

Пример:
  media_scout scan sites.txt --secrets secrets --html output/report.html
"""
import asyncio
import sys
from pathlib import Path

import click

from media_scout import __version__
from media_scout.config import load_config, load_secrets
from media_scout.engine import start_scan
from media_scout.logger import init_logging, logger
from media_scout.report.html_report import render_html
from media_scout.report.json_report import render_json
from media_scout.utils import is_http_url, normalize_url, read_url_list

CONTEXT_SETTINGS = dict(help_option_names=["--help"])
EXIT_INTERRUPTED = 130


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def read_input(value: str) -> list[str]:
    """Возвращает список URL из файла или из одиночного URL-аргумента."""
    path = Path(value)
    if path.exists():
        try:
            return read_url_list(path)
        except (OSError, UnicodeDecodeError) as e:
            raise ValueError(f'Не удалось прочитать список URL {path}: {e}')
    if is_http_url(value):
        return [normalize_url(value)]
    raise ValueError(f'INPUT должен быть файлом со списком URL или http(s)-адресом: {value}')


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='MediaScout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
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
    help='Путь к файлу логов (stdout, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд MediaScout CLI."""
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


@cli.command('scan', context_settings=CONTEXT_SETTINGS)
@click.argument('input_value', metavar='INPUT')
@click.option(
    '--country', 'country',
    default=None,
    help='Фильтр по стране для запроса метрик'
)
@click.option(
    '--secrets', 'secrets_path',
    default='secrets',
    show_default=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help='JSON-файл с api_key и api_url (пропускается, если не существует)'
)
@click.option(
    '--max-concurrent', '-n', 'max_concurrent',
    type=click.IntRange(min=1),
    default=None,
    help='Число одновременно сканируемых сайтов (override max_concurrent)'
)
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-сводку в файл'
)
@click.option(
    '--html', '-h', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-сводку в файл'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Папка с Jinja2-шаблонами (по умолчанию шаблоны пакета)'
)
@click.option(
    '--scan-timeout', 'scan_timeout',
    type=float,
    default=None,
    help='Таймаут всего сканирования (секунд)'
)
@click.pass_context
def scan(ctx, input_value, country, secrets_path, max_concurrent, json_output, html_output,
         template_dir, scan_timeout):
    """Просканировать сайты и записать результаты в CSV."""
    cfg = ctx.obj['config']
    try:
        urls = read_input(input_value)
    except ValueError as e:
        print_error(str(e))

    if secrets_path and secrets_path.is_file():
        try:
            cfg = load_secrets(cfg, secrets_path)
        except Exception as e:
            print_error(f'Ошибка чтения файла секретов: {e}')
    elif not cfg.metrics.enabled:
        logger.warning('Metrics credentials not configured; metrics columns will stay empty')

    overrides = {}
    if max_concurrent is not None:
        overrides['max_concurrent'] = max_concurrent
    if country:
        overrides['metrics'] = cfg.metrics.model_copy(update={'country': country})
    if overrides:
        cfg = cfg.model_copy(update=overrides)

    click.echo(f'Scanning {len(urls)} site(s), results: {cfg.csv_path}')
    try:
        if scan_timeout:
            summary = asyncio.run(
                asyncio.wait_for(start_scan(cfg, urls), timeout=scan_timeout)
            )
        else:
            summary = asyncio.run(start_scan(cfg, urls))
    except asyncio.TimeoutError:
        print_error(f'Сканирование не завершено за {scan_timeout} секунд')
    except Exception as e:
        print_error(f'Ошибка при сканировании: {e}')

    if json_output:
        try:
            saved_json = render_json(summary, json_output)
            click.echo(f'JSON report: {saved_json}')
        except Exception as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            saved_html = render_html(summary, template_dir, html_output)
            click.echo(f'HTML report: {saved_html}')
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')

    click.echo(f'Saved {summary.persisted} of {summary.requested} site(s) to {cfg.csv_path}')
    if summary.interrupted:
        click.secho('Scan interrupted', fg='yellow', err=True)
        sys.exit(EXIT_INTERRUPTED)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
