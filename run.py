#!/usr/bin/env python3
"""
PathHawk - Concurrent Web Content Discovery

Main entry point for the command line tool.
"""

import asyncio
from pathlib import Path

import click

from pathhawk import __version__, configure_logging
from pathhawk.config import get_config
from pathhawk.scanner.core.classifier import FilterConfig, FilterError, parse_status_codes
from pathhawk.scanner.core.engine import ConfigurationError, ScanConfig, ScanCoordinator
from pathhawk.scanner.core.requester import RequestMethod
from pathhawk.scanner.core.template import TemplateError
from pathhawk.scanner.output import format_json, format_outcome
from pathhawk.scanner.sources import build_templates, collect_urls, read_wordlist

settings = get_config()


def _status_option(ctx, param, value):
    if value is None:
        return None
    try:
        return parse_status_codes(value)
    except FilterError as e:
        raise click.BadParameter(str(e))


def _int_list_option(ctx, param, value):
    if value is None:
        return None
    try:
        return frozenset(int(v) for v in value.split(',') if v.strip())
    except ValueError:
        raise click.BadParameter(f"Expected comma-separated integers, got {value!r}")


def _size_options(func):
    for prefix, verb in (('exclude', 'Drop'), ('match', 'Keep only')):
        for metric in ('lines', 'chars', 'words', 'bytes'):
            func = click.option(
                f'--{prefix}-{metric}',
                callback=_int_list_option,
                help=f'{verb} responses with these exact {metric} counts (comma-separated)'
            )(func)
    return func


def _status_color(status):
    if 200 <= status < 300:
        return 'green'
    if 300 <= status < 400:
        return 'cyan'
    if status in (401, 403):
        return 'yellow'
    return 'red' if status >= 500 else None


@click.group()
@click.version_option(version=__version__, prog_name='PathHawk')
def cli():
    """PathHawk - Concurrent Web Content Discovery"""
    pass


@cli.command()
@click.option('--url', '-u', 'urls', multiple=True,
              help='Base URL to scan; use FUZZ to mark where words go. Repeatable.')
@click.option('--urls-file', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='File with one URL per line')
@click.option('--results-file', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='Previous results file to extract URLs from')
@click.option('--wordlist', '-w', required=True,
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help='Wordlist file')
@click.option('--concurrency', '-c', type=click.IntRange(min=1), default=settings.SCANNER_CONCURRENCY,
              show_default=True, help='Maximum number of concurrent requests')
@click.option('--method', type=click.Choice([m.value for m in RequestMethod], case_sensitive=False),
              default='GET', show_default=True, help='HTTP method')
@click.option('--include-status', callback=_status_option,
              help='Report only these status codes (comma-separated); overrides --exclude-status')
@click.option('--exclude-status', callback=_status_option,
              help='Never report these status codes (comma-separated)')
@click.option('--depth', type=click.IntRange(min=0), default=settings.SCANNER_MAX_DEPTH,
              show_default=True, help='Recursion depth into found directories (0 = no recursion)')
@click.option('--delay', type=click.IntRange(min=0), default=None,
              help='Delay before each request in milliseconds')
@click.option('--timeout', type=float, default=settings.SCANNER_TIMEOUT, show_default=True,
              help='Per-request timeout in seconds')
@click.option('--insecure', is_flag=True, help='Accept invalid TLS certificates')
@click.option('--user-agent', default=settings.SCANNER_USER_AGENT, show_default=True,
              help='User-Agent header')
@click.option('--header', '-H', 'headers', multiple=True,
              help='Extra header "Name: value"; FUZZ is substituted. Repeatable.')
@click.option('--data', '-d', help='Request body; FUZZ is substituted')
@click.option('--marker', default=settings.SCANNER_MARKER, show_default=True,
              help='Substitution keyword')
@_size_options
@click.option('--json', 'as_json', is_flag=True, help='Print results as JSON lines')
@click.option('--output', '-o', type=click.File('w'), default='-', help='Output file for results')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output, including request errors')
def scan(urls, urls_file, results_file, wordlist, concurrency, method, include_status,
         exclude_status, depth, delay, timeout, insecure, user_agent, headers, data, marker,
         exclude_lines, exclude_chars, exclude_words, exclude_bytes,
         match_lines, match_chars, match_words, match_bytes,
         as_json, output, verbose):
    """Run a content discovery scan."""
    configure_logging('DEBUG' if verbose else settings.LOG_LEVEL)

    try:
        templates = build_templates(
            collect_urls(urls, urls_file, results_file),
            method=method,
            headers=headers,
            body=data,
            marker=marker
        )
        filters = FilterConfig(
            include_status=include_status,
            exclude_status=exclude_status,
            match_bytes=match_bytes,
            match_words=match_words,
            match_chars=match_chars,
            match_lines=match_lines,
            exclude_bytes=exclude_bytes,
            exclude_words=exclude_words,
            exclude_chars=exclude_chars,
            exclude_lines=exclude_lines,
        )
        config = ScanConfig.from_object(
            settings,
            concurrency=concurrency,
            timeout=timeout,
            delay=delay / 1000.0 if delay is not None else None,
            max_depth=depth,
            filters=filters,
            verify_ssl=False if insecure else None,
            user_agent=user_agent
        )
    except (TemplateError, FilterError, ConfigurationError) as e:
        raise click.UsageError(str(e))

    words = read_wordlist(wordlist)
    click.echo(f"# Wordlist: {wordlist}", err=True)
    click.echo(f"# Read {len(words)} words from wordlist.", err=True)
    for template in templates:
        click.echo(f"# Starting scan for URL: {template.url} ({template.mode.value})", err=True)

    def on_outcome(outcome):
        if outcome.is_error:
            if verbose:
                click.secho(format_outcome(outcome), fg='yellow', err=True)
            return
        if not outcome.is_interesting:
            return
        if as_json:
            click.echo(format_json(outcome), file=output)
        else:
            click.secho(format_outcome(outcome), file=output, fg=_status_color(outcome.status))

    coordinator = ScanCoordinator(templates, words, config=config, outcome_callback=on_outcome)
    summary = asyncio.run(coordinator.run())

    click.echo("-" * 50, err=True)
    click.echo(f"  Requests: {summary.processed}", err=True)
    click.echo(f"  Found:    {summary.interesting}", err=True)
    click.echo(f"  Errors:   {summary.errors}", err=True)
    click.echo(f"  Duration: {summary.duration:.2f}s", err=True)


if __name__ == '__main__':
    cli()
