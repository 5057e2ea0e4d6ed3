#!/usr/bin/env python3
"""
Command-line interface for meshtap.

Renders a stream of decoded tap events (one protobuf-JSON event per line)
as compact lines, wide lines or JSON documents.
"""

from __future__ import annotations

import logging
import sys
import traceback
from collections.abc import Mapping
from typing import TextIO

import typer

from meshtap import k8s
from meshtap.cli.logger import CLILogger
from meshtap.config import TapSettings, settings
from meshtap.exceptions import OutputFormatError, TapError
from meshtap.services.render import OutputFormat, parse_output_format
from meshtap.services.stream import JsonlTapEventSource, TapSessionResult, write_tap_events

app = typer.Typer(
    name='meshtap',
    help='Render live service-mesh tap events',
    add_completion=False,
)


def _validate_output_format(value: str | None) -> OutputFormat | None:
    """Validate and narrow output format for typer callback."""
    if value is None:
        return None
    try:
        return parse_output_format(value)
    except OutputFormatError as e:
        raise typer.BadParameter(f'{e}; must be one of: default, wide, json') from e


def _resource_kind(resource: str | None, short_names: Mapping[str, str]) -> str:
    """Canonical kind of a TYPE or TYPE/NAME resource argument ('' if none given)."""
    if not resource:
        return ''
    kind_name = resource.split('/', 1)[0]
    kind = k8s.canonical_resource_kind(kind_name, short_names)
    if kind is None:
        raise typer.BadParameter(f'unknown resource type "{kind_name}"', param_hint="'--resource'")
    return kind


@app.command()
def tap(
    source: str = typer.Argument('-', help='JSONL file of tap events, or - for stdin'),
    output: str | None = typer.Option(
        None, '--output', '-o', help='Output format: default, wide or json', callback=_validate_output_format
    ),
    resource: str | None = typer.Option(
        None, '--resource', '-r', help='Tapped resource (TYPE or TYPE/NAME); required for wide output'
    ),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Render tap events from SOURCE until end of input."""
    logger = CLILogger(verbose=verbose)
    if verbose:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr)

    output_format: OutputFormat = output or settings.DEFAULT_OUTPUT  # type: ignore[assignment]
    resource_kind = _resource_kind(resource, settings.RESOURCE_SHORT_NAMES)
    if output_format == 'wide' and not resource_kind:
        raise typer.BadParameter('wide output requires a resource', param_hint="'--resource'")

    logger.info(f'Rendering {source} as {output_format} output')
    try:
        if source == '-':
            result = _render(sys.stdin, output_format, resource_kind, settings, logger)
        else:
            with open(source, encoding='utf-8') as stream:
                result = _render(stream, output_format, resource_kind, settings, logger)
    except (TapError, OSError) as e:
        typer.secho(f'Error: {e}', fg=typer.colors.RED, err=True)
        if verbose:
            traceback.print_exc()
        raise typer.Exit(1)

    logger.info(f'Rendered {result.events_rendered} events')
    if not result.ok:
        raise typer.Exit(1)


def _render(
    stream: TextIO,
    output: OutputFormat,
    resource_kind: str,
    settings: TapSettings,
    logger: CLILogger,
) -> TapSessionResult:
    return write_tap_events(
        JsonlTapEventSource(stream),
        sys.stdout,
        output=output,
        resource=resource_kind,
        short_names=settings.RESOURCE_SHORT_NAMES,
        diagnostics=logger,
    )


@app.command()
def version() -> None:
    """Show the application name and version."""
    typer.echo(f'{settings.APP_NAME} {settings.VERSION}')


def main() -> None:
    """Entry point for CLI."""
    app()


if __name__ == '__main__':
    main()
