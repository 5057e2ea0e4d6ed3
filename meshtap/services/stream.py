"""
Tap stream consumption.

Pulls decoded tap events one at a time, renders each, and writes it to the
output before asking for the next one. The loop has two states:

    RECEIVING --event--> render, write, RECEIVING
    RECEIVING --end of input--> DONE
    RECEIVING --TapStreamError--> report, DONE

A stream failure ends the session; a rendering failure only affects its own
event (renderers report it inline). Whatever was written before DONE is
always flushed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import TextIO

import pydantic

from meshtap import k8s
from meshtap.base_model import StrictModel
from meshtap.exceptions import MissingResourceKindError, TapStreamError
from meshtap.protocols import LoggerProtocol, NullLogger
from meshtap.schemas.tap import TapEvent
from meshtap.services.render import OutputFormat, Renderer, get_renderer

logger = logging.getLogger(__name__)


# ==============================================================================
# Event source
# ==============================================================================


class JsonlTapEventSource:
    """
    Decode tap events from a text stream, one JSON document per line.

    Iteration ends at end of input. A line that is not a valid tap event, or
    a failing read, raises TapStreamError.
    """

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream

    def __iter__(self) -> Iterator[TapEvent]:
        line_number = 0
        while True:
            try:
                line = self.stream.readline()
            except (OSError, UnicodeDecodeError) as e:
                raise TapStreamError(f'read failed: {e}', line_number + 1) from e
            if not line:
                return
            line_number += 1
            if not line.strip():
                continue

            try:
                event = TapEvent.model_validate_json(line)
            except pydantic.ValidationError as e:
                raise TapStreamError(f'invalid tap event: {e}', line_number) from e
            yield event


# ==============================================================================
# Output
# ==============================================================================


class AlignedWriter:
    """
    Line writer that right-aligns tab-separated cells.

    Consecutive lines containing tabs form a block whose columns are aligned
    once the block ends (a line without tabs, or flush()). Lines without tabs
    pass straight through.
    """

    def __init__(self, sink: TextIO) -> None:
        self.sink = sink
        self._block: list[list[str]] = []

    def write_line(self, text: str) -> None:
        for row in text.split('\n'):
            if '\t' in row:
                self._block.append(row.split('\t'))
            else:
                self._flush_block()
                self.sink.write(row + '\n')
                self.sink.flush()

    def flush(self) -> None:
        self._flush_block()
        self.sink.flush()

    def _flush_block(self) -> None:
        if not self._block:
            return
        # The trailing segment of a row is not a cell and is never padded
        columns = max(len(cells) for cells in self._block) - 1
        widths = [max((len(cells[j]) for cells in self._block if len(cells) > j + 1), default=0) for j in range(columns)]
        for cells in self._block:
            padded = ''.join(cell.rjust(widths[j]) for j, cell in enumerate(cells[:-1]))
            self.sink.write(padded + cells[-1] + '\n')
        self._block = []


# ==============================================================================
# Loop
# ==============================================================================


class TapSessionResult(StrictModel):
    """Outcome of one tap session."""

    events_rendered: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def render_tap_events(
    events: Iterable[TapEvent],
    writer: AlignedWriter,
    render: Renderer,
    resource: str,
    diagnostics: LoggerProtocol,
) -> TapSessionResult:
    """
    Render events until the source is exhausted or fails.

    Args:
        events: Decoded tap events; raising TapStreamError signals a stream failure
        writer: Output owned by this session
        render: Renderer for the selected output format
        resource: Resource kind for wide output ('' otherwise)
        diagnostics: Where stream failures are reported

    Returns:
        Number of events written and the stream error, if any
    """
    iterator = iter(events)
    rendered = 0
    while True:
        logger.debug('Waiting for data...')
        try:
            event = next(iterator)
        except StopIteration:
            return TapSessionResult(events_rendered=rendered)
        except TapStreamError as e:
            diagnostics.error(str(e))
            return TapSessionResult(events_rendered=rendered, error=str(e))

        writer.write_line(render(event, resource))
        rendered += 1


def write_tap_events(
    events: Iterable[TapEvent],
    sink: TextIO,
    output: OutputFormat = 'default',
    resource: str = '',
    short_names: Mapping[str, str] = k8s.DEFAULT_SHORT_NAMES,
    diagnostics: LoggerProtocol | None = None,
) -> TapSessionResult:
    """
    Render a whole tap session to ``sink`` in the chosen output format.

    ``resource`` is the canonical kind of the tapped resource; only wide
    output uses it.

    Raises:
        MissingResourceKindError: If wide output is requested without a resource kind
        OutputFormatError: If the output format is unknown
    """
    if output == 'wide' and not resource:
        raise MissingResourceKindError()

    render = get_renderer(output, short_names)
    writer = AlignedWriter(sink)
    try:
        return render_tap_events(
            events,
            writer,
            render,
            resource if output == 'wide' else '',
            diagnostics or NullLogger(),
        )
    finally:
        writer.flush()
