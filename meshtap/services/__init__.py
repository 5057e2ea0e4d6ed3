"""Service layer: address codec, event mapping, rendering and stream consumption."""

from meshtap.services.address import address_to_string, ip_to_string
from meshtap.services.mapper import map_to_display_event
from meshtap.services.render import (
    OutputFormat,
    get_renderer,
    parse_output_format,
    render_tap_event,
    render_tap_event_json,
)
from meshtap.services.stream import (
    AlignedWriter,
    JsonlTapEventSource,
    TapSessionResult,
    render_tap_events,
    write_tap_events,
)

__all__ = [
    'AlignedWriter',
    'JsonlTapEventSource',
    'OutputFormat',
    'TapSessionResult',
    'address_to_string',
    'get_renderer',
    'ip_to_string',
    'map_to_display_event',
    'parse_output_format',
    'render_tap_event',
    'render_tap_event_json',
    'render_tap_events',
    'write_tap_events',
]
