"""
Tap event renderers.

Three output formats share one calling convention, ``render(event, resource)``:

- default: one compact line per event
- wide: the compact line plus resource/pod/namespace and route labels,
  using ``resource`` (a canonical resource kind) to pick the peer label
- json: the display record as an indented JSON document

Renderers never raise on event content. Missing peers, labels or payloads
come out as empty fields or as an ``unknown`` line.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Literal, TypeGuard

from meshtap import k8s
from meshtap.exceptions import OutputFormatError
from meshtap.schemas.tap import (
    GrpcStatusEos,
    RequestInitHttp,
    ResetErrorEos,
    ResponseEndHttp,
    ResponseInitHttp,
    TapEvent,
    TcpAddress,
    grpc_status_name,
)
from meshtap.services.address import address_to_string
from meshtap.services.mapper import map_to_display_event

OutputFormat = Literal['default', 'wide', 'json']
OUTPUT_FORMATS: tuple[OutputFormat, ...] = ('default', 'wide', 'json')

Renderer = Callable[[TapEvent, str], str]


def is_output_format(value: str) -> TypeGuard[OutputFormat]:
    """Type guard for valid output formats."""
    return value in OUTPUT_FORMATS


def parse_output_format(value: str | None) -> OutputFormat:
    """
    Validate an output format name.

    An empty value (or None) selects the default compact format.

    Raises:
        OutputFormatError: If the name is not a known format
    """
    if not value:
        return 'default'
    if is_output_format(value):
        return value
    raise OutputFormatError(value)


# ==============================================================================
# Peers
# ==============================================================================


@dataclass(frozen=True)
class Peer:
    """One side of a tapped connection, as shown in a line."""

    address: TcpAddress
    labels: Mapping[str, str]
    direction: Literal['src', 'dst']

    def format_addr(self) -> str:
        return f'{self.direction}={address_to_string(self.address)}'

    def format_resource(self, resource_kind: str, short_names: Mapping[str, str]) -> str:
        """
        Describe which Kubernetes resources the peer belongs to.

        If the peer has a label for ``resource_kind`` it is shown as
        ``<dir>_res=<kind>/<name>``; otherwise the pod name is used when known.
        Unless the kind is itself ``namespace``, the peer's namespace is added.
        """
        out = ''
        if resource_kind in self.labels:
            kind = k8s.short_name(resource_kind, short_names)
            out = f' {self.direction}_res={kind}/{self.labels[resource_kind]}'
        elif k8s.POD in self.labels:
            out = f' {self.direction}_pod={self.labels[k8s.POD]}'

        if resource_kind != k8s.NAMESPACE and k8s.NAMESPACE in self.labels:
            out += f' {self.direction}_ns={self.labels[k8s.NAMESPACE]}'
        return out

    def tls_status(self) -> str:
        return self.labels.get(k8s.TLS_LABEL, '')


def src(event: TapEvent) -> Peer:
    return Peer(address=event.source, labels=event.source_meta.labels, direction='src')


def dst(event: TapEvent) -> Peer:
    return Peer(address=event.destination, labels=event.destination_meta.labels, direction='dst')


def route_labels(event: TapEvent) -> str:
    """Route labels as `` rt_<key>=<value>`` tokens (order not significant)."""
    return ''.join(f' rt_{key}={value}' for key, value in event.route_meta.labels.items())


def format_flow(event: TapEvent) -> str:
    source = src(event)
    destination = dst(event)

    match event.proxy_direction:
        case 'INBOUND':
            proxy = 'in '  # padded to line up with `out`
            tls = source.tls_status()
        case 'OUTBOUND':
            proxy = 'out'
            tls = destination.tls_status()
        case _:
            proxy = '???'
            tls = ''

    return f'proxy={proxy} {source.format_addr()} {destination.format_addr()} tls={tls}'


# ==============================================================================
# Renderers
# ==============================================================================


def render_tap_event(
    event: TapEvent,
    resource: str = '',
    short_names: Mapping[str, str] = k8s.DEFAULT_SHORT_NAMES,
) -> str:
    """Render a tap event as one line; a nonempty ``resource`` selects wide output."""
    flow = format_flow(event)

    resources = ''
    if resource:
        resources = (
            src(event).format_resource(resource, short_names)
            + dst(event).format_resource(resource, short_names)
            + route_labels(event)
        )

    match event.http:
        case RequestInitHttp(request_init=ev):
            return (
                f'req id={ev.id.base}:{ev.id.stream} {flow}'
                f' :method={ev.method.registered or ""}'
                f' :authority={ev.authority} :path={ev.path}{resources}'
            )

        case ResponseInitHttp(response_init=ev):
            return (
                f'rsp id={ev.id.base}:{ev.id.stream} {flow}'
                f' :status={ev.http_status} latency={ev.since_request_init.micros}µs{resources}'
            )

        case ResponseEndHttp(response_end=ev):
            match ev.eos:
                case GrpcStatusEos(grpc_status_code=code):
                    status = f' grpc-status={grpc_status_name(code)}'
                case ResetErrorEos(reset_error_code=code):
                    status = f' reset-error={code}'
                case _:
                    status = ''
            return (
                f'end id={ev.id.base}:{ev.id.stream} {flow}{status}'
                f' duration={ev.since_response_init.micros}µs response-length={ev.response_bytes}B{resources}'
            )

        case _:
            return f'unknown {flow}'


def render_tap_event_json(event: TapEvent, resource: str = '') -> str:
    """
    Render a tap event as an indented JSON document.

    A record that cannot be built or serialized is reported inline so one bad
    event does not end the tap session.
    """
    try:
        return map_to_display_event(event).to_json()
    except ValueError as e:  # pydantic ValidationError / PydanticSerializationError
        return f'Error marshalling JSON: {e}'


def get_renderer(output: OutputFormat, short_names: Mapping[str, str] = k8s.DEFAULT_SHORT_NAMES) -> Renderer:
    """Select the renderer for an output format."""
    match output:
        case 'default' | 'wide':
            return functools.partial(render_tap_event, short_names=short_names)
        case 'json':
            return render_tap_event_json
        case _:
            raise OutputFormatError(output)
