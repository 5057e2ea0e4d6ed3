"""
Event classifier - maps wire tap events to display records.

Pure functions, no I/O. Every wire event maps to a display event; an event
whose lifecycle payload is unknown simply has no lifecycle sub-record.
"""

from __future__ import annotations

from meshtap.schemas.display import (
    DisplayEvent,
    DisplayStreamId,
    Endpoint,
    RequestInitEvent,
    ResponseEndEvent,
    ResponseInitEvent,
)
from meshtap.schemas.tap import (
    GrpcStatusEos,
    NoEos,
    PeerMetadata,
    RequestInit,
    RequestInitHttp,
    ResetErrorEos,
    ResponseEnd,
    ResponseEndHttp,
    ResponseInit,
    ResponseInitHttp,
    StreamId,
    TapEvent,
    TcpAddress,
    UnknownHttp,
)
from meshtap.services.address import ip_to_string


def map_to_display_event(event: TapEvent) -> DisplayEvent:
    """Project a tap event onto its display record."""
    request_init: RequestInitEvent | None = None
    response_init: ResponseInitEvent | None = None
    response_end: ResponseEndEvent | None = None

    match event.http:
        case RequestInitHttp(request_init=ev):
            request_init = _request_init_event(ev)
        case ResponseInitHttp(response_init=ev):
            response_init = _response_init_event(ev)
        case ResponseEndHttp(response_end=ev):
            response_end = _response_end_event(ev)
        case UnknownHttp():
            pass

    return DisplayEvent(
        source=_endpoint(event.source, event.source_meta),
        destination=_endpoint(event.destination, event.destination_meta),
        route_meta=dict(event.route_meta.labels),
        proxy_direction=event.proxy_direction,
        request_init_event=request_init,
        response_init_event=response_init,
        response_end_event=response_end,
    )


def _endpoint(address: TcpAddress, meta: PeerMetadata) -> Endpoint:
    return Endpoint(ip=ip_to_string(address.ip), port=address.port, metadata=dict(meta.labels))


def _stream_id(sid: StreamId) -> DisplayStreamId:
    return DisplayStreamId(base=sid.base, stream=sid.stream)


def _request_init_event(ev: RequestInit) -> RequestInitEvent:
    return RequestInitEvent(
        id=_stream_id(ev.id),
        method=ev.method,
        scheme=ev.scheme,
        authority=ev.authority,
        path=ev.path,
    )


def _response_init_event(ev: ResponseInit) -> ResponseInitEvent:
    return ResponseInitEvent(
        id=_stream_id(ev.id),
        since_request_init=ev.since_request_init,
        http_status=ev.http_status,
    )


def _response_end_event(ev: ResponseEnd) -> ResponseEndEvent:
    grpc_status_code: int | None = None
    reset_error_code: int | None = None
    match ev.eos:
        case GrpcStatusEos(grpc_status_code=code):
            grpc_status_code = code
        case ResetErrorEos(reset_error_code=code):
            reset_error_code = code
        case NoEos():
            pass

    return ResponseEndEvent(
        id=_stream_id(ev.id),
        since_request_init=ev.since_request_init,
        since_response_init=ev.since_response_init,
        response_bytes=ev.response_bytes,
        grpc_status_code=grpc_status_code,
        reset_error_code=reset_error_code,
    )
