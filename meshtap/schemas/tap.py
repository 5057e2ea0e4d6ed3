"""
Tap event wire schema.

Models the protobuf JSON mapping of the proxy's tap event:

    {
      "source": {"ip": {"ipv4": 167772161}, "port": 80},
      "sourceMeta": {"labels": {"deployment": "web", "tls": "true"}},
      "destination": {"ip": {"ipv6": {"first": "...", "last": "..."}}, "port": 8080},
      "destinationMeta": {"labels": {...}},
      "routeMeta": {"labels": {"route": "GET /books"}},
      "proxyDirection": "INBOUND",
      "http": {"requestInit": {...}} | {"responseInit": {...}} | {"responseEnd": {...}}
    }

Design Decision: Closed Tagged Unions

The HTTP lifecycle payload and the end-of-stream outcome are both protobuf
oneofs. They are modeled as discriminated unions (one wrapper model per
variant) rather than one model with several optional fields, so code that
consumes an event matches on the variant type and every event carries
exactly one variant. Anything we don't recognise lands in the permissive
fallback member instead of failing validation.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, ClassVar, Literal

import pydantic
from pydantic import Discriminator, Field, Tag

from meshtap.base_model import PermissiveWireModel, WireModel

# ==============================================================================
# Scalar types
# ==============================================================================

U16 = Annotated[int, Field(ge=0, le=0xFFFF)]
U32 = Annotated[int, Field(ge=0, le=0xFFFF_FFFF)]
U64 = Annotated[int, Field(ge=0, le=0xFFFF_FFFF_FFFF_FFFF)]


# ==============================================================================
# Peer address and metadata
# ==============================================================================


class Ipv6(WireModel):
    """IPv6 address split into two big-endian 64-bit halves."""

    first: U64 = 0
    last: U64 = 0


class IpAddress(WireModel):
    """IPv4 (as a 32-bit integer) or IPv6; IPv6 wins when both are set."""

    ipv4: U32 = 0
    ipv6: Ipv6 | None = None


class TcpAddress(WireModel):
    ip: IpAddress | None = None
    port: U16 = 0


class PeerMetadata(WireModel):
    """Labels the proxy attached to a peer (resource kinds, namespace, pod, tls)."""

    labels: dict[str, str] = Field(default_factory=dict)


ProxyDirection = Literal['UNKNOWN', 'INBOUND', 'OUTBOUND']
_PROXY_DIRECTIONS: tuple[ProxyDirection, ...] = ('UNKNOWN', 'INBOUND', 'OUTBOUND')


def _coerce_proxy_direction(v: Any) -> ProxyDirection:
    """Accept the enum name or number; anything else is UNKNOWN."""
    if isinstance(v, int) and not isinstance(v, bool) and 0 <= v < len(_PROXY_DIRECTIONS):
        return _PROXY_DIRECTIONS[v]
    if isinstance(v, str):
        for name in _PROXY_DIRECTIONS:
            if v.upper() == name:
                return name
    return 'UNKNOWN'


# ==============================================================================
# Durations
# ==============================================================================


def _parse_duration(v: Any) -> Any:
    """Convert the protobuf JSON string form ("1.000340s") to seconds/nanos."""
    if not isinstance(v, str):
        return v
    text = v.strip()
    if not text.endswith('s'):
        raise ValueError(f'invalid duration {v!r}: missing "s" suffix')
    text = text[:-1]
    negative = text.startswith('-')
    whole, _, fraction = text.lstrip('-').partition('.')
    if not (whole or fraction) or not (whole + fraction).isdigit() or len(fraction) > 9:
        raise ValueError(f'invalid duration {v!r}')
    seconds = int(whole or '0')
    nanos = int(fraction.ljust(9, '0'))
    if negative:
        seconds, nanos = -seconds, -nanos
    return {'seconds': seconds, 'nanos': nanos}


class Duration(WireModel):
    seconds: int = 0
    nanos: int = 0

    @property
    def micros(self) -> int:
        """Whole duration truncated (toward zero) to microseconds."""
        total = self.seconds * 1_000_000_000 + self.nanos
        if total < 0:
            return -(-total // 1000)
        return total // 1000


DurationField = Annotated[Duration, pydantic.BeforeValidator(_parse_duration)]


# ==============================================================================
# HTTP request fields
# ==============================================================================

HTTP_METHODS = ('GET', 'POST', 'PUT', 'DELETE', 'PATCH', 'OPTIONS', 'CONNECT', 'HEAD', 'TRACE')
SCHEMES = ('HTTP', 'HTTPS')


def _registered_name(v: Any, names: tuple[str, ...]) -> Any:
    """Enum number to name; an unknown number is treated as not registered."""
    if isinstance(v, int) and not isinstance(v, bool):
        return names[v] if 0 <= v < len(names) else None
    return v


class HttpMethod(WireModel):
    """A registered method name (GET, POST, ...) or a free-form extension method."""

    registered: str | None = None
    unregistered: str | None = None

    @pydantic.field_validator('registered', mode='before')
    @classmethod
    def _method_number(cls, v: Any) -> Any:
        return _registered_name(v, HTTP_METHODS)


class Scheme(WireModel):
    registered: str | None = None
    unregistered: str | None = None

    @pydantic.field_validator('registered', mode='before')
    @classmethod
    def _scheme_number(cls, v: Any) -> Any:
        return _registered_name(v, SCHEMES)


class StreamId(WireModel):
    """Correlates the request, response and end events of one exchange."""

    base: U32 = 0
    stream: U64 = 0


# ==============================================================================
# End-of-stream outcome (oneof: grpcStatusCode | resetErrorCode | neither)
# ==============================================================================

GRPC_STATUS_NAMES = (
    'OK',
    'Canceled',
    'Unknown',
    'InvalidArgument',
    'DeadlineExceeded',
    'NotFound',
    'AlreadyExists',
    'PermissionDenied',
    'ResourceExhausted',
    'FailedPrecondition',
    'Aborted',
    'OutOfRange',
    'Unimplemented',
    'Internal',
    'Unavailable',
    'DataLoss',
    'Unauthenticated',
)


def grpc_status_name(code: int) -> str:
    """Name of a gRPC status code, e.g. 5 -> 'NotFound'; unknown codes -> 'Code(42)'."""
    if 0 <= code < len(GRPC_STATUS_NAMES):
        return GRPC_STATUS_NAMES[code]
    return f'Code({code})'


class GrpcStatusEos(WireModel):
    KIND: ClassVar[str] = 'grpc'

    grpc_status_code: U32


class ResetErrorEos(WireModel):
    """The stream was reset; the code is the HTTP/2 RST_STREAM error code."""

    KIND: ClassVar[str] = 'reset'

    reset_error_code: U32


class NoEos(PermissiveWireModel):
    """Plain end of stream, no further detail."""

    KIND: ClassVar[str] = 'none'


_EOS_KEYS: Mapping[str, str] = {
    'grpcStatusCode': 'grpc',
    'grpc_status_code': 'grpc',
    'resetErrorCode': 'reset',
    'reset_error_code': 'reset',
}


def get_eos_kind(value: Any) -> str:
    """Discriminator for the end-of-stream union."""
    if isinstance(value, pydantic.BaseModel):
        return getattr(value, 'KIND', 'none')
    if isinstance(value, Mapping):
        for key, kind in _EOS_KEYS.items():
            if value.get(key) is not None:
                return kind
    return 'none'


Eos = Annotated[
    Annotated[GrpcStatusEos, Tag('grpc')] | Annotated[ResetErrorEos, Tag('reset')] | Annotated[NoEos, Tag('none')],
    Discriminator(get_eos_kind),
]


# ==============================================================================
# HTTP lifecycle events
# ==============================================================================


class RequestInit(WireModel):
    id: StreamId = StreamId()
    method: HttpMethod = HttpMethod()
    scheme: Scheme = Scheme()
    authority: str = ''
    path: str = ''


class ResponseInit(WireModel):
    id: StreamId = StreamId()
    since_request_init: DurationField = Duration()
    http_status: U32 = 0


class ResponseEnd(WireModel):
    id: StreamId = StreamId()
    since_request_init: DurationField = Duration()
    since_response_init: DurationField = Duration()
    response_bytes: U64 = 0
    eos: Eos = NoEos()


class RequestInitHttp(WireModel):
    KIND: ClassVar[str] = 'request_init'

    request_init: RequestInit


class ResponseInitHttp(WireModel):
    KIND: ClassVar[str] = 'response_init'

    response_init: ResponseInit


class ResponseEndHttp(WireModel):
    KIND: ClassVar[str] = 'response_end'

    response_end: ResponseEnd


class UnknownHttp(PermissiveWireModel):
    """Fallback for a missing or unrecognised lifecycle payload."""

    KIND: ClassVar[str] = 'unknown'


_HTTP_EVENT_KEYS: Mapping[str, str] = {
    'requestInit': 'request_init',
    'request_init': 'request_init',
    'responseInit': 'response_init',
    'response_init': 'response_init',
    'responseEnd': 'response_end',
    'response_end': 'response_end',
}


def get_http_event_kind(value: Any) -> str:
    """
    Discriminator for the HTTP lifecycle union.

    The wire format has no type field: the variant is whichever oneof key
    is present. Already-built models report their own KIND.
    """
    if isinstance(value, pydantic.BaseModel):
        return getattr(value, 'KIND', 'unknown')
    if isinstance(value, Mapping):
        for key, kind in _HTTP_EVENT_KEYS.items():
            if value.get(key) is not None:
                return kind
    return 'unknown'


HttpEvent = Annotated[
    Annotated[RequestInitHttp, Tag('request_init')]
    | Annotated[ResponseInitHttp, Tag('response_init')]
    | Annotated[ResponseEndHttp, Tag('response_end')]
    | Annotated[UnknownHttp, Tag('unknown')],
    Discriminator(get_http_event_kind),
]


# ==============================================================================
# Tap event
# ==============================================================================


class TapEvent(WireModel):
    """One observed lifecycle moment of a proxied HTTP/gRPC exchange."""

    source: TcpAddress = TcpAddress()
    source_meta: PeerMetadata = PeerMetadata()
    destination: TcpAddress = TcpAddress()
    destination_meta: PeerMetadata = PeerMetadata()
    route_meta: PeerMetadata = PeerMetadata()
    proxy_direction: Annotated[ProxyDirection, pydantic.BeforeValidator(_coerce_proxy_direction)] = 'UNKNOWN'
    http: HttpEvent = UnknownHttp()
