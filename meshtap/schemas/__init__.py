"""Tap event wire schema and the JSON display projection."""

from meshtap.schemas.display import (
    DisplayEvent,
    DisplayStreamId,
    Endpoint,
    RequestInitEvent,
    ResponseEndEvent,
    ResponseInitEvent,
)
from meshtap.schemas.tap import (
    Duration,
    GrpcStatusEos,
    NoEos,
    RequestInitHttp,
    ResetErrorEos,
    ResponseEndHttp,
    ResponseInitHttp,
    TapEvent,
    TcpAddress,
    UnknownHttp,
    grpc_status_name,
)

__all__ = [
    'DisplayEvent',
    'DisplayStreamId',
    'Duration',
    'Endpoint',
    'GrpcStatusEos',
    'NoEos',
    'RequestInitEvent',
    'RequestInitHttp',
    'ResetErrorEos',
    'ResponseEndEvent',
    'ResponseEndHttp',
    'ResponseInitEvent',
    'ResponseInitHttp',
    'TapEvent',
    'TcpAddress',
    'UnknownHttp',
    'grpc_status_name',
]
