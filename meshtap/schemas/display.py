"""
Display projection of a tap event, used for JSON output.

The display record flattens the wire event: peers become endpoint
descriptors with a textual IP, the direction becomes its enum name, and the
lifecycle payload becomes one of three sub-records. Absent sub-records are
None and are left out of the JSON document entirely.
"""

from __future__ import annotations

import pydantic

from meshtap.base_model import DisplayModel
from meshtap.schemas.tap import Duration, HttpMethod, Scheme


class Endpoint(DisplayModel):
    ip: str
    port: int
    metadata: dict[str, str]


class DisplayStreamId(DisplayModel):
    base: int
    stream: int


class RequestInitEvent(DisplayModel):
    id: DisplayStreamId
    method: HttpMethod
    scheme: Scheme
    authority: str
    path: str


class ResponseInitEvent(DisplayModel):
    id: DisplayStreamId
    since_request_init: Duration
    http_status: int


class ResponseEndEvent(DisplayModel):
    """Response end; at most one of grpc_status_code/reset_error_code is set."""

    id: DisplayStreamId
    since_request_init: Duration
    since_response_init: Duration
    response_bytes: int
    grpc_status_code: int | None = None
    reset_error_code: int | None = None


class DisplayEvent(DisplayModel):
    source: Endpoint
    destination: Endpoint
    route_meta: dict[str, str]
    proxy_direction: str
    request_init_event: RequestInitEvent | None = None
    response_init_event: ResponseInitEvent | None = None
    response_end_event: ResponseEndEvent | None = None

    @pydantic.model_validator(mode='after')
    def _single_lifecycle_event(self) -> DisplayEvent:
        present = [
            e for e in (self.request_init_event, self.response_init_event, self.response_end_event) if e is not None
        ]
        if len(present) > 1:
            raise ValueError('a display event carries at most one lifecycle event')
        return self

    def to_json(self) -> str:
        """Indented JSON (two spaces) without absent sub-records."""
        return self.model_dump_json(indent=2, by_alias=True, exclude_none=True)
