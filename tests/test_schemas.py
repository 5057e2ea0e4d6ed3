"""
Tests for decoding tap events from their protobuf JSON form.

Covers the tagged unions (lifecycle payload, end-of-stream outcome) and the
lenient handling of partial or unknown content.
"""

from __future__ import annotations

import io
import json

import pydantic
import pytest

from meshtap.schemas.tap import (
    GrpcStatusEos,
    NoEos,
    RequestInitHttp,
    ResetErrorEos,
    ResponseEndHttp,
    ResponseInitHttp,
    TapEvent,
    UnknownHttp,
    grpc_status_name,
)
from meshtap.services.render import render_tap_event
from meshtap.services.stream import JsonlTapEventSource, write_tap_events
from tests.factories import request_init, response_end, response_init, tap_event, tap_event_data


def test_decodes_request_init_from_json() -> None:
    line = json.dumps(tap_event_data(request_init(base=7, stream=2**40)))
    event = TapEvent.model_validate_json(line)

    assert isinstance(event.http, RequestInitHttp)
    assert event.http.request_init.id.base == 7
    assert event.http.request_init.id.stream == 2**40
    assert event.http.request_init.method.registered == 'GET'
    assert event.proxy_direction == 'INBOUND'
    assert event.source.port == 80


@pytest.mark.parametrize(
    ('http', 'expected_type'),
    [
        (request_init(), RequestInitHttp),
        (response_init(), ResponseInitHttp),
        (response_end(), ResponseEndHttp),
        ({}, UnknownHttp),
        ({'somethingElse': {'x': 1}}, UnknownHttp),
        (None, UnknownHttp),
    ],
)
def test_lifecycle_variant(http: dict | None, expected_type: type) -> None:
    assert isinstance(tap_event(http).http, expected_type)


def test_null_http_payload_is_unknown() -> None:
    data = tap_event_data()
    data['http'] = None
    assert isinstance(TapEvent.model_validate(data).http, UnknownHttp)


def test_unknown_payload_keeps_its_fields() -> None:
    event = tap_event({'websocket': {'frames': 3}})
    assert isinstance(event.http, UnknownHttp)
    assert event.http.get_extra_fields() == {'websocket': {'frames': 3}}


def test_empty_event_decodes() -> None:
    event = TapEvent.model_validate_json('{}')
    assert event.proxy_direction == 'UNKNOWN'
    assert event.source.ip is None
    assert event.source_meta.labels == {}
    assert isinstance(event.http, UnknownHttp)


@pytest.mark.parametrize(
    ('eos', 'expected_type'),
    [
        ({'grpcStatusCode': 0}, GrpcStatusEos),
        ({'resetErrorCode': 8}, ResetErrorEos),
        ({}, NoEos),
        (None, NoEos),
    ],
)
def test_end_of_stream_variant(eos: dict | None, expected_type: type) -> None:
    event = tap_event(response_end(eos=eos))
    assert isinstance(event.http, ResponseEndHttp)
    assert isinstance(event.http.response_end.eos, expected_type)


@pytest.mark.parametrize(
    ('value', 'expected'),
    [('INBOUND', 'INBOUND'), ('outbound', 'OUTBOUND'), (1, 'INBOUND'), (2, 'OUTBOUND'), ('SIDEWAYS', 'UNKNOWN'), (9, 'UNKNOWN')],
)
def test_proxy_direction(value: object, expected: str) -> None:
    data = tap_event_data()
    data['proxyDirection'] = value
    assert TapEvent.model_validate(data).proxy_direction == expected


def test_unknown_keys_are_ignored() -> None:
    data = tap_event_data(request_init())
    data['newField'] = {'anything': True}
    assert isinstance(TapEvent.model_validate(data).http, RequestInitHttp)


def test_snake_case_construction() -> None:
    event = TapEvent(proxy_direction='OUTBOUND', http=RequestInitHttp.model_validate(request_init()))
    assert event.proxy_direction == 'OUTBOUND'
    assert isinstance(event.http, RequestInitHttp)


@pytest.mark.parametrize('method', [1, 'POST'])
def test_registered_method_by_name_or_number(method: object) -> None:
    http = request_init()
    http['requestInit']['method'] = {'registered': method}
    event = tap_event(http)
    assert isinstance(event.http, RequestInitHttp)
    assert event.http.request_init.method.registered == 'POST'


def test_out_of_range_ipv4_is_rejected() -> None:
    data = tap_event_data(source={'ip': {'ipv4': 2**32}, 'port': 80})
    with pytest.raises(pydantic.ValidationError):
        TapEvent.model_validate(data)


# ==============================================================================
# Durations
# ==============================================================================


@pytest.mark.parametrize(
    ('text', 'seconds', 'nanos', 'micros'),
    [
        ('0.001340s', 0, 1_340_000, 1340),
        ('2.000001s', 2, 1000, 2_000_001),
        ('3s', 3, 0, 3_000_000),
        ('0.000000999s', 0, 999, 0),
        ('-0.000002s', 0, -2000, -2),
    ],
)
def test_duration_from_string(text: str, seconds: int, nanos: int, micros: int) -> None:
    event = tap_event(response_init(since=text))
    assert isinstance(event.http, ResponseInitHttp)
    duration = event.http.response_init.since_request_init
    assert (duration.seconds, duration.nanos) == (seconds, nanos)
    assert duration.micros == micros


def test_duration_from_object() -> None:
    http = response_init()
    http['responseInit']['sinceRequestInit'] = {'seconds': 1, 'nanos': 5000}
    event = tap_event(http)
    assert isinstance(event.http, ResponseInitHttp)
    assert event.http.response_init.since_request_init.micros == 1_000_005


@pytest.mark.parametrize('text', ['12', 'abcs', '1.2.3s', 's', '0.0000000001s'])
def test_invalid_duration_is_rejected(text: str) -> None:
    with pytest.raises(pydantic.ValidationError):
        tap_event(response_init(since=text))


@pytest.mark.parametrize(('code', 'name'), [(0, 'OK'), (1, 'Canceled'), (5, 'NotFound'), (16, 'Unauthenticated'), (17, 'Code(17)')])
def test_grpc_status_name(code: int, name: str) -> None:
    assert grpc_status_name(code) == name


# ==============================================================================
# Partial content
# ==============================================================================


@pytest.mark.parametrize(
    'field',
    ['source', 'destination', 'sourceMeta', 'destinationMeta', 'routeMeta', 'proxyDirection', 'http'],
)
def test_null_top_level_field_takes_default(field: str) -> None:
    data = tap_event_data(request_init(), source_labels={'tls': 'true'})
    data[field] = None
    event = TapEvent.model_validate_json(json.dumps(data))
    assert render_tap_event(event)


def test_null_nested_fields_take_defaults() -> None:
    http = request_init()
    http['requestInit'].update({'id': None, 'method': None, 'scheme': None, 'authority': None})
    data = tap_event_data(http, source={'ip': None, 'port': None})
    data['sourceMeta'] = {'labels': None}
    data['destination'] = {'ip': {'ipv4': None, 'ipv6': None}, 'port': 8080}

    event = TapEvent.model_validate_json(json.dumps(data))

    assert isinstance(event.http, RequestInitHttp)
    assert event.http.request_init.id.base == 0
    assert event.http.request_init.method.registered is None
    assert event.http.request_init.authority == ''
    assert event.source_meta.labels == {}
    assert render_tap_event(event).startswith('req id=0:0 proxy=in  src= dst= tls= :method= :authority= ')


@pytest.mark.parametrize(
    ('http', 'expected_type'),
    [
        ({'requestInit': None}, UnknownHttp),
        (response_end(eos={'grpcStatusCode': None}), ResponseEndHttp),
    ],
)
def test_null_union_members(http: dict, expected_type: type) -> None:
    event = tap_event(http)
    assert isinstance(event.http, expected_type)
    if isinstance(event.http, ResponseEndHttp):
        assert isinstance(event.http.response_end.eos, NoEos)


def test_partial_events_do_not_end_the_session() -> None:
    lines = [
        {'sourceMeta': None, 'http': request_init()},
        {'source': None, 'routeMeta': None, 'http': response_init()},
        {'sourceMeta': {'labels': None}, 'http': response_end()},
    ]
    stream = io.StringIO(''.join(json.dumps(line) + '\n' for line in lines))

    result = write_tap_events(JsonlTapEventSource(stream), io.StringIO())

    assert result.ok
    assert result.events_rendered == 3


@pytest.mark.parametrize('number', [42, -1])
def test_unknown_method_number_is_not_registered(number: int) -> None:
    http = request_init()
    http['requestInit']['method'] = {'registered': number}
    http['requestInit']['scheme'] = {'registered': number}
    event = tap_event(http)

    assert isinstance(event.http, RequestInitHttp)
    assert event.http.request_init.method.registered is None
    assert event.http.request_init.scheme.registered is None
    assert ':method= ' in render_tap_event(event)
