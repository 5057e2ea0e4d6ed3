"""End-to-end tests for the meshtap command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

import meshtap.cli.main as cli_main
from meshtap.cli.main import app
from meshtap.config import TapSettings, lazy_settings
from tests.factories import request_init, response_end, tap_event_data

runner = CliRunner()

REQUEST_LINE = 'req id=1:2 proxy=in  src=10.0.0.1:80 dst=10.0.0.2:8080 tls= :method=GET :authority=example.com :path=/x'


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv('LOAD_ENV_FILE', raising=False)
    monkeypatch.delenv('MESHTAP_DEFAULT_OUTPUT', raising=False)
    monkeypatch.delenv('MESHTAP_RESOURCE_SHORT_NAMES', raising=False)
    # Fresh proxy so each test reads its own environment
    monkeypatch.setattr(cli_main, 'settings', lazy_settings(TapSettings))


@pytest.fixture
def events_file(tmp_path: Path) -> Path:
    path = tmp_path / 'events.jsonl'
    lines = [
        tap_event_data(request_init(), source_labels={'deployment': 'web', 'namespace': 'prod'}),
        tap_event_data(response_end(eos={'grpcStatusCode': 0})),
    ]
    path.write_text(''.join(json.dumps(line) + '\n' for line in lines))
    return path


def test_tap_default_output(events_file: Path) -> None:
    result = runner.invoke(app, ['tap', str(events_file)])
    assert result.exit_code == 0
    assert result.stdout.splitlines() == [
        REQUEST_LINE,
        'end id=1:2 proxy=in  src=10.0.0.1:80 dst=10.0.0.2:8080 tls= grpc-status=OK duration=210µs response-length=31B',
    ]


def test_tap_wide_output(events_file: Path) -> None:
    result = runner.invoke(app, ['tap', str(events_file), '-o', 'wide', '--resource', 'deploy/web'])
    assert result.exit_code == 0
    assert result.stdout.splitlines()[0] == REQUEST_LINE + ' src_res=deploy/web src_ns=prod'


def test_tap_json_output(events_file: Path) -> None:
    result = runner.invoke(app, ['tap', str(events_file), '--output', 'json'])
    assert result.exit_code == 0
    assert '"requestInitEvent": {' in result.stdout
    assert '"grpcStatusCode": 0' in result.stdout
    assert 'null' not in result.stdout


def test_tap_reads_stdin(events_file: Path) -> None:
    result = runner.invoke(app, ['tap', '-'], input=events_file.read_text())
    assert result.exit_code == 0
    assert result.stdout.splitlines()[0] == REQUEST_LINE


def test_tap_default_output_from_settings(events_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv('MESHTAP_DEFAULT_OUTPUT', 'json')
    result = runner.invoke(app, ['tap', str(events_file)])
    assert result.exit_code == 0
    assert '"proxyDirection": "INBOUND"' in result.stdout


def test_stream_failure_exits_nonzero_and_keeps_lines(tmp_path: Path) -> None:
    path = tmp_path / 'broken.jsonl'
    path.write_text(json.dumps(tap_event_data(request_init())) + '\n{"source": \n')
    result = runner.invoke(app, ['tap', str(path)])
    assert result.exit_code == 1
    assert REQUEST_LINE in result.stdout


def test_unknown_output_format(events_file: Path) -> None:
    result = runner.invoke(app, ['tap', str(events_file), '-o', 'yaml'])
    assert result.exit_code == 2


def test_wide_requires_resource(events_file: Path) -> None:
    result = runner.invoke(app, ['tap', str(events_file), '-o', 'wide'])
    assert result.exit_code == 2


def test_unknown_resource_type(events_file: Path) -> None:
    result = runner.invoke(app, ['tap', str(events_file), '-o', 'wide', '-r', 'widget/x'])
    assert result.exit_code == 2


def test_missing_source_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ['tap', str(tmp_path / 'missing.jsonl')])
    assert result.exit_code == 1


def test_version() -> None:
    result = runner.invoke(app, ['version'])
    assert result.exit_code == 0
    assert result.stdout.strip() == 'meshtap 0.1.0'
