#!/usr/bin/env python3
"""
Tests for perllib_bridge.py request handling
Usage: pytest test_perllib_bridge.py
"""

import io
import json
import os
import sys

import pytest

script_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, os.path.join(script_dir, 'python_helpers'))

import perllib_bridge

perllib_bridge.setup_python_path()


def test_ping():
    response = perllib_bridge.process_request({'module': 'test', 'function': 'ping', 'params': {'a': 1}})

    assert response['success'] is True
    assert response['result']['message'] == 'pong'
    assert response['result']['input'] == {'a': 1}


def test_system_info_lists_helpers():
    response = perllib_bridge.process_request({'module': 'system', 'function': 'info'})

    assert response['success'] is True
    assert response['result']['helper_modules'] == perllib_bridge.HELPER_MODULES


def test_current_user_dispatch():
    response = perllib_bridge.process_request({'module': 'current_user', 'function': 'get_current_user'})

    assert response['success'] is True
    assert response['module'] == 'current_user'
    assert response['result']['success'] is True
    assert 'user' in response['result']['result']


@pytest.mark.parametrize('request_data', [
    {'module': 'current_user', 'function': '_resolver'},
    {'module': 'current_user', 'function': '__init__'},
    {'module': 'os', 'function': 'system; rm'},
    {'module': 'importlib', 'function': 'import_module'},
    {'module': 'current_user'},
])
def test_rejected_requests(request_data):
    response = perllib_bridge.process_request(request_data)

    assert response['success'] is False
    assert response['error_type'] == 'BridgeRequestError'


def test_unknown_module():
    response = perllib_bridge.process_request({'module': 'excel', 'function': 'open'})

    assert response['success'] is False
    assert response['error_type'] == 'ModuleNotFoundError'


def test_unknown_function():
    response = perllib_bridge.process_request({'module': 'usage_logger', 'function': 'no_such_function'})

    assert response['success'] is False
    assert response['error_type'] == 'AttributeError'
    assert 'log_api_usage' in response['error']


def test_oracle_without_backend_reports_error(monkeypatch):
    monkeypatch.delenv('PERLLIB_ORACLE_OBJECT', raising=False)
    module = perllib_bridge.load_helper_module('oracle')
    module.set_backend(None)

    response = perllib_bridge.process_request({'module': 'oracle', 'function': 'SQL_Databases'})

    assert response['success'] is False
    assert response['error_type'] == 'OracleBackendError'


def test_read_request():
    request = perllib_bridge.read_request(io.StringIO('{"module": "test", "function": "ping"}'))
    assert request == {'module': 'test', 'function': 'ping'}


@pytest.mark.parametrize('raw', ['', '   ', '{not json'])
def test_read_request_invalid(raw):
    with pytest.raises(perllib_bridge.BridgeRequestError):
        perllib_bridge.read_request(io.StringIO(raw))


def test_write_response():
    out = io.StringIO()
    perllib_bridge.write_response({'success': True, 'result': {'user': 'jsmith'}}, out)

    assert json.loads(out.getvalue()) == {'success': True, 'result': {'user': 'jsmith'}}


def test_main_round_trip(monkeypatch):
    monkeypatch.setattr(sys, 'stdin', io.StringIO('{"module": "test", "function": "ping"}'))
    out = io.StringIO()
    monkeypatch.setattr(sys, 'stdout', out)

    assert perllib_bridge.main() == 0
    assert json.loads(out.getvalue())['result']['message'] == 'pong'


def test_main_bad_input(monkeypatch):
    monkeypatch.setattr(sys, 'stdin', io.StringIO(''))
    out = io.StringIO()
    monkeypatch.setattr(sys, 'stdout', out)

    assert perllib_bridge.main() == 1
    response = json.loads(out.getvalue())
    assert response['success'] is False
    assert response['error'] == 'Empty input received'


@pytest.mark.parametrize('raw', ['[1, 2]', '"x"', '1'])
def test_main_non_object_request(monkeypatch, raw):
    monkeypatch.setattr(sys, 'stdin', io.StringIO(raw))
    out = io.StringIO()
    monkeypatch.setattr(sys, 'stdout', out)

    assert perllib_bridge.main() == 1
    response = json.loads(out.getvalue())
    assert response['success'] is False
    assert response['error'] == 'Request must be a JSON object'


def test_read_request_size_counts_bytes(monkeypatch):
    # 6 characters, 10 bytes once UTF-8 encoded
    monkeypatch.setattr(perllib_bridge, 'MAX_REQUEST_SIZE', 8)

    with pytest.raises(perllib_bridge.BridgeRequestError, match='10 bytes'):
        perllib_bridge.read_request(io.StringIO('"éééé"'))
