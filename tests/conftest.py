"""
Shared fixtures: a client whose session never touches the network.
"""

import json
from unittest import mock

import pytest

from optidash import Client
from tests.helpers import build_response


@pytest.fixture
def make_response():
    return build_response


@pytest.fixture
def json_response():
    def _json_response(document, **kwargs):
        return build_response(json.dumps(document).encode(), **kwargs)

    return _json_response


@pytest.fixture
def client():
    return Client("test-key")


@pytest.fixture
def send(client):
    """Patch the client's session; every request gets ``send.return_value``."""
    with mock.patch.object(client.session, "send") as send:
        send.return_value = build_response(b'{"success": true}')
        yield send


@pytest.fixture
def sent(send):
    """Return the PreparedRequest of the single call made."""

    def _sent():
        assert send.call_count == 1
        return send.call_args[0][0]

    return _sent
