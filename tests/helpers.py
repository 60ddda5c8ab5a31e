"""
Helpers for building fake API responses and inspecting sent requests.
"""

import io
from unittest import mock

import requests


def build_response(body=b"", status=200, headers=None):
    response = requests.Response()
    response.status_code = status
    response.raw = io.BytesIO(body)
    response.headers.update(headers or {})
    response.url = "https://api.optidash.ai/1.0/test"
    response.close = mock.Mock(wraps=response.close)
    return response


def multipart_fields(prepared):
    """Split a prepared multipart request into {name: (disposition, payload)}."""
    content_type = prepared.headers["Content-Type"]
    boundary = content_type.split("boundary=")[1].encode()
    chunks = prepared.body.split(b"--" + boundary)[1:-1]

    fields = {}
    for chunk in chunks:
        head, _, payload = chunk.strip(b"\r\n").partition(b"\r\n\r\n")
        disposition = head.decode()
        name = disposition.split('name="')[1].split('"')[0]
        fields[name] = (disposition, payload)
    return fields
