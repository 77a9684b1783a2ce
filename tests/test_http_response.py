from email.utils import parsedate_to_datetime

import pytest

from themis.buffer import Buffer, BufferReader
from themis.http_response import HttpResponse


def _serialize(response):
    buffer = Buffer(16)
    response.serialize_to_buffer(buffer)
    reader = BufferReader(buffer)
    status_line = reader.getline()
    headers = []
    line = reader.getline()
    while line:
        headers.append(line)
        line = reader.getline()
    body = reader.get_bytes(1 << 16)
    return status_line, headers, body


def test_default_status_line():
    status_line, _, _ = _serialize(HttpResponse())
    assert status_line == "HTTP/1.1 200 OK"


def test_not_found_with_body():
    response = HttpResponse()
    response.set_status(404)
    response.body.write('controller at path "/x" not found')
    status_line, headers, body = _serialize(response)
    assert status_line == "HTTP/1.1 404 Not Found"
    assert body == b'controller at path "/x" not found'
    assert f"Content-Length: {len(body)}" in headers


def test_headers_sorted_and_defaults_present():
    _, headers, body = _serialize(HttpResponse())
    names = [h.split(": ", 1)[0] for h in headers]
    assert names == sorted(names)
    assert "Server: themis" in headers
    assert "Content-Type: text/plain" in headers
    assert "Content-Length: 0" in headers
    assert body == b""


def test_content_length_counts_utf8_bytes():
    response = HttpResponse()
    response.body.write("héllo")
    _, headers, body = _serialize(response)
    assert body.decode("utf-8") == "héllo"
    assert f"Content-Length: {len(body)}" in headers


def test_date_header_parses_as_gmt():
    response = HttpResponse()
    parsed = parsedate_to_datetime(response.headers["Date"])
    assert response.headers["Date"].endswith(" GMT")
    assert parsed.utcoffset().total_seconds() == 0


@pytest.mark.parametrize("code", [0, 199, 306, 600])
def test_unknown_status_raises(code):
    response = HttpResponse()
    with pytest.raises(ValueError):
        response.set_status(code)
    assert response.status_code == 200


def test_switching_protocols_status():
    response = HttpResponse()
    response.set_status(101)
    assert response.status == "101 Switching Protocols"
    assert response.status_code == 101