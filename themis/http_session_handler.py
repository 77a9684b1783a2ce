"""Incremental HTTP/1.1 request parser bound to a session."""

from __future__ import annotations

import math
from enum import Enum, auto
from typing import Callable, Optional

from themis.buffer import BufferReader
from themis.http_request import HttpMethod, HttpRequest
from themis.session import Session, SessionHandler

RequestCallback = Callable[[HttpRequest, Session], object]

_METHODS_WITH_BODY = (HttpMethod.PATCH, HttpMethod.POST, HttpMethod.PUT)


class MalformedRequestError(ValueError):
    """Raised when a request cannot be parsed."""


class ParseState(Enum):
    AWAIT_HEADER = auto()
    AWAIT_BODY = auto()
    COMPLETE = auto()


def parse_query(target: str) -> tuple[str, dict[str, str]]:
    """Split a request target into its path and its query parameters.

    Pieces without ``=`` are ignored; the first occurrence of a key wins.
    """
    path, sep, query = target.partition("?")
    parameters: dict[str, str] = {}
    if not sep:
        return path, parameters
    for piece in query.split("&"):
        key, eq, value = piece.partition("=")
        if eq:
            parameters.setdefault(key, value)
    return path, parameters


class HttpSessionHandler(SessionHandler):
    """Parses requests from the session input and hands each to a callback."""

    def __init__(self, session: Session, callback: RequestCallback) -> None:
        super().__init__(session)
        self._callback = callback
        self.state = ParseState.AWAIT_HEADER
        self.pending_request: Optional[HttpRequest] = None
        self._body_length: Optional[int] = None
        self._received = 0

    def handle_session(self) -> None:
        """Advance the parser; call the callback once a request is complete."""
        if self.state is ParseState.AWAIT_HEADER:
            self._parse_header()
        elif self.state is ParseState.AWAIT_BODY:
            with BufferReader(self.session.input) as reader:
                self._parse_body(reader)
        if self.state is ParseState.COMPLETE:
            # keep the session from timing out while the request is served
            self.session.last_active = math.inf
            request, self.pending_request = self.pending_request, None
            self._callback(request, self.session)
            self.state = ParseState.AWAIT_HEADER

    def _parse_header(self) -> None:
        request = HttpRequest()
        self.pending_request = request
        with BufferReader(self.session.input) as reader:
            line = reader.getline()
            first, last = line.find(" "), line.rfind(" ")
            if first < 0 or first == last:
                raise MalformedRequestError("malformed request : illegal request line")
            request.set_method(line[:first])
            target = line[first + 1:last]
            version = line[last + 1:]
            if version != "HTTP/1.1":
                raise MalformedRequestError(f"unsupported protocol version : {version}")
            request.version = version
            request.path, request.parameters = parse_query(target)

            while line := reader.getline():
                name, colon, rest = line.partition(":")
                value = rest.lstrip(" ")
                if not colon or not value:
                    raise MalformedRequestError("malformed request : illegal request header")
                request.headers.setdefault(name.lower(), value)

            if request.method in _METHODS_WITH_BODY:
                reader.finalize()
                self.state = ParseState.AWAIT_BODY
                self._body_length = None
                self._parse_body(reader)
            else:
                self.state = ParseState.COMPLETE

    def _parse_body(self, reader: BufferReader) -> None:
        request = self.pending_request
        length = request.get_header("Content-Length")
        if length is not None:
            if self._body_length is None:
                try:
                    total = int(length.strip())
                except ValueError:
                    raise MalformedRequestError(f"invalid content length : {length}") from None
                if total < 0:
                    raise MalformedRequestError(f"invalid content length : {length}")
                self._body_length = total
                self._received = 0
                request.body = bytearray(total)
            data = reader.get_bytes(self._body_length - self._received)
            request.body[self._received:self._received + len(data)] = data
            self._received += len(data)
            if self._received == self._body_length:
                self.state = ParseState.COMPLETE
                self._body_length = None
        elif request.get_header("Transfer-Encoding") is not None:
            raise MalformedRequestError("chunked transfer encoding is not supported")
        else:
            raise MalformedRequestError("unrecognized encoding")