"""HTTP request model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class UnknownMethodError(ValueError):
    """Raised for an HTTP method name that is not recognised."""


class HttpMethod(Enum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    CONNECT = "CONNECT"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    PATCH = "PATCH"


@dataclass
class HttpRequest:
    """A parsed request; header names are stored in lower case."""

    method: HttpMethod = HttpMethod.GET
    version: str = ""
    path: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    parameters: dict[str, str] = field(default_factory=dict)
    body: bytearray = field(default_factory=bytearray)

    def get_header(self, key: str) -> Optional[str]:
        """Return the header value for ``key`` (any case), or None."""
        return self.headers.get(key.lower())

    def set_method(self, method: str) -> None:
        """Set the method from its exact upper-case name."""
        try:
            self.method = HttpMethod[method]
        except KeyError:
            raise UnknownMethodError(f"unknown method : {method}") from None

    def method_string(self) -> str:
        return self.method.value