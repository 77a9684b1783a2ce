"""HTTP response model and its wire serialisation."""

from __future__ import annotations

import io
from email.utils import formatdate

from themis.buffer import Buffer, BufferWriter

_STATUS_TEXT = {
    100: "Continue",
    101: "Switching Protocols",
    102: "Processing",
    103: "Early Hints",
    104: "Upload Resumption Supported",
    200: "OK",
    201: "Created",
    202: "Accepted",
    203: "Non-Authoritative Information",
    204: "No Content",
    205: "Reset Content",
    206: "Partial Content",
    207: "Multi-Status",
    208: "Already Reported",
    226: "IM Used",
    300: "Multiple Choices",
    301: "Moved Permanently",
    302: "Found",
    303: "See Other",
    304: "Not Modified",
    305: "Use Proxy",
    307: "Temporary Redirect",
    308: "Permanent Redirect",
    400: "Bad Request",
    401: "Unauthorized",
    402: "Payment Required",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    406: "Not Acceptable",
    407: "Proxy Authentication Required",
    408: "Request Timeout",
    409: "Conflict",
    410: "Gone",
    411: "Length Required",
    412: "Precondition Failed",
    413: "Content Too Large",
    414: "URI Too Long",
    415: "Unsupported Media Type",
    416: "Range Not Satisfiable",
    417: "Expectation Failed",
    421: "Misdirected Request",
    422: "Unprocessable Content",
    423: "Locked",
    424: "Failed Dependency",
    425: "Too Early",
    426: "Upgrade Required",
    428: "Precondition Required",
    429: "Too Many Requests",
    431: "Request Header Fields Too Large",
    451: "Unavailable For Legal Reasons",
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
    505: "HTTP Version Not Supported",
    506: "Variant Also Negotiates",
    507: "Insufficient Storage",
    508: "Loop Detected",
    511: "Network Authentication Required",
}


class HttpResponse:
    """A response with a status line, headers and a text body.

    Write the body through ``body``, a text stream.
    """

    def __init__(self) -> None:
        self.status = ""
        self.status_code = 0
        self.headers: dict[str, str] = {}
        self.body = io.StringIO()
        self.set_status(200)
        self.headers["Server"] = "themis"
        self.headers["Content-Type"] = "text/plain"
        self.set_date_to_now()

    def set_date_to_now(self) -> None:
        """Set the Date header to the current time in GMT."""
        self.headers["Date"] = formatdate(usegmt=True)

    def set_status(self, status: int) -> None:
        """Set the status; raises ValueError for an unknown code."""
        text = _STATUS_TEXT.get(status)
        if text is None:
            raise ValueError(f"unknown status code : {status}")
        self.status_code = status
        self.status = f"{status} {text}"

    def serialize_to_buffer(self, buffer: Buffer) -> None:
        """Write status line, headers in name order, blank line and body."""
        payload = self.body.getvalue().encode("utf-8")
        self.headers.setdefault("Content-Length", str(len(payload)))
        writer = BufferWriter(buffer)
        writer.write(f"HTTP/1.1 {self.status}\r\n")
        for name in sorted(self.headers):
            writer.write(f"{name}: {self.headers[name]}\r\n")
        writer.write("\r\n")
        writer.write(payload)