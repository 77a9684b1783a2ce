"""Turns outgoing messages into websocket frames."""

from __future__ import annotations

from themis.buffer import Buffer, BufferWriter
from themis.websocket_frame import Opcode, WebsocketFrameHeader


class WebsocketWriter:
    """Collects message data and writes it out as one or more frames.

    Messages longer than ``max_payload_size`` are fragmented.
    """

    def __init__(self, buffer: Buffer, max_payload_size: int = 256) -> None:
        self._writer = BufferWriter(buffer)
        self._pending = bytearray()
        self.max_payload_size = max_payload_size

    @property
    def max_payload_size(self) -> int:
        return self._max_payload_size

    @max_payload_size.setter
    def max_payload_size(self, size: int) -> None:
        if size < 1:
            raise ValueError("maximum payload size must be positive")
        self._max_payload_size = size

    def write(self, data: bytes | bytearray | memoryview | str) -> None:
        """Append ``data`` to the pending message; strings are encoded as UTF-8."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._pending += data

    def finish(self, text: bool) -> None:
        """Frame the pending message as text or binary and clear it.

        An empty message still produces one empty final frame.
        """
        data = bytes(self._pending)
        self._pending.clear()
        size = self._max_payload_size
        pieces = [data[start:start + size] for start in range(0, len(data), size)] or [b""]
        last = len(pieces) - 1
        opcode = Opcode.TEXT if text else Opcode.BINARY
        for position, piece in enumerate(pieces):
            header = WebsocketFrameHeader(
                final_frame=position == last,
                opcode=opcode,
                payload_length=len(piece),
            )
            header.write_to(self._writer)
            self._writer.write(piece)
            opcode = Opcode.CONTINUATION