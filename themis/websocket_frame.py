"""Websocket frame headers and incremental frame parsing."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum, IntEnum, auto
from typing import Optional

from themis.buffer import BufferReader, BufferWriter


class WebsocketProtocolError(ValueError):
    """Raised when the peer sends something the protocol does not allow."""


class Opcode(IntEnum):
    CONTINUATION = 0x0
    TEXT = 0x1
    BINARY = 0x2
    CLOSE = 0x8
    PING = 0x9
    PONG = 0xA


class FrameState(Enum):
    AWAIT_HEADER = auto()
    AWAIT_PAYLOAD = auto()
    COMPLETE = auto()


@dataclass
class WebsocketFrameHeader:
    """The fixed part of a frame; ``masking_key`` is None for unmasked frames."""

    final_frame: bool = False
    opcode: Opcode = Opcode.CONTINUATION
    payload_length: int = 0
    masking_key: Optional[bytes] = None
    rsv: tuple[bool, bool, bool] = (False, False, False)

    def __post_init__(self) -> None:
        if self.masking_key is not None and len(self.masking_key) != 4:
            raise ValueError("masking key must be 4 bytes")
        if self.payload_length < 0:
            raise ValueError("payload length must not be negative")

    @property
    def masked(self) -> bool:
        return self.masking_key is not None

    def parse_from(self, reader: BufferReader) -> bool:
        """Parse a header from ``reader``.

        Returns False and rewinds the reader if the header is not complete
        yet. Raises :class:`WebsocketProtocolError` for an unknown opcode.
        """
        head = reader.get_bytes(2)
        if len(head) != 2:
            reader.revert()
            return False
        first, second = head
        code = first & 0x0F
        try:
            opcode = Opcode(code)
        except ValueError:
            raise WebsocketProtocolError(f"unknown operation code : {code}") from None

        length = second & 0x7F
        if length in (126, 127):
            fmt = ">H" if length == 126 else ">Q"
            size = struct.calcsize(fmt)
            extended = reader.get_bytes(size)
            if len(extended) != size:
                reader.revert()
                return False
            (length,) = struct.unpack(fmt, extended)

        key = None
        if second & 0x80:
            key = reader.get_bytes(4)
            if len(key) != 4:
                reader.revert()
                return False

        self.final_frame = bool(first & 0x80)
        self.rsv = (bool(first & 0x40), bool(first & 0x20), bool(first & 0x10))
        self.opcode = opcode
        self.payload_length = length
        self.masking_key = key
        return True

    def write_to(self, writer: BufferWriter) -> None:
        """Serialise the header through ``writer``."""
        first = int(self.opcode)
        if self.final_frame:
            first |= 0x80
        for bit, flag in zip((0x40, 0x20, 0x10), self.rsv):
            if flag:
                first |= bit
        mask_bit = 0x80 if self.masked else 0
        length = self.payload_length
        if length > 0xFFFF:
            raw = struct.pack(">BBQ", first, mask_bit | 127, length)
        elif length > 125:
            raw = struct.pack(">BBH", first, mask_bit | 126, length)
        else:
            raw = struct.pack(">BB", first, mask_bit | length)
        if self.masking_key is not None:
            raw += self.masking_key
        writer.write(raw)


class WebsocketFrame:
    """A frame assembled from input as it arrives; masked payloads are unmasked."""

    def __init__(self) -> None:
        self.state = FrameState.AWAIT_HEADER
        self.header = WebsocketFrameHeader()
        self.payload = bytearray()
        self._received = 0

    @property
    def final_frame(self) -> bool:
        return self.header.final_frame

    @property
    def opcode(self) -> Opcode:
        return self.header.opcode

    @property
    def payload_length(self) -> int:
        return self.header.payload_length

    def parse_from(self, reader: BufferReader) -> bool:
        """Consume what ``reader`` holds of this frame; return True once complete."""
        if self.state is FrameState.AWAIT_HEADER:
            if self.header.parse_from(reader):
                self.state = FrameState.AWAIT_PAYLOAD
                self.payload = bytearray(self.header.payload_length)
                self._received = 0
                self._parse_payload(reader)
        elif self.state is FrameState.AWAIT_PAYLOAD:
            self._parse_payload(reader)
        return self.state is FrameState.COMPLETE

    def _parse_payload(self, reader: BufferReader) -> None:
        start = self._received
        data = reader.get_bytes(self.header.payload_length - start)
        key = self.header.masking_key
        if key is not None:
            data = bytes(byte ^ key[(start + offset) % 4] for offset, byte in enumerate(data))
        self.payload[start:start + len(data)] = data
        self._received += len(data)
        if self._received == self.header.payload_length:
            self.state = FrameState.COMPLETE
            reader.finalize()

    def reset(self) -> None:
        """Prepare to parse the next frame."""
        self.state = FrameState.AWAIT_HEADER
        self.header = WebsocketFrameHeader()
        self.payload = bytearray()
        self._received = 0