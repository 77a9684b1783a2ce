"""Chunked byte buffer used for connection input and output."""

from __future__ import annotations

from typing import Protocol


class BufferExhaustedError(Exception):
    """Raised when a read needs more data than the buffer holds."""


class PeerClosedError(ConnectionError):
    """Raised when the peer closed the connection while receiving."""


class _Receiver(Protocol):
    def recv_into(self, buffer: memoryview, nbytes: int) -> int: ...


class _Sender(Protocol):
    def send(self, data: memoryview) -> int: ...


class Buffer:
    """A list of fixed-size chunks with a read position and a write position.

    ``read_index`` is the offset in the first unconsumed chunk and
    ``write_index`` is the offset in the last chunk.
    """

    def __init__(self, chunk_size: int = 1024) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk size must be positive")
        self.chunk_size = chunk_size
        self.chunks: list[bytearray] = []
        self.write_index = 0
        self.read_index = 0
        self.allocate_chunk()

    def allocate_chunk(self) -> None:
        """Append a new, zero-filled chunk."""
        self.chunks.append(bytearray(self.chunk_size))

    def empty(self) -> bool:
        """Return True when nothing is left to read."""
        return self.read_index == self.write_index and len(self.chunks) == 1

    def clear(self) -> None:
        """Drop every chunk."""
        self.chunks.clear()


class BufferWriter:
    """Appends bytes to a :class:`Buffer`."""

    def __init__(self, buffer: Buffer) -> None:
        self._buffer = buffer

    def _tail(self) -> bytearray:
        buf = self._buffer
        if not buf.chunks:
            buf.allocate_chunk()
            buf.write_index = 0
        return buf.chunks[-1]

    def _advance(self, count: int) -> None:
        buf = self._buffer
        buf.write_index += count
        if buf.write_index == buf.chunk_size:
            buf.allocate_chunk()
            buf.write_index = 0

    def receive_from(self, sock: _Receiver) -> None:
        """Read from a non-blocking socket until it has nothing more to give.

        Raises :class:`PeerClosedError` if the peer has disconnected; other
        socket errors propagate.
        """
        buf = self._buffer
        while True:
            chunk = self._tail()
            view = memoryview(chunk)[buf.write_index:]
            try:
                received = sock.recv_into(view, len(view))
            except BlockingIOError:
                break
            finally:
                view.release()
            if received == 0:
                raise PeerClosedError("peer disconnected")
            buf.write_index += received
            if buf.write_index != buf.chunk_size:
                break
            buf.allocate_chunk()
            buf.write_index = 0

    def write(self, data: bytes | bytearray | memoryview | str) -> None:
        """Append ``data``; strings are encoded as UTF-8."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        source = memoryview(data)
        copied = 0
        total = len(source)
        buf = self._buffer
        while copied < total:
            chunk = self._tail()
            size = min(len(chunk) - buf.write_index, total - copied)
            chunk[buf.write_index:buf.write_index + size] = source[copied:copied + size]
            copied += size
            self._advance(size)


class BufferReader:
    """Consumes bytes from a :class:`Buffer`.

    Used as a context manager, consumed chunks are dropped on exit.
    """

    def __init__(self, buffer: Buffer) -> None:
        self._buffer = buffer
        self._current = 0
        self._original_read_index = buffer.read_index

    def __enter__(self) -> BufferReader:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.finalize()

    def _readable(self) -> memoryview | None:
        """Return the readable part of the current chunk, or None if exhausted."""
        buf = self._buffer
        if buf.read_index == buf.chunk_size:
            self._current += 1
            buf.read_index = 0
        if self._current >= len(buf.chunks):
            return None
        chunk = buf.chunks[self._current]
        is_last = self._current == len(buf.chunks) - 1
        end = min(buf.write_index if is_last else buf.chunk_size, len(chunk))
        if buf.read_index >= end:
            return None
        return memoryview(chunk)[buf.read_index:end]

    def send_to(self, sock: _Sender) -> bool:
        """Send as much as possible; return True if data remains to be sent."""
        buf = self._buffer
        while True:
            view = self._readable()
            if view is None:
                return False
            try:
                sent = sock.send(view)
            except BlockingIOError:
                return True
            buf.read_index += sent
            if sent < len(view):
                return True

    def getline(self) -> str:
        """Return the next LF-terminated line without its LF or trailing CR.

        Bytes are decoded as Latin-1. Raises :class:`BufferExhaustedError`
        if no complete line is present.
        """
        buf = self._buffer
        line = bytearray()
        while True:
            view = self._readable()
            if view is None:
                raise BufferExhaustedError("no complete line in buffer")
            pos = view.tobytes().find(b"\n")
            if pos < 0:
                line += view
                buf.read_index += len(view)
                continue
            line += view[:pos]
            buf.read_index += pos + 1
            break
        if line.endswith(b"\r"):
            del line[-1]
        return line.decode("latin-1")

    def get_bytes(self, count: int) -> bytes:
        """Take up to ``count`` bytes; fewer are returned if fewer are available."""
        buf = self._buffer
        out = bytearray()
        while len(out) < count:
            view = self._readable()
            if view is None:
                break
            taken = view[:count - len(out)]
            out += taken
            buf.read_index += len(taken)
        return bytes(out)

    def revert(self) -> None:
        """Return to the position the reader started from."""
        self._current = 0
        self._buffer.read_index = self._original_read_index

    def finalize(self) -> None:
        """Drop the chunks that have been fully consumed."""
        if self._current == 0:
            return
        del self._buffer.chunks[:self._current]
        self._current = 0
        self._original_read_index = self._buffer.read_index