"""Handles a session after it has been upgraded to the websocket protocol."""

from __future__ import annotations

import logging
import math
from typing import Optional

from themis.buffer import BufferReader
from themis.event_queue import EventQueue
from themis.session import Session, SessionHandler
from themis.websocket_frame import FrameState, Opcode, WebsocketFrame, WebsocketProtocolError
from themis.websocket_writer import WebsocketWriter

logger = logging.getLogger(__name__)


class WebsocketClosedError(ConnectionError):
    """Raised when the peer sends a close frame."""


class EventListener:
    """Receives the messages of one websocket session.

    ``ws`` is the handler used to send data back; ``event_queue`` is the
    queue for scheduling further work; ``connected`` turns false once the
    session has been closed.
    """

    def __init__(self, handler: WebsocketSessionHandler, queue: EventQueue) -> None:
        self.ws = handler
        self.event_queue = queue
        self.connected = True

    def on_text(self, handler: WebsocketSessionHandler, message: str) -> None:
        """Called with each complete text message."""

    def on_binary(self, handler: WebsocketSessionHandler, message: bytes) -> None:
        """Called with each complete binary message."""

    def on_disconnect(self) -> None:
        """Called once when the session is closed; marks the listener disconnected."""
        self.connected = False


class WebsocketSessionHandler(SessionHandler):
    """Takes over an upgraded session, parses frames and delivers messages."""

    def __init__(self, session: Session, listener: Optional[EventListener] = None) -> None:
        super().__init__(session.take_over())
        # timeouts are not applied to websocket sessions
        self.session.last_active = math.inf
        self.listener = listener
        self._frame = WebsocketFrame()
        self._message: Optional[bytearray] = None
        self._message_is_text = False
        self._writer = WebsocketWriter(self.session.output)
        self._closed = False

    def handle_session(self) -> None:
        """Parse every complete frame in the input and dispatch it.

        Raises :class:`WebsocketClosedError` on a close frame and
        :class:`WebsocketProtocolError` on an invalid frame.
        """
        with BufferReader(self.session.input) as reader:
            while True:
                try:
                    self._frame.parse_from(reader)
                except WebsocketProtocolError as exc:
                    logger.info("invalid websocket frame : %s", exc)
                    raise
                if self._frame.state is not FrameState.COMPLETE:
                    return
                try:
                    self._dispatch()
                finally:
                    self._frame.reset()

    def _dispatch(self) -> None:
        frame = self._frame
        opcode = frame.opcode
        if opcode in (Opcode.TEXT, Opcode.BINARY):
            self._message = bytearray(frame.payload)
            self._message_is_text = opcode is Opcode.TEXT
        elif opcode is Opcode.CONTINUATION:
            if self._message is None:
                raise WebsocketProtocolError("invalid continuation frame")
            self._message += frame.payload
        elif opcode is Opcode.CLOSE:
            raise WebsocketClosedError("peer closed the websocket")
        else:
            return
        if frame.final_frame:
            message, self._message = self._message, None
            if self.listener is None:
                return
            if self._message_is_text:
                self.listener.on_text(self, message.decode("utf-8", errors="replace"))
            else:
                self.listener.on_binary(self, bytes(message))

    def write(self, data: bytes | bytearray | memoryview | str) -> None:
        """Append ``data`` to the outgoing message."""
        self._writer.write(data)

    def finish(self, text: bool) -> None:
        """Send the outgoing message as text or binary frames."""
        self._writer.finish(text)
        self.session.request_write()

    def set_max_payload_size(self, size: int) -> None:
        """Set the payload size above which outgoing messages are fragmented."""
        self._writer.max_payload_size = size

    def close(self) -> None:
        """Tell the listener about the disconnect once and release the session."""
        if self._closed:
            return
        self._closed = True
        try:
            if self.listener is not None:
                self.listener.on_disconnect()
        finally:
            super().close()