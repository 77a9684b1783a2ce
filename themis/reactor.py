"""Selector-driven reactor that accepts connections and dispatches I/O."""

from __future__ import annotations

import logging
import selectors
import socket
import time
from typing import Callable, Optional

from themis.buffer import BufferReader, BufferWriter
from themis.session import Session, SessionHandler

logger = logging.getLogger(__name__)

HandlerAllocator = Callable[[Session], SessionHandler]

_READ = selectors.EVENT_READ
_WRITE = selectors.EVENT_WRITE


class SessionMovedError(Exception):
    """Raised by a handler whose session now belongs to another reactor."""


class Reactor:
    """Owns a set of session handlers and runs their socket I/O.

    Given a host, the reactor listens there and wraps every accepted
    connection with ``allocator``. Without one, handlers are added with
    :meth:`add_session_handler`.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = 0,
        allocator: Optional[HandlerAllocator] = None,
    ) -> None:
        self._selector = selectors.DefaultSelector()
        self._handlers: dict[SessionHandler, int] = {}
        self._listener: Optional[socket.socket] = None
        self._allocator = allocator
        self._timeout: float = -1
        self._idle = True
        if host is None:
            return
        if allocator is None:
            raise ValueError("a listening reactor needs a handler allocator")
        listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind((host, port))
            listener.listen(256)
            listener.setblocking(False)
            self._selector.register(listener, _READ, None)
        except OSError:
            listener.close()
            self._selector.close()
            raise
        self._listener = listener
        logger.info("Reactor listening at %s:%d", *listener.getsockname()[:2])

    @property
    def address(self) -> Optional[tuple[str, int]]:
        """The address the reactor listens on, or None."""
        if self._listener is None:
            return None
        return self._listener.getsockname()[:2]

    def __len__(self) -> int:
        return len(self._handlers)

    def __enter__(self) -> Reactor:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def set_connection_timeout(self, timeout: float) -> None:
        """Drop sessions inactive for more than ``timeout`` seconds; <= 0 disables."""
        self._timeout = timeout

    def add_session_handler(self, handler: SessionHandler) -> None:
        """Adopt ``handler`` and send whatever its output buffer holds."""
        handler.session.request_write()
        self._register(handler)

    def is_idle(self) -> bool:
        """True if the last :meth:`loop_once` dispatched no event."""
        return self._idle

    def loop_once(self) -> None:
        """Drop timed-out sessions and dispatch pending I/O without blocking."""
        self._idle = True
        if self._timeout > 0:
            expired = [h for h in self._handlers if h.session.is_timed_out(self._timeout)]
            for handler in expired:
                logger.debug("session timed out : %s", handler.session)
                self._remove(handler)
        self._sync_interest()
        if not self._handlers and self._listener is None:
            return
        for key, mask in self._selector.select(timeout=0):
            self._idle = False
            if key.data is None:
                self._accept()
                continue
            handler = key.data
            if handler not in self._handlers:
                continue
            handler.session.last_active = time.time()
            if mask & _READ:
                self._handle_read(handler)
            if mask & _WRITE and handler in self._handlers:
                self._handle_write(handler)

    def close(self) -> None:
        """Close every session and the listening socket."""
        for handler in list(self._handlers):
            self._remove(handler)
        if self._listener is not None:
            self._selector.unregister(self._listener)
            self._listener.close()
            self._listener = None
        self._selector.close()

    @staticmethod
    def _wanted(handler: SessionHandler) -> int:
        return _READ | (_WRITE if handler.session.write_requested else 0)

    def _register(self, handler: SessionHandler) -> None:
        mask = self._wanted(handler)
        self._selector.register(handler.session.sock, mask, handler)
        self._handlers[handler] = mask

    def _sync_interest(self) -> None:
        for handler, mask in list(self._handlers.items()):
            wanted = self._wanted(handler)
            if wanted != mask:
                self._selector.modify(handler.session.sock, wanted, handler)
                self._handlers[handler] = wanted

    def _remove(self, handler: SessionHandler) -> None:
        if self._handlers.pop(handler, None) is None:
            return
        try:
            self._selector.unregister(handler.session.sock)
        except (KeyError, ValueError):
            pass
        handler.close()

    def _accept(self) -> None:
        while True:
            try:
                conn, addr = self._listener.accept()
            except BlockingIOError:
                return
            except OSError:
                logger.error("error when accept", exc_info=True)
                return
            conn.setblocking(False)
            handler = self._allocator(Session(conn, addr))
            self._register(handler)
            logger.debug("accepted session : %s", handler.session)

    def _handle_read(self, handler: SessionHandler) -> None:
        session = handler.session
        try:
            BufferWriter(session.input).receive_from(session.sock)
            handler.handle_session()
        except SessionMovedError:
            self._remove(handler)
        except Exception:
            logger.debug("session closed : %s", session, exc_info=True)
            self._remove(handler)

    def _handle_write(self, handler: SessionHandler) -> None:
        session = handler.session
        session.write_requested = False
        try:
            with BufferReader(session.output) as reader:
                again = reader.send_to(session.sock)
        except Exception:
            logger.debug("session closed : %s", session, exc_info=True)
            self._remove(handler)
            return
        if again:
            session.request_write()