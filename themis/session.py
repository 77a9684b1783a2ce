"""Network sessions and the handlers that interpret their input."""

from __future__ import annotations

import socket
import time
from abc import ABC, abstractmethod

from themis.buffer import Buffer


class Session:
    """A connected socket with its input and output buffers.

    ``write_requested`` tells the owning reactor that the output buffer has
    data waiting to be sent.
    """

    def __init__(
        self,
        sock: socket.socket,
        address: tuple[str, int],
        chunk_size: int = 1024,
    ) -> None:
        self.sock = sock
        self.address = address
        self.input = Buffer(chunk_size)
        self.output = Buffer(chunk_size)
        self.last_active = time.time()
        self.alive = True
        self.write_requested = False

    def __str__(self) -> str:
        host, port = self.address[0], self.address[1]
        return f"{host}:{port}"

    def is_timed_out(self, timeout: float) -> bool:
        """Return True if the session has been inactive for over ``timeout`` seconds."""
        return timeout < time.time() - self.last_active

    def request_write(self) -> None:
        """Ask the reactor to send the output buffer."""
        self.write_requested = True

    def take_over(self) -> Session:
        """Return a new session owning this one's socket and buffers.

        This session no longer closes the socket afterwards.
        """
        successor = Session(self.sock, self.address)
        successor.input = self.input
        successor.output = self.output
        successor.last_active = self.last_active
        successor.write_requested = self.write_requested
        self.alive = False
        return successor

    def close(self) -> None:
        """Close the socket unless ownership has been handed over."""
        if self.alive:
            self.alive = False
            self.sock.close()


class SessionHandler(ABC):
    """Owns a session and turns its input into requests or messages."""

    def __init__(self, session: Session) -> None:
        self.session = session

    @abstractmethod
    def handle_session(self) -> None:
        """Process whatever has arrived in the session's input buffer."""

    def close(self) -> None:
        """Release the session."""
        self.session.close()