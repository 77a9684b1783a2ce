"""Websocket controllers and the connection upgrade handshake."""

from __future__ import annotations

import base64
import hashlib
import logging
from typing import Callable, Optional

from themis.event_queue import EventQueue
from themis.http_request import HttpRequest
from themis.http_response import HttpResponse
from themis.session import Session
from themis.websocket_session_handler import EventListener, WebsocketSessionHandler

logger = logging.getLogger(__name__)

_HANDSHAKE_GUID = "258EAFA5-E914-47DA-95CA-C5AB0DC85B11"

ListenerAllocator = Callable[[EventQueue, WebsocketSessionHandler], EventListener]


def calculate_sec_key(client_key: str) -> str:
    """Return the Sec-WebSocket-Accept value for a client's Sec-WebSocket-Key."""
    digest = hashlib.sha1((client_key + _HANDSHAKE_GUID).encode("latin-1")).digest()
    return base64.b64encode(digest).decode("ascii")


class WebsocketController:
    """Creates a listener for each session upgraded on ``path``."""

    def __init__(self, path: str, allocator: ListenerAllocator) -> None:
        self.path = path
        self._allocator = allocator

    def service(self, queue: EventQueue, handler: WebsocketSessionHandler) -> EventListener:
        """Return a new listener for ``handler``."""
        return self._allocator(queue, handler)


class WebsocketControllerManager:
    """Upgrades HTTP sessions on registered paths into websocket sessions."""

    def __init__(self) -> None:
        self.event_queue = EventQueue()
        self._controllers: dict[str, WebsocketController] = {}

    def add_controller(self, path: str, listener_type: type, *args) -> WebsocketControllerManager:
        """Serve ``path`` with listeners built as ``listener_type(handler, queue, *args)``."""
        if not (isinstance(listener_type, type) and issubclass(listener_type, EventListener)):
            raise TypeError("listener type must be derived of EventListener")

        def allocate(queue: EventQueue, handler: WebsocketSessionHandler) -> EventListener:
            return listener_type(handler, queue, *args)

        self._controllers.setdefault(path, WebsocketController(path, allocate))
        return self

    def upgrade_session(self, request: HttpRequest, session: Session) -> Optional[WebsocketSessionHandler]:
        """Upgrade ``session`` if ``request`` asks for it on a registered path.

        Writes the handshake response to the session's output and returns the
        new handler, or returns None when no upgrade is made.
        """
        controller = self._controllers.get(request.path)
        if controller is None or request.get_header("Connection") != "Upgrade":
            return None
        sec_key = request.get_header("Sec-WebSocket-Key")
        if sec_key is None:
            return None
        self._serve_upgrade_response(sec_key, session)
        handler = WebsocketSessionHandler(session)
        handler.listener = controller.service(self.event_queue, handler)
        logger.debug("websocket upgrade on %s for %s", request.path, handler.session)
        return handler

    def poll(self) -> bool:
        """Run queued callbacks; return True if any ran."""
        return self.event_queue.poll()

    @staticmethod
    def _serve_upgrade_response(sec_key: str, session: Session) -> None:
        response = HttpResponse()
        response.set_status(101)
        response.headers["Upgrade"] = "websocket"
        response.headers["Connection"] = "Upgrade"
        response.headers["Sec-WebSocket-Accept"] = calculate_sec_key(sec_key)
        response.serialize_to_buffer(session.output)