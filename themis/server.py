"""HTTP server with websocket upgrades handled on a second reactor thread."""

from __future__ import annotations

import argparse
import logging
import threading
import time
from queue import Empty, SimpleQueue
from typing import Optional

from themis.controller import ControllerManager
from themis.http_request import HttpRequest
from themis.http_session_handler import HttpSessionHandler
from themis.reactor import Reactor, SessionMovedError
from themis.session import Session, SessionHandler
from themis.websocket_controller import WebsocketControllerManager
from themis.websocket_session_handler import WebsocketSessionHandler

logger = logging.getLogger(__name__)

_IDLE_SLEEP = 0.01


class Server:
    """Serves HTTP on ``host:port``; upgraded websocket sessions move to their own thread.

    Register controllers on ``controller_manager`` and
    ``websocket_controller_manager``, then call :meth:`dispatch`.
    """

    def __init__(self, host: str, port: int) -> None:
        self.controller_manager = ControllerManager()
        self.websocket_controller_manager = WebsocketControllerManager()
        self._upgrades: SimpleQueue[WebsocketSessionHandler] = SimpleQueue()
        self._stopping = threading.Event()
        self._dispatching = False
        self._http_reactor = Reactor(host, port, self._allocate)
        self._ws_reactor = Reactor()
        self._ws_thread = threading.Thread(
            target=self._run_websockets, name="themis-websocket", daemon=True
        )
        self._ws_thread.start()

    @property
    def address(self) -> Optional[tuple[str, int]]:
        """The address the HTTP reactor listens on."""
        return self._http_reactor.address

    def __enter__(self) -> Server:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _allocate(self, session: Session) -> SessionHandler:
        return HttpSessionHandler(session, self._on_request)

    def _on_request(self, request: HttpRequest, session: Session) -> None:
        handler = self.websocket_controller_manager.upgrade_session(request, session)
        if handler is None:
            self.controller_manager.serve_request(request, session)
            return
        self._upgrades.put(handler)
        # the HTTP reactor drops its handler; the socket now belongs to the websocket side
        raise SessionMovedError()

    def _adopt_upgrades(self) -> None:
        while True:
            try:
                handler = self._upgrades.get_nowait()
            except Empty:
                return
            logger.info("upgrading session : %s", handler.session)
            self._ws_reactor.add_session_handler(handler)

    def _run_websockets(self) -> None:
        try:
            while not self._stopping.is_set():
                self._adopt_upgrades()
                self._ws_reactor.loop_once()
                idle = self._ws_reactor.is_idle() | (not self.websocket_controller_manager.poll())
                if idle:
                    time.sleep(_IDLE_SLEEP)
        finally:
            while True:
                try:
                    self._upgrades.get_nowait().close()
                except Empty:
                    break
            self._ws_reactor.close()

    def dispatch(self) -> None:
        """Run the HTTP reactor until :meth:`stop` is called."""
        if self._stopping.is_set():
            raise RuntimeError("server has been stopped")
        self._dispatching = True
        try:
            while not self._stopping.is_set():
                self._http_reactor.loop_once()
                idle = self._http_reactor.is_idle() | (not self.controller_manager.poll())
                if idle:
                    time.sleep(_IDLE_SLEEP)
        finally:
            self._http_reactor.close()

    def stop(self) -> None:
        """Stop both reactors and wait for the websocket thread."""
        if self._stopping.is_set():
            return
        self._stopping.set()
        if threading.current_thread() is not self._ws_thread:
            self._ws_thread.join()
        if not self._dispatching:
            self._http_reactor.close()


def _parse_args(argv: Optional[list[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="themis", description="Run the themis HTTP server.")
    parser.add_argument("--host", default="0.0.0.0", help="address to listen on")
    parser.add_argument("--port", type=int, default=8080, help="port to listen on")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Start a server and serve until interrupted."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("themis 2.0 started")
    server = Server(args.host, args.port)
    try:
        server.dispatch()
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())