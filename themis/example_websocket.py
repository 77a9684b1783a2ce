"""Example server with a websocket endpoint at /ws/sample."""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from themis.server import Server
from themis.websocket_session_handler import EventListener, WebsocketSessionHandler

logger = logging.getLogger(__name__)


class SampleEventListener(EventListener):
    """Answers every text message with a long text message."""

    def on_text(self, handler: WebsocketSessionHandler, message: str) -> None:
        self.ws.write("@" * 1000)
        self.ws.finish(True)
        logger.info("message : %s", message)

    def on_binary(self, handler: WebsocketSessionHandler, message: bytes) -> None:
        logger.info("received binary of %d byte(s)", len(message))

    def on_disconnect(self) -> None:
        super().on_disconnect()
        logger.info("client disconnected")


def _parse_args(argv: Optional[list[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="themis-example-websocket",
        description="Run a themis server with a sample websocket endpoint.",
    )
    parser.add_argument("--host", default="0.0.0.0", help="address to listen on")
    parser.add_argument("--port", type=int, default=8080, help="port to listen on")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Start the example server and serve until interrupted."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("themis 2.0 started")
    server = Server(args.host, args.port)
    server.websocket_controller_manager.add_controller("/ws/sample", SampleEventListener)
    try:
        server.dispatch()
    except KeyboardInterrupt:
        pass
    finally:
        server.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())