import socket

import pytest

from themis.buffer import BufferReader
from themis.event_queue import EventQueue
from themis.http_request import HttpRequest
from themis.session import Session
from themis.websocket_controller import (
    WebsocketController,
    WebsocketControllerManager,
    calculate_sec_key,
)
from themis.websocket_session_handler import EventListener, WebsocketSessionHandler

CLIENT_KEY = "dGhlIHNhbXBsZSBub25jZQ=="
ACCEPT_KEY = "s3pPLMBiTxaQ9kYGzzhZRbK+xOo="


class RecordingListener(EventListener):
    def __init__(self, handler, queue, tag="none"):
        super().__init__(handler, queue)
        self.tag = tag


@pytest.fixture
def session():
    left, right = socket.socketpair()
    sess = Session(left, ("127.0.0.1", 4001))
    yield sess
    left.close()
    right.close()


def upgrade_request(path="/ws", **headers):
    base = {"connection": "Upgrade", "sec-websocket-key": CLIENT_KEY}
    base.update(headers)
    return HttpRequest(path=path, headers=base)


def drain(sess):
    with BufferReader(sess.output) as reader:
        return reader.get_bytes(1 << 20)


def test_calculate_sec_key():
    assert calculate_sec_key(CLIENT_KEY) == ACCEPT_KEY


def test_upgrade_creates_handler_and_handshake(session):
    manager = WebsocketControllerManager()
    manager.add_controller("/ws", RecordingListener)
    handler = manager.upgrade_session(upgrade_request(), session)
    assert isinstance(handler, WebsocketSessionHandler)
    assert isinstance(handler.listener, RecordingListener)
    assert handler.listener.ws is handler
    assert handler.listener.event_queue is manager.event_queue
    assert session.alive is False
    data = drain(handler.session)
    assert data.startswith(b"HTTP/1.1 101 Switching Protocols\r\n")
    assert b"Sec-WebSocket-Accept: " + ACCEPT_KEY.encode() + b"\r\n" in data
    assert b"Upgrade: websocket\r\n" in data
    assert b"Connection: Upgrade\r\n" in data


def test_extra_arguments_reach_listener(session):
    manager = WebsocketControllerManager()
    manager.add_controller("/ws", RecordingListener, "tagged")
    handler = manager.upgrade_session(upgrade_request(), session)
    assert handler.listener.tag == "tagged"


def test_unknown_path_is_not_upgraded(session):
    manager = WebsocketControllerManager()
    manager.add_controller("/ws", RecordingListener)
    assert manager.upgrade_session(upgrade_request(path="/other"), session) is None
    assert session.output.empty()
    assert session.alive is True


def test_missing_upgrade_headers_are_not_upgraded(session):
    manager = WebsocketControllerManager()
    manager.add_controller("/ws", RecordingListener)
    no_connection = HttpRequest(path="/ws", headers={"sec-websocket-key": CLIENT_KEY})
    keep_alive = upgrade_request(connection="keep-alive")
    no_key = HttpRequest(path="/ws", headers={"connection": "Upgrade"})
    assert manager.upgrade_session(no_connection, session) is None
    assert manager.upgrade_session(keep_alive, session) is None
    assert manager.upgrade_session(no_key, session) is None
    assert session.output.empty()


def test_add_controller_rejects_non_listener():
    manager = WebsocketControllerManager()
    with pytest.raises(TypeError):
        manager.add_controller("/ws", dict)


def test_add_controller_chains():
    manager = WebsocketControllerManager()
    assert manager.add_controller("/a", RecordingListener).add_controller("/b", RecordingListener) is manager


def test_poll_runs_queued_callbacks():
    manager = WebsocketControllerManager()
    ran = []
    manager.event_queue.add_immediate(lambda: ran.append(1))
    assert manager.poll() is True
    assert ran == [1]
    assert manager.poll() is False


def test_controller_service_uses_allocator(session):
    calls = []

    def allocate(queue, handler):
        calls.append((queue, handler))
        return RecordingListener(handler, queue)

    controller = WebsocketController("/x", allocate)
    queue = EventQueue()
    handler = WebsocketSessionHandler(session)
    listener = controller.service(queue, handler)
    assert calls == [(queue, handler)]
    assert listener.ws is handler
    assert controller.path == "/x"