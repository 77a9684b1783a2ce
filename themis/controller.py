"""HTTP controllers and the manager that routes requests to them."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from themis.event_queue import EventQueue
from themis.http_request import HttpMethod, HttpRequest
from themis.http_response import HttpResponse
from themis.promise import Promise
from themis.session import Session

logger = logging.getLogger(__name__)


class ControllerFilter(ABC):
    """Decides whether a controller should accept a request."""

    @abstractmethod
    def filter(self, request: HttpRequest) -> bool:
        """Return True if the request should be accepted."""


class MethodFilter(ControllerFilter):
    """Accepts requests made with one HTTP method."""

    def __init__(self, method: HttpMethod) -> None:
        self.method = method

    def filter(self, request: HttpRequest) -> bool:
        return request.method == self.method


class Controller(ABC):
    """A web interface bound to one request path."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.filters: list[ControllerFilter] = []

    @abstractmethod
    def service(self, request: HttpRequest, queue: EventQueue) -> Promise:
        """Handle ``request``; return a promise that resolves to an :class:`HttpResponse`.

        Return at once and resolve the promise later; build new promises on
        ``queue``.
        """


@dataclass(eq=False)
class _PendingResponse:
    session: Session
    path: str
    promise: Optional[Promise] = None


def _finish(session: Session, response: HttpResponse) -> None:
    response.serialize_to_buffer(session.output)
    session.last_active = time.time()
    session.request_write()


class ControllerManager:
    """Routes requests to controllers by path and hosts their event queue."""

    def __init__(self) -> None:
        self.event_queue = EventQueue()
        self._controllers: dict[str, Controller] = {}
        self._pending: set[_PendingResponse] = set()

    @property
    def pending_responses(self) -> int:
        """Number of requests whose response promise has not settled yet."""
        return len(self._pending)

    def add_controller(self, controller: Controller) -> ControllerManager:
        """Register ``controller`` under its path; the first one for a path wins."""
        self._controllers.setdefault(controller.path, controller)
        return self

    def serve_request(self, request: HttpRequest, session: Session) -> None:
        """Hand ``request`` to its controller and answer on ``session`` when done.

        An unknown path gets a 404; a failed response promise gets a 500.
        """
        path = request.path
        controller = self._controllers.get(path)
        if controller is None:
            logger.warning("Not Found : %s %s", request.method_string(), path)
            self._serve_not_found(session, path)
            return

        logger.info("%s %s", request.method_string(), path)
        pending = _PendingResponse(session, path)
        self._pending.add(pending)

        def respond(response: HttpResponse) -> None:
            self._pending.discard(pending)
            response.serialize_to_buffer(session.output)
            session.request_write()

        def fail(error: BaseException) -> None:
            self._pending.discard(pending)
            self._serve_internal_error(session, path, error)

        promise = controller.service(request, self.event_queue)
        pending.promise = promise
        promise.then(respond).catch(fail)

    def poll(self) -> bool:
        """Run queued callbacks; return True if any ran."""
        return self.event_queue.poll()

    @staticmethod
    def _serve_not_found(session: Session, path: str) -> None:
        response = HttpResponse()
        response.set_status(404)
        response.body.write(f'controller at path "{path}" not found')
        _finish(session, response)

    @staticmethod
    def _serve_internal_error(session: Session, path: str, error: BaseException) -> None:
        response = HttpResponse()
        response.set_status(500)
        response.body.write(
            f'controller at path "{path}" failed the response promise with error : \r\n{error}'
        )
        _finish(session, response)