"""Promise chains whose continuations run on an :class:`EventQueue`."""

from __future__ import annotations

from enum import Enum, auto
from typing import Any, Callable, Optional

from themis.event_queue import EventQueue

FailFunction = Callable[[BaseException], None]
ResolveFunction = Callable[[Any], None]
Executor = Callable[[ResolveFunction, FailFunction], object]


class PromiseState(Enum):
    """Lifecycle of a promise."""

    PENDING = auto()
    FULFILLED = auto()
    FAILED = auto()


class Promise:
    """A value that becomes available, or fails, at some later point.

    The executor is called at once with a ``resolve`` and a ``fail``
    function. Resolving queues the continuation on the event queue, so the
    registered callbacks run on the next poll. Failures travel down the
    chain until a promise with an error handler is reached; if none is
    registered yet, the error is kept until :meth:`catch` or :meth:`then`
    is called. A promise created without an executor is settled by its
    predecessor in the chain.
    """

    def __init__(self, queue: EventQueue, executor: Optional[Executor] = None) -> None:
        self._queue = queue
        self._state = PromiseState.PENDING
        self._result: Any = None
        self._error: Optional[BaseException] = None
        self._on_fulfill: Optional[Callable[[Any, FailFunction], Any]] = None
        self._on_error: Optional[FailFunction] = None
        self._next: Optional[Promise] = None
        if executor is not None:
            executor(self._resolve, self._fail)

    @property
    def state(self) -> PromiseState:
        return self._state

    def _resolve(self, value: Any) -> None:
        self._result = value
        self._queue.add_immediate(self._settle)

    def _settle(self) -> None:
        if self._state is PromiseState.FAILED:
            return
        self._state = PromiseState.FULFILLED
        if self._on_fulfill is not None:
            self._run()

    def _run(self) -> None:
        callback = self._on_fulfill
        value, self._result = self._result, None
        try:
            outcome = callback(value, self._fail)
        except Exception as exc:
            self._fail(exc)
            return
        if self._state is not PromiseState.FAILED and self._next is not None:
            self._next._resolve(outcome)

    def _fail(self, error: BaseException) -> None:
        self._state = PromiseState.FAILED
        if self._next is not None:
            self._next._fail(error)
        elif self._on_error is not None:
            self._on_error(error)
        else:
            self._error = error

    def then_with_fail(self, on_fulfill: Callable[[Any, FailFunction], Any]) -> Promise:
        """Register ``on_fulfill(value, fail)`` and return the next promise.

        The callback's return value resolves the returned promise unless the
        callback called ``fail`` or raised.
        """
        if self._on_fulfill is not None:
            raise RuntimeError("a continuation is already registered on this promise")
        successor = Promise(self._queue)
        self._next = successor
        self._on_fulfill = on_fulfill
        if self._state is PromiseState.FULFILLED:
            self._run()
        elif self._state is PromiseState.FAILED and self._error is not None:
            error, self._error = self._error, None
            successor._fail(error)
        return successor

    def then(self, on_fulfill: Callable[[Any], Any]) -> Promise:
        """Register ``on_fulfill(value)`` and return the next promise."""
        return self.then_with_fail(lambda value, fail: on_fulfill(value))

    def catch(self, on_error: FailFunction) -> Promise:
        """Register the error handler; called at once if already failed."""
        if self._state is PromiseState.FAILED and self._error is not None:
            error, self._error = self._error, None
            on_error(error)
        else:
            self._on_error = on_error
        return self