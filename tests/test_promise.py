import pytest

from themis.event_queue import EventQueue
from themis.promise import Promise, PromiseState


def test_promise_chain():
    queue = EventQueue()
    holder = {}
    promise = Promise(queue, lambda resolve, fail: holder.update(resolve=resolve))
    calls = []

    def step(i):
        calls.append(i)
        return i + 1

    last = promise.then(step).then(step)
    queue.poll()
    assert len(calls) == 0
    holder["resolve"](1)
    assert len(calls) == 0
    queue.poll()
    assert len(calls) == 2
    seen = []
    last.then(lambda i: seen.append(i))
    assert seen == [3]
    assert len(calls) + len(seen) == 3


def test_promise_exception():
    queue = EventQueue()
    calls = []
    promise = Promise(queue, lambda resolve, fail: resolve(1))

    def failing(i, fail):
        fail(RuntimeError("boom"))
        return i + 1

    def step(i):
        calls.append(i)
        return i + 1

    last = promise.then_with_fail(failing).then(step)
    queue.poll()
    caught = []
    fulfilled = []
    last.then(lambda i: fulfilled.append(i)).catch(lambda e: caught.append(e))
    assert len(caught) == 1
    assert isinstance(caught[0], RuntimeError)
    queue.poll()
    assert calls == []
    assert fulfilled == []


def test_executor_failure_reaches_catch():
    queue = EventQueue()
    error = ValueError("bad")
    promise = Promise(queue, lambda resolve, fail: fail(error))
    assert promise.state is PromiseState.FAILED
    caught = []
    promise.catch(caught.append)
    assert caught == [error]


def test_catch_registered_before_failure():
    queue = EventQueue()
    holder = {}
    promise = Promise(queue, lambda resolve, fail: holder.update(fail=fail))
    caught = []
    promise.catch(caught.append)
    assert caught == []
    error = KeyError("x")
    holder["fail"](error)
    assert caught == [error]


def test_raising_callback_fails_chain():
    queue = EventQueue()
    promise = Promise(queue, lambda resolve, fail: resolve(5))

    def explode(value):
        raise ZeroDivisionError(value)

    caught = []
    promise.then(explode).then(lambda v: v).catch(caught.append)
    queue.poll()
    assert len(caught) == 1
    assert isinstance(caught[0], ZeroDivisionError)


def test_state_transitions_on_resolve():
    queue = EventQueue()
    promise = Promise(queue, lambda resolve, fail: resolve("value"))
    assert promise.state is PromiseState.PENDING
    queue.poll()
    assert promise.state is PromiseState.FULFILLED
    seen = []
    promise.then(seen.append)
    assert seen == ["value"]


def test_second_continuation_rejected():
    queue = EventQueue()
    promise = Promise(queue, lambda resolve, fail: None)
    promise.then(lambda v: v)
    with pytest.raises(RuntimeError):
        promise.then(lambda v: v)