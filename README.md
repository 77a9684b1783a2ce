# themis

A small event-driven HTTP/1.1 and WebSocket server framework with no
dependencies outside the standard library.

- `themis.reactor.Reactor` multiplexes non-blocking sockets with `selectors`
  and feeds their input to session handlers.
- `themis.http_session_handler.HttpSessionHandler` parses HTTP/1.1 requests
  incrementally, including query parameters and bodies sized by
  `Content-Length`.
- `themis.controller.ControllerManager` routes each request by path to a
  `Controller`, whose `service` method returns a `themis.promise.Promise`
  that resolves to an `HttpResponse`.
- A request carrying `Connection: Upgrade` and a `Sec-WebSocket-Key` header on
  a path registered with `themis.websocket_controller.WebsocketControllerManager`
  is answered with a `101 Switching Protocols` handshake and moved to a second
  reactor running in its own thread, where frames are parsed and delivered to
  an `EventListener`.

## Installation

```
pip install .
```

## Commands

Start a server with no controllers registered (every path answers `404`):

```
themis --host 0.0.0.0 --port 8080
```

Start the example server, whose WebSocket endpoint `/ws/sample` answers every
text message with a text message of 1000 `@` characters:

```
themis-example-websocket --host 0.0.0.0 --port 8080
```

Both default to `0.0.0.0:8080`, log at debug level to standard error, and run
until interrupted.

## Writing a controller

```python
from themis.controller import Controller
from themis.http_response import HttpResponse
from themis.promise import Promise
from themis.server import Server


class Hello(Controller):
    def service(self, request, queue):
        def run(resolve, fail):
            response = HttpResponse()
            response.body.write("hello")
            resolve(response)

        return Promise(queue, run)


server = Server("0.0.0.0", 8080)
server.controller_manager.add_controller(Hello("/hello"))
server.dispatch()
```

`dispatch` blocks until `Server.stop` is called; `Server` can also be used as
a context manager, which stops it on exit.

The request passed to `service` is an `HttpRequest` with `method`
(an `HttpMethod`), `path`, `version`, `parameters`, `body` and `headers`
(names stored in lower case; `get_header` looks a name up in any case).

An `HttpResponse` starts as `200 OK` with `Server`, `Content-Type: text/plain`
and `Date` headers. `set_status` accepts the registered HTTP status codes and
raises `ValueError` for any other. The body is written to `response.body`, a
text stream; `Content-Length` is added when the response is serialised.

A controller whose promise fails produces a `500` response carrying the
error's text; a path with no controller produces a `404`. The first
controller added for a path is the one used.

## Promises

`Promise(queue, executor)` calls `executor(resolve, fail)` at once.
Resolving queues the continuation on the `EventQueue`, so callbacks run on
the next `poll()`. `then(fn)` registers `fn(value)`, `then_with_fail(fn)`
registers `fn(value, fail)`, and each returns the next promise in the chain;
`catch(fn)` registers an error handler. A failure, whether passed to `fail`
or raised by a callback, travels down the chain to the first error handler,
and is kept until one is registered.

## Writing a WebSocket listener

```python
from themis.server import Server
from themis.websocket_session_handler import EventListener


class Echo(EventListener):
    def on_text(self, handler, message):
        handler.write(message)
        handler.finish(True)


server = Server("0.0.0.0", 8080)
server.websocket_controller_manager.add_controller("/ws/echo", Echo)
server.dispatch()
```

`add_controller(path, listener_type, *args)` builds a listener for every
upgraded session as `listener_type(handler, queue, *args)`. Listeners have
`on_text`, `on_binary` and `on_disconnect`; fragmented messages are
reassembled before delivery. `write` collects outgoing data and
`finish(text)` sends it as text or binary frames. Outgoing messages are split
into frames of at most 256 bytes by default; `set_max_payload_size` changes
that limit per connection.

`calculate_sec_key` computes the `Sec-WebSocket-Accept` value for a client
key.

## Database configuration

`themis.sql_driver` provides `DatasourceConfig` and the abstract base classes
`ConnectionPool` and `Driver`, which keeps named pools (`"default_pool"` when
no name is given):

```python
from themis.sql_driver import DatasourceConfig

password = "password"
config = DatasourceConfig(
    address="localhost:5432",
    username="user",
    password=password,
    database="example",
)
```

## What it does not do

- There is no concrete database driver: `ConnectionPool.initialize`,
  `Driver.initialize` and `Driver.shutdown` are abstract, so connecting to a
  database and running queries is left to a subclass.
- Requests must be `HTTP/1.1`. Bodies sent with `Transfer-Encoding` instead
  of `Content-Length` are rejected and the connection is dropped.
- There is no TLS.
- Ping frames are not answered with pongs, and a close frame ends the
  session without a close frame being sent back.
- `Server` sets no idle timeout; `Reactor.set_connection_timeout` is
  available to code that runs a `Reactor` directly.

## Tests

```
pip install .[test]
pytest
```