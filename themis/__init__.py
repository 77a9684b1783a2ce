"""Event-driven HTTP/1.1 and WebSocket server framework with promises and controllers."""

__version__ = "2.0.0"