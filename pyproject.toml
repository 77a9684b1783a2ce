[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "themis"
version = "2.0.0"
description = "A small event-driven HTTP/1.1 and WebSocket server framework with promises and path-routed controllers"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "websocket", "server", "reactor", "promise", "framework"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
themis = "themis.server:main"
themis-example-websocket = "themis.example_websocket:main"

[tool.hatch.build.targets.wheel]
packages = ["themis"]

[tool.pytest.ini_options]
addopts = "-ra"
