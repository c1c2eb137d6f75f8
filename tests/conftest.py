"""Pytest configuration"""

import socket

import pytest
from fastapi import FastAPI


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def free_port():
    return _free_port()


@pytest.fixture
def other_free_port(free_port):
    port = _free_port()
    while port == free_port:
        port = _free_port()
    return port


@pytest.fixture
def counting_app():
    """FastAPI app that records every request it handles."""
    app = FastAPI()
    app.state.calls = []

    @app.get("/")
    async def root():
        app.state.calls.append("/")
        return {"calls": len(app.state.calls)}

    return app


@pytest.fixture
def servers():
    """Collects started servers and stops them after the test."""
    started = []
    yield started
    for server in started:
        server.stop(timeout=5)
