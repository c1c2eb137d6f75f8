"""
Server lifecycle: bind a listening socket and serve an ASGI handler on it.
"""

import enum
import logging
import socket
import sys
import threading
import time
from typing import Any, Callable, Optional, Union

import uvicorn
from uvicorn.importer import ImportFromStringError, import_from_string

from cloud_server.core.config import DEFAULT_HOST, DEFAULT_LOG_LEVEL, MAX_PORT, MIN_PORT

logger = logging.getLogger(__name__)

Handler = Union[str, Callable[..., Any]]

BACKLOG = 2048
STARTUP_POLL_INTERVAL = 0.01


class StartupError(Exception):
    """Raised when the server cannot be brought up."""


class BindFailure(StartupError):
    """Raised when the listening socket cannot be bound."""

    def __init__(self, host: str, port: int, reason: Any):
        self.host = host
        self.port = port
        super().__init__(f"Cannot listen on {host}:{port}: {reason}")


class ServerStateError(RuntimeError):
    """Raised on a lifecycle call that the current state does not allow."""


class ServerState(str, enum.Enum):
    UNSTARTED = "unstarted"
    LISTENING = "listening"
    FAILED = "failed"
    STOPPED = "stopped"


def _bind_socket(host: str, port: int) -> socket.socket:
    if not MIN_PORT <= port <= MAX_PORT:
        raise BindFailure(host, port, "port out of range")

    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        if sys.platform != "win32":
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(BACKLOG)
    except OSError as exc:
        sock.close()
        raise BindFailure(host, port, exc.strerror or exc) from exc
    sock.set_inheritable(True)
    return sock


class ServerHandle:
    """
    A server bound to one request handler.

    Created unstarted by create_server(). listen() claims the port and
    serves it from a background thread until stop() or process exit.
    """

    def __init__(self, handler, host=DEFAULT_HOST, log_level=DEFAULT_LOG_LEVEL):
        self.handler = handler
        self.host = host
        self.log_level = log_level
        self.port = None
        self.state = ServerState.UNSTARTED

        self._lock = threading.Lock()
        self._server = None
        self._socket = None
        self._thread = None

    @property
    def is_serving(self) -> bool:
        return (
            self.state is ServerState.LISTENING
            and self._thread is not None
            and self._thread.is_alive()
        )

    def listen(self, port: int):
        with self._lock:
            if self.state is not ServerState.UNSTARTED:
                raise ServerStateError(f"Cannot listen: server is {self.state.value}")

            try:
                sock = _bind_socket(self.host, port)
            except BindFailure:
                self.state = ServerState.FAILED
                raise

            config = uvicorn.Config(self.handler, host=self.host, port=port, log_level=self.log_level)
            server = uvicorn.Server(config)
            thread = threading.Thread(
                target=server.run,
                kwargs={"sockets": [sock]},
                name=f"cloud-server-{port}",
                daemon=True,
            )
            thread.start()

            while not server.started:
                if not thread.is_alive():
                    sock.close()
                    self.state = ServerState.FAILED
                    raise StartupError(f"Server on {self.host}:{port} exited during startup")
                time.sleep(STARTUP_POLL_INTERVAL)

            self._server = server
            self._socket = sock
            self._thread = thread
            self.port = sock.getsockname()[1]
            self.state = ServerState.LISTENING

        logger.debug("Serving %r on %s:%d", self.handler, self.host, self.port)

    def stop(self, timeout=None):
        with self._lock:
            if self.state is not ServerState.LISTENING:
                return
            self._server.should_exit = True
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Server thread did not exit within %ss", timeout)
            self._socket.close()
            self.state = ServerState.STOPPED

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the server stops. Returns False on timeout."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()


def create_server(handler: Handler, host: str = DEFAULT_HOST,
                  log_level: str = DEFAULT_LOG_LEVEL) -> ServerHandle:
    """
    Build a server for `handler` without accepting connections yet.

    `handler` is an ASGI application or a "module:attribute" import string.
    """
    if isinstance(handler, str):
        try:
            handler = import_from_string(handler)
        except ImportFromStringError as exc:
            raise StartupError(f"Cannot load request handler: {exc}") from exc
    return ServerHandle(handler, host=host, log_level=log_level)
