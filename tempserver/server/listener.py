import logging
import socket
from pathlib import Path

import uvicorn
from fastapi import FastAPI

from tempserver.configs.settings import Settings

__all__ = ["Listener", "bind_ephemeral"]

logger = logging.getLogger(__name__)


def _bind(host: str) -> socket.socket:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.bind((host, 0))
    except OSError:
        sock.close()
        raise
    return sock


def bind_ephemeral(host: str, avoid: int | None = None) -> socket.socket:
    """Bind a socket to a port chosen by the operating system.

    Args:
        host (str): The interface to bind to.
        avoid (int | None): A port that must not be returned, usually the
            port of the previous activation.

    Returns:
        socket.socket: The bound socket.

    Raises:
        OSError: If the socket cannot be bound.
    """
    sock = _bind(host)
    if avoid is not None and sock.getsockname()[1] == avoid:
        # holding the old port forces the OS to pick another one
        try:
            fresh = _bind(host)
        finally:
            sock.close()
        sock = fresh
    return sock


class Listener:
    """One transport endpoint of a temp server, plain HTTP or HTTPS.

    A listener is created once per server and bound again on every activation,
    each time to a new port and with a new uvicorn server.

    Attributes:
        app (FastAPI): The application served by the listener.
        scheme (str): "http" or "https".
        server (uvicorn.Server | None): The uvicorn server of the current activation.
        socket (socket.socket | None): The bound socket of the current activation.
        port (int | None): The bound port, None while unbound.
        last_port (int | None): The port of the previous activation.
    """

    def __init__(
        self,
        app: FastAPI,
        settings: Settings,
        scheme: str = "http",
        ssl_keyfile: Path | None = None,
        ssl_certfile: Path | None = None,
    ):
        """Constructor.

        Args:
            app (FastAPI): The application to serve.
            settings (Settings): The server settings.
            scheme (str): "http" or "https".
            ssl_keyfile (Path | None): The private key for HTTPS.
            ssl_certfile (Path | None): The certificate for HTTPS.
        """
        self.app = app
        self.settings = settings
        self.scheme = scheme
        self.ssl_keyfile = ssl_keyfile
        self.ssl_certfile = ssl_certfile
        self.server: uvicorn.Server | None = None
        self.socket: socket.socket | None = None
        self.port: int | None = None
        self.last_port: int | None = None

    @property
    def url(self) -> str | None:
        """The base url of the listener, None while unbound."""
        if self.port is None:
            return None
        return f"{self.scheme}://{self.settings.url_host}:{self.port}"

    @property
    def started(self) -> bool:
        return self.server is not None and self.server.started

    @property
    def listening(self) -> bool:
        """Whether the listener is accepting connections."""
        return self.started and not self.server.should_exit

    def bind(self):
        """Bind a fresh ephemeral port and prepare a uvicorn server for it.

        Raises:
            OSError: If the socket cannot be bound.
        """
        sock = bind_ephemeral(self.settings.host, avoid=self.last_port)
        port = sock.getsockname()[1]
        config = uvicorn.Config(
            self.app,
            host=self.settings.host,
            port=port,
            lifespan="off",
            log_config=None,
            log_level=self.settings.log_level,
            access_log=self.settings.access_log,
            ssl_keyfile=str(self.ssl_keyfile) if self.ssl_keyfile else None,
            ssl_certfile=str(self.ssl_certfile) if self.ssl_certfile else None,
        )
        self.socket = sock
        self.port = port
        self.server = uvicorn.Server(config)
        logger.debug(f"Bound {self.scheme} listener to port {port}")

    async def serve(self):
        """Serve the application on the bound socket until `stop` is called."""
        await self.server.serve(sockets=[self.socket])

    def stop(self):
        """Ask the uvicorn server to exit."""
        if self.server is not None:
            self.server.should_exit = True

    def release(self):
        """Close the socket and forget the current activation."""
        if self.socket is not None:
            self.socket.close()
        self.last_port = self.port if self.port is not None else self.last_port
        self.socket = None
        self.port = None
        self.server = None

    def __repr__(self) -> str:
        return f"Listener(scheme={self.scheme!r}, port={self.port})"
