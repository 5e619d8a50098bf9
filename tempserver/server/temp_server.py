import contextlib
import logging
import tempfile
import threading
from pathlib import Path
from typing import Any

from tempserver.api.app import create_app
from tempserver.api.body_parsers import BodyParserOptions, build_body_parsers
from tempserver.api.routing import RouteRegistrar
from tempserver.configs.settings import Settings
from tempserver.configs.settings import settings as default_settings
from tempserver.exceptions.runtime import (
    ServerAlreadyListeningError,
    ServerNotListeningError,
)
from tempserver.server.certificates import (
    CertificateOptions,
    Credentials,
    issue_credentials,
)
from tempserver.server.lifecycle import ServeThread
from tempserver.server.listener import Listener

__all__ = ["TempServer", "create_server"]

logger = logging.getLogger(__name__)


class TempServer(RouteRegistrar):
    """A disposable HTTP(S) server for tests.

    Every call to `listen` binds a new random port. While the server is
    listening `url` and `port` (and `ssl_url` and `ssl_port` for TLS servers)
    point to it, otherwise they are None.

    Routes are registered with the verb methods (`get`, `post`, ...). A handler
    can be a literal value, a function taking (request, response, next) that
    returns a value or writes the response itself, or an async function.

    Example:
        ```
        server = create_server()
        server.get("/foo", "bar")
        server.get("/json", lambda: {"foo": "bar"})

        @server.post("/echo")
        async def echo(req, res):
            return req.body

        requests.get(server.url + "/foo").text  # "bar"
        server.close()
        ```

    Attributes:
        url (str | None): The base url of the HTTP listener, e.g. `http://localhost:5486`.
        port (int | None): The port of the HTTP listener.
        ssl_url (str | None): The base url of the HTTPS listener.
        ssl_port (int | None): The port of the HTTPS listener.
        http (Listener): The HTTP listener.
        https (Listener | None): The HTTPS listener, None if TLS is not enabled.
        app (FastAPI): The underlying FastAPI application.
        ca_cert (str | None): The PEM encoded CA certificate clients should trust.
        ca_file (Path | None): Path to `ca_cert` on disk, e.g. for `requests.get(verify=...)`.
    """

    def __init__(
        self,
        body_parser: BodyParserOptions | dict[str, Any] | bool | None = None,
        ssl: bool = False,
        certificate: CertificateOptions | dict[str, Any] | None = None,
        settings: Settings | None = None,
    ):
        """Constructor.

        The server is created unbound, call `listen` to start it.

        Args:
            body_parser (BodyParserOptions | dict | bool | None): Options merged into
                the defaults of the body parsers. False disables body parsing.
            ssl (bool): Whether to also serve HTTPS.
            certificate (CertificateOptions | dict | None): Options for the
                certificates issued when `ssl` is True.
            settings (Settings | None): The server settings. Defaults to the settings
                loaded from the environment.
        """
        super().__init__()
        self.settings = settings or default_settings
        self.app = create_app(self.settings)
        self.body_parsers = build_body_parsers(body_parser)

        self.http = Listener(self.app, self.settings, scheme="http")
        self.https: Listener | None = None
        self.credentials: Credentials | None = None
        self.ca_cert: str | None = None
        self.ca_file: Path | None = None
        self._cert_dir: tempfile.TemporaryDirectory | None = None
        if ssl:
            self._setup_tls(certificate)

        self._lock = threading.Lock()
        self._thread: ServeThread | None = None

    def _setup_tls(self, certificate: CertificateOptions | dict[str, Any] | None):
        # issued once, every activation reuses the same files
        self.credentials = issue_credentials(certificate)
        self._cert_dir = tempfile.TemporaryDirectory(prefix="tempserver-")
        cert_dir = Path(self._cert_dir.name)
        keyfile = cert_dir / "key.pem"
        certfile = cert_dir / "cert.pem"
        keyfile.write_bytes(self.credentials.key)
        certfile.write_bytes(self.credentials.cert)
        self.ca_file = cert_dir / "ca.pem"
        self.ca_file.write_bytes(self.credentials.ca_cert)
        self.ca_cert = self.credentials.ca_cert.decode()
        self.https = Listener(
            self.app,
            self.settings,
            scheme="https",
            ssl_keyfile=keyfile,
            ssl_certfile=certfile,
        )

    @property
    def listeners(self) -> list[Listener]:
        """The listeners owned by the server."""
        if self.https is None:
            return [self.http]
        return [self.http, self.https]

    @property
    def listening(self) -> bool:
        """Whether the server is accepting connections."""
        return self._thread is not None and self._thread.serving

    @property
    def port(self) -> int | None:
        """The port of the HTTP listener, None while not listening."""
        return self.http.port if self.listening else None

    @property
    def url(self) -> str | None:
        """The base url of the HTTP listener, e.g. `http://localhost:5486`."""
        return self.http.url if self.listening else None

    @property
    def ssl_port(self) -> int | None:
        """The port of the HTTPS listener, None while not listening or without TLS."""
        if self.https is None or not self.listening:
            return None
        return self.https.port

    @property
    def ssl_url(self) -> str | None:
        """The base url of the HTTPS listener."""
        if self.https is None or not self.listening:
            return None
        return self.https.url

    def listen(self) -> None:
        """Start listening on new random ports.

        Returns once every listener accepts connections, then `url` and `port`
        (and `ssl_url` and `ssl_port`) are set.

        Raises:
            ServerAlreadyListeningError: If the server is already listening.
            OSError: If a port cannot be bound.
            ListenerStartupError: If a listener fails to start.
        """
        with self._lock:
            if self.listening:
                raise ServerAlreadyListeningError(url=self.url)
            if self._thread is not None:
                # the listeners exited without close()
                self._shutdown()

            listeners = self.listeners
            try:
                for listener in listeners:
                    listener.bind()
            except OSError:
                for listener in listeners:
                    listener.release()
                raise

            thread = ServeThread(
                listeners, poll_interval=self.settings.startup_poll_interval
            )
            thread.start()
            try:
                thread.wait_ready()
            except Exception:
                thread.join()
                for listener in listeners:
                    listener.release()
                raise

            self._thread = thread
            logger.info(
                f"Temp server listening on {', '.join(listener.url for listener in listeners)}"
            )

    def close(self) -> None:
        """Stop listening.

        Returns once every listener has shut down and released its port, then
        `url` and `port` (and `ssl_url` and `ssl_port`) are None. Also releases
        the ports of listeners that exited on their own.

        Raises:
            ServerNotListeningError: If the server was never listened or is already closed.
        """
        with self._lock:
            if self._thread is None:
                raise ServerNotListeningError()
            url = self.http.url
            self._shutdown()
            logger.info(f"Temp server on {url} closed")

    def _shutdown(self):
        self._thread.stop()
        self._thread = None
        for listener in self.listeners:
            listener.release()

    def exception_handler(self, exc_class_or_status_code: int | type[Exception]):
        """Decorator to install custom error handling on the server.

        The handler is called with (request, exc) and returns a response,
        see `FastAPI.exception_handler`. It applies to requests served after
        the decorator returns, including on a listening server.

        Args:
            exc_class_or_status_code (int | type[Exception]): The exception class
                or status code to handle.

        Returns:
            Callable: The decorator.
        """

        def decorator(function):
            with self._lock:
                self.app.add_exception_handler(exc_class_or_status_code, function)
                # the middleware stack captures the handlers when it is built
                self.app.middleware_stack = self.app.build_middleware_stack()
            return function

        return decorator

    def __enter__(self) -> "TempServer":
        if not self.listening:
            self.listen()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        with contextlib.suppress(ServerNotListeningError):
            self.close()

    def __repr__(self) -> str:
        return f"TempServer(url={self.url!r}, ssl_url={self.ssl_url!r})"


def create_server(
    body_parser: BodyParserOptions | dict[str, Any] | bool | None = None,
    ssl: bool = False,
    certificate: CertificateOptions | dict[str, Any] | None = None,
    settings: Settings | None = None,
) -> TempServer:
    """Create a temp server and start listening.

    Args:
        body_parser (BodyParserOptions | dict | bool | None): Options merged into
            the defaults of the body parsers. False disables body parsing.
        ssl (bool): Whether to also serve HTTPS.
        certificate (CertificateOptions | dict | None): Options for the
            certificates issued when `ssl` is True.
        settings (Settings | None): The server settings.

    Returns:
        TempServer: The listening server.
    """
    server = TempServer(
        body_parser=body_parser, ssl=ssl, certificate=certificate, settings=settings
    )
    server.listen()
    return server
