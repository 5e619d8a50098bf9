from typing import Any

from starlette.datastructures import MutableHeaders
from starlette.responses import Response

from tempserver.exceptions.http import ResponseAlreadySentError
from tempserver.utils.json import dumps


class HandlerResponse:
    """The response object handed to route handlers.

    The response is buffered: handlers write it with `send`, `json` or `end`,
    and the route turns it into a Starlette response once the handler chain is done.
    A response can be written only once.

    Attributes:
        status_code (int): The status code of the response.
        headers (MutableHeaders): The response headers.
        content (bytes): The written body.
    """

    def __init__(self):
        """Constructor."""
        self.status_code = 200
        self.headers = MutableHeaders()
        self.content = b""
        self._sent = False

    @property
    def headers_sent(self) -> bool:
        """Whether the body of the response has been written."""
        return self._sent

    def _ensure_not_sent(self):
        if self._sent:
            raise ResponseAlreadySentError()

    def status(self, code: int) -> "HandlerResponse":
        """Set the status code.

        Args:
            code (int): The status code.

        Returns:
            HandlerResponse: The response itself, for chaining.
        """
        self._ensure_not_sent()
        self.status_code = code
        return self

    def set(self, name: str, value: str) -> "HandlerResponse":
        """Set a response header, replacing any previous value.

        Args:
            name (str): The header name.
            value (str): The header value.

        Returns:
            HandlerResponse: The response itself, for chaining.
        """
        self._ensure_not_sent()
        self.headers[name] = str(value)
        return self

    def append(self, name: str, value: str) -> "HandlerResponse":
        """Add a response header, keeping previous values (e.g. for set-cookie)."""
        self._ensure_not_sent()
        self.headers.append(name, str(value))
        return self

    def get(self, name: str) -> str | None:
        """Get a response header that has been set.

        Args:
            name (str): The header name.

        Returns:
            str | None: The header value.
        """
        return self.headers.get(name)

    def send(self, body: Any = None) -> None:
        """Write the response body.

        The content type is inferred from the body unless it was set before:
        str is sent as HTML, bytes as binary data and everything else as JSON.

        Args:
            body (Any): The body to write.
        """
        if body is None:
            self.end()
        elif isinstance(body, str):
            self._write(body.encode("utf-8"), "text/html; charset=utf-8")
        elif isinstance(body, bytes | bytearray | memoryview):
            self._write(bytes(body), "application/octet-stream")
        else:
            self.json(body)

    def json(self, data: Any) -> None:
        """Write data serialized as JSON.

        Args:
            data (Any): The data to serialize.
        """
        self._write(dumps(data), "application/json")

    def end(self, body: str | bytes | None = None) -> None:
        """Finish the response without content type inference.

        Args:
            body (str | bytes | None): Optional raw body.
        """
        if isinstance(body, str):
            body = body.encode("utf-8")
        self._write(body or b"", None)

    def _write(self, content: bytes, content_type: str | None):
        self._ensure_not_sent()
        if content_type is not None and "content-type" not in self.headers:
            self.headers["content-type"] = content_type
        self.content = content
        self._sent = True

    def to_response(self) -> Response:
        """Build the Starlette response from what the handlers wrote.

        Returns:
            Response: The response to send to the client.
        """
        return Response(
            content=self.content, status_code=self.status_code, headers=self.headers
        )

    def __repr__(self) -> str:
        return f"HandlerResponse(status_code={self.status_code}, sent={self._sent})"
