from typing import Any

from starlette.datastructures import Headers, QueryParams
from starlette.requests import Request


class HandlerRequest:
    """The request object handed to route handlers.

    It wraps the Starlette request and adds the already-read body,
    so that synchronous handlers never have to await anything.

    Attributes:
        raw (Request): The underlying Starlette request.
        raw_body (bytes): The request body as received.
        body (Any): The decoded request body. None if body parsing is disabled,
            an empty dict if no body parser matched the request.
    """

    def __init__(self, request: Request, raw_body: bytes, body: Any):
        """Constructor.

        Args:
            request (Request): The underlying Starlette request.
            raw_body (bytes): The request body as received.
            body (Any): The decoded request body.
        """
        self.raw = request
        self.raw_body = raw_body
        self.body = body

    @property
    def method(self) -> str:
        return self.raw.method

    @property
    def url(self) -> str:
        return str(self.raw.url)

    @property
    def path(self) -> str:
        return self.raw.url.path

    @property
    def headers(self) -> Headers:
        return self.raw.headers

    @property
    def query_params(self) -> QueryParams:
        return self.raw.query_params

    @property
    def params(self) -> dict[str, Any]:
        """The path parameters of the matched route."""
        return self.raw.path_params

    @property
    def cookies(self) -> dict[str, str]:
        return self.raw.cookies

    def get(self, name: str, default: str | None = None) -> str | None:
        """Get a request header, case-insensitively.

        Args:
            name (str): The header name.
            default (str | None): Value returned when the header is missing.

        Returns:
            str | None: The header value.
        """
        return self.raw.headers.get(name, default)

    def __repr__(self) -> str:
        return f"HandlerRequest(method={self.method!r}, path={self.path!r})"
