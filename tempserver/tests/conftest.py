# This file is used to define fixtures that are used in the tests.
# ruff: noqa: S101
import concurrent.futures

import pytest
from starlette.requests import Request

from tempserver.api.request import HandlerRequest
from tempserver.pytest_plugin import temp_server, temp_server_factory  # noqa: F401


def make_request(
    body: bytes = b"",
    content_type: str | None = None,
    method: str = "POST",
    path: str = "/",
) -> Request:
    """Build a Starlette request without a running server."""
    headers = [(b"content-length", str(len(body)).encode())]
    if content_type is not None:
        headers.append((b"content-type", content_type.encode()))
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "headers": headers,
        "query_string": b"",
    }

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


@pytest.fixture
def request_factory():
    """Factory fixture building Starlette requests."""
    return make_request


@pytest.fixture
def handler_request():
    """A handler request for a GET without a body."""
    return HandlerRequest(make_request(method="GET"), raw_body=b"", body=None)


@pytest.fixture
def resolved_future():
    """A thread-safe future that already resolved to "bar"."""
    future = concurrent.futures.Future()
    future.set_result("bar")
    return future
