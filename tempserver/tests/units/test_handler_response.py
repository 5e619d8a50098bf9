# ruff: noqa: S101
import pytest
from pydantic import BaseModel

from tempserver.api.response import HandlerResponse
from tempserver.exceptions.http import ResponseAlreadySentError


class Item(BaseModel):
    """Test model."""

    name: str


@pytest.mark.parametrize(
    "body, content, content_type",
    [
        ("bar", b"bar", "text/html; charset=utf-8"),
        (b"bar", b"bar", "application/octet-stream"),
        ({"foo": "bar"}, b'{"foo":"bar"}', "application/json"),
        ([1, 2], b"[1,2]", "application/json"),
        (Item(name="bar"), b'{"name":"bar"}', "application/json"),
    ],
)
def test_send_infers_content_type(body, content, content_type):
    """Test that the content type is inferred from the body."""
    response = HandlerResponse()
    response.send(body)
    assert response.content == content
    assert response.get("content-type") == content_type


def test_send_keeps_content_type():
    """Test that a content type set by the handler is kept."""
    response = HandlerResponse()
    response.set("Content-Type", "text/plain").send("bar")
    assert response.get("content-type") == "text/plain"


def test_response_is_written_once():
    """Test that the response cannot be written or changed after it was sent."""
    response = HandlerResponse()
    response.send("bar")
    with pytest.raises(ResponseAlreadySentError):
        response.send("baz")
    with pytest.raises(ResponseAlreadySentError):
        response.end()
    with pytest.raises(ResponseAlreadySentError):
        response.set("foo", "bar")
    assert response.content == b"bar"


def test_end_without_body():
    """Test that end finishes the response without a content type."""
    response = HandlerResponse()
    response.status(204).end()
    assert response.headers_sent
    assert response.content == b""
    assert response.get("content-type") is None


def test_to_response():
    """Test that the buffered response is converted to a Starlette response."""
    response = HandlerResponse()
    response.status(201).set("x-foo", "bar").append("set-cookie", "a=1")
    response.append("set-cookie", "b=2")
    response.send("created")

    starlette_response = response.to_response()
    assert starlette_response.status_code == 201
    assert starlette_response.body == b"created"
    assert starlette_response.headers["x-foo"] == "bar"
    assert starlette_response.headers.getlist("set-cookie") == ["a=1", "b=2"]
    assert starlette_response.headers["content-length"] == "7"
    assert "etag" not in starlette_response.headers


def test_json_converts_handler_values():
    """Test that values orjson cannot serialize natively are converted."""
    from pathlib import Path

    from starlette.datastructures import Headers

    response = HandlerResponse()
    response.json(
        {
            "tags": {"a"},
            "path": Path("/tmp/foo"),  # noqa: S108
            "headers": Headers({"x-foo": "bar"}),
            1: Item(name="bar"),
        }
    )
    assert response.content == (
        b'{"tags":["a"],"path":"/tmp/foo","headers":{"x-foo":"bar"},"1":{"name":"bar"}}'
    )


def test_json_rejects_unknown_values():
    """Test that values that cannot be converted raise TypeError."""
    response = HandlerResponse()
    with pytest.raises(TypeError):
        response.json({"foo": object()})
    assert not response.headers_sent
