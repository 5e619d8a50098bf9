# ruff: noqa: S101
import pytest
from pydantic import ValidationError
from starlette.requests import Request

from tempserver.api.body_parsers import (
    BodyParserOptions,
    JSONBodyParser,
    RawBodyParser,
    TextBodyParser,
    UrlencodedBodyParser,
    build_body_parsers,
    read_body,
)
from tempserver.exceptions.http import (
    MalformedBodyError,
    PayloadTooLargeError,
    UnsupportedCharsetError,
)


def test_build_default_parsers():
    """Test that the four parsers are built with their default types and a 1mb limit."""
    parsers = build_body_parsers()
    assert [type(p) for p in parsers] == [
        JSONBodyParser,
        TextBodyParser,
        UrlencodedBodyParser,
        RawBodyParser,
    ]
    assert [p.options.type for p in parsers] == [
        "application/json",
        "text/plain",
        "application/x-www-form-urlencoded",
        "application/octet-stream",
    ]
    assert all(p.limit == 1_000_000 for p in parsers)


def test_build_disabled_parsers():
    """Test that False disables every parser."""
    assert build_body_parsers(False) == []


def test_options_are_merged_into_every_parser():
    """Test that one options object is merged into the defaults of every parser."""
    parsers = build_body_parsers({"limit": "100kb"})
    assert all(p.limit == 100_000 for p in parsers)
    # the parser specific defaults are kept
    assert parsers[0].options.strict is True
    assert parsers[2].options.extended is True


def test_invalid_options_are_rejected():
    """Test that unknown options surface as validation errors."""
    with pytest.raises(ValidationError):
        build_body_parsers({"limt": "100kb"})
    with pytest.raises(ValidationError):
        BodyParserOptions(limit="a lot")


def test_type_matching():
    """Test that parser types support wildcards."""
    parser = TextBodyParser(BodyParserOptions(type=["text/*", "application/xml"]))
    assert parser.matches("text/csv")
    assert parser.matches("application/xml")
    assert not parser.matches("application/json")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "content_type, body, expected",
    [
        ("application/json", b'{"foo": "bar"}', {"foo": "bar"}),
        ("application/json; charset=utf-8", b"[1, 2]", [1, 2]),
        ("text/plain", b"foo", "foo"),
        ("text/plain; charset=latin-1", "café".encode("latin-1"), "café"),
        ("application/x-www-form-urlencoded", b"foo=bar", {"foo": "bar"}),
        ("application/octet-stream", b"\x00foo", b"\x00foo"),
    ],
)
async def test_read_body(request_factory, content_type, body, expected):
    """Test that each content type is decoded by its parser."""
    request = request_factory(body, content_type)
    raw, decoded = await read_body(request, build_body_parsers())
    assert raw == body
    assert decoded == expected


@pytest.mark.asyncio
async def test_read_body_without_match(request_factory):
    """Test that unknown content types and empty bodies decode to an empty dict."""
    parsers = build_body_parsers()
    raw, decoded = await read_body(request_factory(b"<a/>", "application/xml"), parsers)
    assert raw == b"<a/>"
    assert decoded == {}

    _, decoded = await read_body(request_factory(b"", "application/json"), parsers)
    assert decoded == {}


@pytest.mark.asyncio
async def test_read_body_disabled(request_factory):
    """Test that the body is None and the raw body is kept when parsing is disabled."""
    raw, decoded = await read_body(request_factory(b"foo", "text/plain"), [])
    assert raw == b"foo"
    assert decoded is None


@pytest.mark.asyncio
async def test_read_body_over_limit(request_factory):
    """Test that bodies over the limit are rejected."""
    parsers = build_body_parsers({"limit": "100kb"})
    request = request_factory(b"x" * 150 * 1024, "application/octet-stream")
    with pytest.raises(PayloadTooLargeError) as exc_info:
        await read_body(request, parsers)
    assert exc_info.value.http_status_code == 413
    assert exc_info.value.limit == 100_000


@pytest.mark.asyncio
async def test_read_body_over_limit_without_content_length():
    """Test that a chunked body over the limit is rejected once it is fully drained."""
    chunk = b"x" * 1000
    messages = [
        {"type": "http.request", "body": chunk, "more_body": True} for _ in range(5)
    ]
    messages.append({"type": "http.request", "body": b"", "more_body": False})
    received = []

    async def receive():
        message = messages.pop(0)
        received.append(message)
        return message

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "headers": [(b"content-type", b"application/octet-stream")],
        "query_string": b"",
    }
    parsers = build_body_parsers({"limit": 2500})
    with pytest.raises(PayloadTooLargeError) as exc_info:
        await read_body(Request(scope, receive), parsers)
    assert exc_info.value.length == 5000
    assert exc_info.value.limit == 2500
    assert not messages
    assert len(received) == 6


@pytest.mark.asyncio
async def test_read_body_within_limit_in_chunks():
    """Test that a chunked body within the limit is joined."""
    messages = [
        {"type": "http.request", "body": b"foo", "more_body": True},
        {"type": "http.request", "body": b"bar", "more_body": False},
    ]

    async def receive():
        return messages.pop(0)

    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "headers": [(b"content-type", b"text/plain")],
        "query_string": b"",
    }
    raw, decoded = await read_body(Request(scope, receive), build_body_parsers())
    assert raw == b"foobar"
    assert decoded == "foobar"


@pytest.mark.asyncio
async def test_read_body_malformed_json(request_factory):
    """Test that invalid JSON and non-object JSON in strict mode are rejected."""
    parsers = build_body_parsers()
    with pytest.raises(MalformedBodyError):
        await read_body(request_factory(b"{foo", "application/json"), parsers)
    with pytest.raises(MalformedBodyError):
        await read_body(request_factory(b'"foo"', "application/json"), parsers)

    parsers = build_body_parsers({"strict": False})
    _, decoded = await read_body(request_factory(b'"foo"', "application/json"), parsers)
    assert decoded == "foo"


@pytest.mark.asyncio
async def test_read_body_unsupported_charset(request_factory):
    """Test that unknown charsets are rejected."""
    with pytest.raises(UnsupportedCharsetError):
        await read_body(
            request_factory(b"foo", "text/plain; charset=klingon"), build_body_parsers()
        )


def test_urlencoded_extended():
    """Test that bracketed keys are nested in extended mode."""
    parser = UrlencodedBodyParser()
    body = b"a[b]=1&a[c]=2&list[]=x&list[]=y&plain=1&plain=2&empty="
    assert parser.parse(body, "application/x-www-form-urlencoded", None) == {
        "a": {"b": "1", "c": "2"},
        "list": ["x", "y"],
        "plain": ["1", "2"],
        "empty": "",
    }


def test_urlencoded_flat():
    """Test that bracketed keys are kept as-is when extended mode is off."""
    parser = UrlencodedBodyParser(BodyParserOptions(extended=False))
    body = b"a[b]=1&plain=1&plain=2"
    assert parser.parse(body, "application/x-www-form-urlencoded", None) == {
        "a[b]": "1",
        "plain": ["1", "2"],
    }
