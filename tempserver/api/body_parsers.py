import codecs
import fnmatch
import re
from typing import Any, ClassVar
from urllib.parse import parse_qsl

import orjson
from pydantic import BaseModel, ByteSize, ConfigDict
from starlette.requests import Request

from tempserver.core.models.base import merged_options
from tempserver.exceptions.http import (
    MalformedBodyError,
    PayloadTooLargeError,
    UnsupportedCharsetError,
)

__all__ = [
    "BodyParserOptions",
    "BodyParser",
    "JSONBodyParser",
    "TextBodyParser",
    "UrlencodedBodyParser",
    "RawBodyParser",
    "build_body_parsers",
    "read_body",
]

DEFAULT_LIMIT = "1mb"

_BRACKETS = re.compile(r"\[([^\[\]]*)\]")


class BodyParserOptions(BaseModel):
    """Options for the body parsers.

    The same options object is merged into the defaults of every parser,
    fields left to None keep the parser default.

    Attributes:
        limit (ByteSize): The maximum body size, e.g. "100kb" or 102400.
        type (str | list[str]): The content type(s) the parser handles, wildcards are allowed.
        extended (bool): Parse bracketed urlencoded keys into nested dicts and lists.
        strict (bool): Only accept JSON objects and arrays.
        default_charset (str): The charset used for text bodies without a declared charset.
    """

    limit: ByteSize | None = None
    type: str | list[str] | None = None
    extended: bool | None = None
    strict: bool | None = None
    default_charset: str | None = None

    model_config = ConfigDict(extra="forbid")


def _split_content_type(header: str) -> tuple[str, str | None]:
    mime, _, params = header.partition(";")
    charset = None
    for param in params.split(";"):
        key, _, value = param.strip().partition("=")
        if key.lower() == "charset" and value:
            charset = value.strip('"').lower()
    return mime.strip().lower(), charset


def _decode(raw: bytes, charset: str) -> str:
    try:
        codecs.lookup(charset)
    except LookupError as e:
        raise UnsupportedCharsetError(charset=charset) from e
    return raw.decode(charset)


class BodyParser:
    """Base class for the body parsers.

    Attributes:
        options (BodyParserOptions): The merged options of the parser.
    """

    default_options: ClassVar[BodyParserOptions]

    def __init__(self, options: BodyParserOptions | None = None):
        """Constructor.

        Args:
            options (BodyParserOptions | None): Options to merge into the parser defaults.
        """
        self.options = merged_options(self.default_options, options)

    @property
    def limit(self) -> int:
        return int(self.options.limit)

    def matches(self, mime: str) -> bool:
        """Check whether the parser handles a content type.

        Args:
            mime (str): The content type without parameters.

        Returns:
            bool: True if one of the parser types matches.
        """
        types = self.options.type
        if isinstance(types, str):
            types = [types]
        return any(fnmatch.fnmatch(mime, pattern.lower()) for pattern in types)

    def check_length(self, length: int):
        """Raise PayloadTooLargeError if a body of this length is over the limit."""
        if length > self.limit:
            raise PayloadTooLargeError(length=length, limit=self.limit)

    def parse(self, raw: bytes, mime: str, charset: str | None) -> Any:
        raise NotImplementedError


class JSONBodyParser(BodyParser):
    """Decodes JSON bodies into dicts and lists."""

    default_options = BodyParserOptions(
        limit=DEFAULT_LIMIT, type="application/json", strict=True
    )

    def parse(self, raw: bytes, mime: str, charset: str | None) -> Any:
        if charset is not None and not charset.startswith("utf-"):
            raise UnsupportedCharsetError(charset=charset)
        if not raw.strip():
            return {}
        if self.options.strict and raw.lstrip()[:1] not in (b"{", b"["):
            raise MalformedBodyError(
                content_type=mime, message="Strict mode only accepts objects and arrays."
            )
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise MalformedBodyError(content_type=mime, message=str(e)) from e


class TextBodyParser(BodyParser):
    """Decodes text bodies into str."""

    default_options = BodyParserOptions(
        limit=DEFAULT_LIMIT, type="text/plain", default_charset="utf-8"
    )

    def parse(self, raw: bytes, mime: str, charset: str | None) -> Any:
        try:
            return _decode(raw, charset or self.options.default_charset)
        except UnicodeDecodeError as e:
            raise MalformedBodyError(content_type=mime, message=str(e)) from e


class UrlencodedBodyParser(BodyParser):
    """Decodes urlencoded form bodies into dicts."""

    default_options = BodyParserOptions(
        limit=DEFAULT_LIMIT, type="application/x-www-form-urlencoded", extended=True
    )

    def parse(self, raw: bytes, mime: str, charset: str | None) -> Any:
        charset = charset or "utf-8"
        if charset not in ("utf-8", "iso-8859-1"):
            raise UnsupportedCharsetError(charset=charset)
        try:
            pairs = parse_qsl(
                raw.decode(charset), keep_blank_values=True, encoding=charset
            )
        except UnicodeDecodeError as e:
            raise MalformedBodyError(content_type=mime, message=str(e)) from e
        if self.options.extended:
            return self._nest(pairs)
        return self._flatten(pairs)

    @staticmethod
    def _flatten(pairs: list[tuple[str, str]]) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key, value in pairs:
            if key not in result:
                result[key] = value
            elif isinstance(result[key], list):
                result[key].append(value)
            else:
                result[key] = [result[key], value]
        return result

    @classmethod
    def _nest(cls, pairs: list[tuple[str, str]]) -> dict[str, Any]:
        """Expand keys like `a[b]=1` and `a[]=1` into nested dicts and lists."""
        result: dict[str, Any] = {}
        for key, value in pairs:
            root, bracket, _ = key.partition("[")
            if not bracket or not root:
                cls._assign(result, key, value)
                continue
            path = [root, *_BRACKETS.findall(key[len(root) :])]
            container = result
            for part, child in zip(path, path[1:], strict=False):
                default: Any = [] if child == "" else {}
                if isinstance(container, list):
                    container.append(default)
                    container = default
                    continue
                existing = container.get(part)
                if not isinstance(existing, dict | list):
                    container[part] = default
                container = container[part]
            last = path[-1]
            if isinstance(container, list):
                container.append(value)
            else:
                cls._assign(container, last, value)
        return result

    @staticmethod
    def _assign(container: dict[str, Any], key: str, value: str):
        if key not in container:
            container[key] = value
        elif isinstance(container[key], list):
            container[key].append(value)
        else:
            container[key] = [container[key], value]


class RawBodyParser(BodyParser):
    """Keeps binary bodies as bytes."""

    default_options = BodyParserOptions(
        limit=DEFAULT_LIMIT, type="application/octet-stream"
    )

    def parse(self, raw: bytes, mime: str, charset: str | None) -> Any:
        return raw


def build_body_parsers(
    options: BodyParserOptions | dict[str, Any] | bool | None = None,
) -> list[BodyParser]:
    """Build the body parsers of a server.

    Args:
        options (BodyParserOptions | dict | bool | None): Options merged into the
            defaults of every parser. False disables body parsing altogether.

    Returns:
        list[BodyParser]: The parsers, in the order they are tried.
    """
    if options is False:
        return []
    if options is True or options is None:
        options = None
    elif not isinstance(options, BodyParserOptions):
        options = BodyParserOptions.model_validate(options)
    return [
        JSONBodyParser(options),
        TextBodyParser(options),
        UrlencodedBodyParser(options),
        RawBodyParser(options),
    ]


async def read_body(request: Request, parsers: list[BodyParser]) -> tuple[bytes, Any]:
    """Read the request body and decode it with the first matching parser.

    Args:
        request (Request): The request.
        parsers (list[BodyParser]): The parsers of the server.

    Returns:
        tuple[bytes, Any]: The raw body and the decoded body. The decoded body is
            None when there are no parsers and an empty dict when none of them matched.

    Raises:
        PayloadTooLargeError: If the body is over the limit of the matching parser.
        MalformedBodyError: If the body cannot be decoded.
        UnsupportedCharsetError: If the declared charset is not supported.
    """
    mime, charset = _split_content_type(request.headers.get("content-type", ""))
    parser = next((p for p in parsers if mime and p.matches(mime)), None)

    if parser is None:
        raw = await request.body()
        return raw, None if not parsers else {}
    raw = await _read_limited(request, parser)
    if not raw:
        return raw, {}
    return raw, parser.parse(raw, mime, charset)


async def _read_limited(request: Request, parser: BodyParser) -> bytes:
    """Read the body keeping at most `parser.limit` bytes in memory.

    An oversized body is still drained so the client can read the error response.
    """
    declared = int(request.headers.get("content-length") or 0)
    oversized = declared > parser.limit
    chunks: list[bytes] = []
    received = 0
    async for chunk in request.stream():
        received += len(chunk)
        if received > parser.limit:
            oversized = True
        if not oversized:
            chunks.append(chunk)
    parser.check_length(max(declared, received))
    return b"".join(chunks)
