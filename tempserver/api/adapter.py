"""Turns handler specifications into route handlers.

A handler specification is whatever was passed to a route registration:
a literal value, a callable, or an awaitable. Each one is classified once
into a `HandlerSpec` and resolved per request by `resolve`, the only place
that knows how the three variants produce a value.
"""

import asyncio
import logging
import concurrent.futures
import inspect
from collections.abc import Awaitable, Callable as CallableType
from dataclasses import dataclass, field
from typing import Any

from starlette.concurrency import run_in_threadpool

from tempserver.api.request import HandlerRequest
from tempserver.api.response import HandlerResponse

__all__ = [
    "Literal",
    "Callable",
    "Deferred",
    "HandlerSpec",
    "NextFunction",
    "RouteHandler",
    "handler_spec",
    "resolve",
    "adapt",
]

logger = logging.getLogger(__name__)

# request, response, next
MAX_HANDLER_ARGS = 3


class NextFunction:
    """The continuation handed to route handlers as their third argument.

    Calling it passes control to the next handler registered for the route.
    Calling it with an exception sends the exception to the error handlers instead.

    Attributes:
        called (bool): Whether the handler called the continuation.
        error (Exception | None): The exception passed to the continuation, if any.
    """

    def __init__(self):
        """Constructor."""
        self.called = False
        self.error: Exception | None = None

    def __call__(self, error: Exception | None = None) -> None:
        """Pass control to the next handler.

        Args:
            error (Exception | None): An exception to send to the error handlers.
        """
        self.called = True
        self.error = error


@dataclass(frozen=True)
class Literal:
    """A value that is sent as-is on every request."""

    value: Any


@dataclass(frozen=True)
class Callable:
    """A function called with (request, response, next) on every request.

    Attributes:
        function (Callable): The handler function.
        arity (int): How many of (request, response, next) the function accepts.
        is_async (bool): Whether the function is a coroutine function.
    """

    function: CallableType[..., Any]
    arity: int = MAX_HANDLER_ARGS
    is_async: bool = False


@dataclass
class Deferred:
    """A value that becomes known later: a coroutine, a future or any other awaitable."""

    awaitable: Awaitable[Any] | concurrent.futures.Future
    _future: asyncio.Future | None = field(default=None, init=False, repr=False)

    async def result(self) -> Any:
        """Wait for the value.

        Coroutines can only be awaited once, so the first request wraps the
        awaitable into a future and later requests reuse its result.

        Returns:
            Any: The resolved value.
        """
        if isinstance(self.awaitable, concurrent.futures.Future):
            return await asyncio.wrap_future(self.awaitable)
        if self._future is None:
            self._future = asyncio.ensure_future(self.awaitable)
        return await self._future


HandlerSpec = Literal | Callable | Deferred

RouteHandler = CallableType[
    [HandlerRequest, HandlerResponse, NextFunction], Awaitable[None]
]


def _positional_arity(function: CallableType[..., Any]) -> int:
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError):
        # builtins without a signature get the full argument list
        return MAX_HANDLER_ARGS
    count = 0
    for parameter in signature.parameters.values():
        if parameter.kind == inspect.Parameter.VAR_POSITIONAL:
            return MAX_HANDLER_ARGS
        if parameter.kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            count += 1
    return min(count, MAX_HANDLER_ARGS)


def _is_deferred(value: Any) -> bool:
    return inspect.isawaitable(value) or isinstance(value, concurrent.futures.Future)


def handler_spec(spec: Any) -> HandlerSpec:
    """Classify a handler specification.

    Args:
        spec (Any): A literal value, a callable or an awaitable.
            Specs that are already classified are returned unchanged.

    Returns:
        HandlerSpec: The classified specification.
    """
    if isinstance(spec, Literal | Callable | Deferred):
        return spec
    if _is_deferred(spec):
        return Deferred(spec)
    if callable(spec):
        return Callable(
            function=spec,
            arity=_positional_arity(spec),
            is_async=inspect.iscoroutinefunction(spec),
        )
    return Literal(spec)


async def resolve(
    spec: HandlerSpec,
    request: HandlerRequest,
    response: HandlerResponse,
    next: NextFunction,
) -> Any:
    """Produce the value of a handler specification for one request.

    Exceptions raised by the handler, or by the awaitable it returns,
    are not caught.

    Args:
        spec (HandlerSpec): The classified handler specification.
        request (HandlerRequest): The request.
        response (HandlerResponse): The response.
        next (NextFunction): The continuation.

    Returns:
        Any: The resolved value.
    """
    match spec:
        case Literal(value=value):
            return value
        case Deferred():
            return await spec.result()
        case Callable(function=function, arity=arity, is_async=is_async):
            args = (request, response, next)[:arity]
            if is_async:
                value = await function(*args)
            else:
                value = await run_in_threadpool(function, *args)
            if _is_deferred(value):
                value = await Deferred(value).result()
            return value
    raise TypeError(f"Unknown handler specification: {spec!r}")  # noqa: TRY003


def adapt(spec: Any) -> RouteHandler:
    """Wrap a handler specification into a route handler.

    The route handler resolves the specification and, if the value is truthy,
    sends it as the response body. Falsy values are not sent, so handlers that
    write the response themselves and return nothing keep working. A value
    returned after the handler already wrote the response is dropped.

    Args:
        spec (Any): A literal value, a callable or an awaitable.

    Returns:
        RouteHandler: The route handler.
    """
    classified = handler_spec(spec)

    async def handler(
        request: HandlerRequest, response: HandlerResponse, next: NextFunction
    ) -> None:
        value = await resolve(classified, request, response, next)
        # res.status(...) and res.set(...) return the response for chaining
        if not value or value is response:
            return
        if response.headers_sent:
            logger.warning(
                f"Handler for {request.method} {request.path} wrote the response "
                f"and returned {type(value).__name__}, the returned value is dropped"
            )
            return
        response.send(value)

    handler.spec = classified
    return handler
