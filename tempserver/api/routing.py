import logging
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from starlette.responses import Response

from tempserver.api.adapter import NextFunction, RouteHandler, adapt
from tempserver.api.body_parsers import BodyParser, read_body
from tempserver.api.request import HandlerRequest
from tempserver.api.response import HandlerResponse

__all__ = ["RouteRegistration", "RouteRegistrar"]

logger = logging.getLogger(__name__)


def _strip_slash(path: str) -> str:
    return path.rstrip("/") or "/"


class RouteRegistration:
    """The handler chain registered for one method and path.

    Handlers run in registration order. A handler passes control to the
    next one by calling `next()`, otherwise the chain stops there and the
    response is sent.

    Attributes:
        method (str): The HTTP method.
        path (str): The route path, in Starlette syntax (e.g. `/items/{id}`).
        handlers (list[RouteHandler]): The adapted handlers.
    """

    def __init__(self, method: str, path: str, body_parsers: list[BodyParser]):
        """Constructor.

        Args:
            method (str): The HTTP method.
            path (str): The route path.
            body_parsers (list[BodyParser]): The body parsers of the server.
        """
        self.method = method
        self.path = path
        self.body_parsers = body_parsers
        self.handlers: list[RouteHandler] = []

    def add(self, handler: RouteHandler):
        """Append an adapted handler to the chain."""
        self.handlers.append(handler)

    async def dispatch(self, request: Request) -> Response:
        """The FastAPI endpoint of the route.

        Args:
            request (Request): The request.

        Returns:
            Response: The response written by the handlers.

        Raises:
            HTTPException: 404 if every handler passed control onwards.
            Exception: Whatever a handler raised or passed to `next`.
        """
        raw_body, body = await read_body(request, self.body_parsers)
        handler_request = HandlerRequest(request, raw_body=raw_body, body=body)
        handler_response = HandlerResponse()

        for handler in list(self.handlers):
            next = NextFunction()
            await handler(handler_request, handler_response, next)
            if next.error is not None:
                raise next.error
            if not next.called:
                break
        else:
            raise HTTPException(status_code=404)

        return handler_response.to_response()


class RouteRegistrar:
    """Route registration with one method per HTTP verb.

    Every handler passed to a verb method goes through the response adapter
    before it is added to the route, so handlers may return the response body
    instead of writing it.

    Subclasses provide `app` and `body_parsers`.
    """

    app: FastAPI
    body_parsers: list[BodyParser]

    def __init__(self):
        """Constructor."""
        self.routes: dict[tuple[str, str], RouteRegistration] = {}

    def add_route(self, method: str, path: str, *handlers: Any):
        """Register handlers for a method and path.

        Args:
            method (str): The HTTP method.
            path (str): The route path.
            *handlers (Any): Handler specifications: literal values,
                callables taking (request, response, next), or awaitables.

        Returns:
            Callable | None: A decorator registering the decorated function
                if no handlers were given, None otherwise.
        """
        method = method.upper()
        if not handlers:

            def decorator(function: Callable) -> Callable:
                self.add_route(method, path, function)
                return function

            return decorator

        key = (method, _strip_slash(path))
        registration = self.routes.get(key)
        if registration is None:
            registration = RouteRegistration(method, path, self.body_parsers)
            self.routes[key] = registration
            # GET routes answer HEAD too
            methods = [method, "HEAD"] if method == "GET" else [method]
            # a trailing slash is optional, both forms reach the same handlers
            for route_path in sorted({key[1], key[1].rstrip("/") + "/"}):
                self.app.add_api_route(
                    route_path,
                    registration.dispatch,
                    methods=methods,
                    include_in_schema=False,
                )
            logger.debug(f"Registered route {method} {path}")

        for handler in handlers:
            registration.add(adapt(handler))
        return None

    def get(self, path: str, *handlers: Any):
        return self.add_route("GET", path, *handlers)

    def post(self, path: str, *handlers: Any):
        return self.add_route("POST", path, *handlers)

    def put(self, path: str, *handlers: Any):
        return self.add_route("PUT", path, *handlers)

    def delete(self, path: str, *handlers: Any):
        return self.add_route("DELETE", path, *handlers)

    def options(self, path: str, *handlers: Any):
        return self.add_route("OPTIONS", path, *handlers)

    def patch(self, path: str, *handlers: Any):
        return self.add_route("PATCH", path, *handlers)
