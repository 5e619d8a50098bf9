import logging
import traceback

from fastapi import Request

from tempserver.api.responses import TempServerJSONResponse
from tempserver.configs.settings import Settings
from tempserver.core.models.exception import ExceptionResponseModel
from tempserver.exceptions.core import BaseException

logger = logging.getLogger(__name__)


def custom_exception_handler(
    request: Request | None, exc: Exception, include_stacktrace: bool = True
) -> TempServerJSONResponse:
    """Render an exception raised while serving a request.

    The status code is the `http_status_code` of the exception, 500 for
    exceptions that don't define one (i.e. anything raised by a route handler).

    Args:
        request (Request | None): The failed request, if any.
        exc (Exception): The exception.
        include_stacktrace (bool): Whether to include the traceback in the response.

    Returns:
        TempServerJSONResponse: The error response, see ExceptionResponseModel.
    """
    body = ExceptionResponseModel(
        error=type(exc).__name__,
        message=str(exc),
        method=request.method if request is not None else None,
        path=request.url.path if request is not None else None,
        data=exc.data if isinstance(exc, BaseException) else None,
        stacktrace="".join(traceback.format_exception(exc)) if include_stacktrace else None,
    )
    return TempServerJSONResponse(
        status_code=getattr(exc, "http_status_code", 500), content=body.model_dump()
    )


def make_exception_handler(settings: Settings):
    """Build the exception handler registered on every temp server app.

    Args:
        settings (Settings): The settings of the server.

    Returns:
        Callable: The async exception handler.
    """

    async def tempserver_exception_handler(request: Request, exc: Exception):
        if not isinstance(exc, BaseException):
            logger.error(
                f"Route handler for {request.method} {request.url.path} raised {exc!r}"
            )
        return custom_exception_handler(
            request, exc, include_stacktrace=settings.include_stacktrace
        )

    return tempserver_exception_handler
