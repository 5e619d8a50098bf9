import builtins

from fastapi import FastAPI

from tempserver.api.exception_handler import make_exception_handler
from tempserver.configs.settings import Settings
from tempserver.exceptions.core import BaseException


def create_app(settings: Settings) -> FastAPI:
    """Create the FastAPI application that backs a temp server.

    The interactive docs and the OpenAPI schema are disabled so that
    every path is free for the routes registered by tests.

    Route handler errors are handled by the exception middleware, keyed on
    `builtins.BaseException`, so they are rendered without being re-raised
    to uvicorn. The `Exception` handler covers errors raised outside of
    the routes.

    Args:
        settings (Settings): The settings of the server

    Returns:
        FastAPI: The application
    """
    app = FastAPI(openapi_url=None, docs_url=None, redoc_url=None)

    exception_handler = make_exception_handler(settings)
    app.add_exception_handler(BaseException, exception_handler)
    app.add_exception_handler(builtins.BaseException, exception_handler)
    app.add_exception_handler(Exception, exception_handler)
    return app
