from typing import Any

from pydantic import BaseModel, ConfigDict


class ExceptionResponseModel(BaseModel):
    """The body of the error responses of a temp server.

    Attributes:
        error (str): The class name of the exception.
        message (str): The exception message.
        method (str | None): The method of the failed request.
        path (str | None): The path of the failed request.
        data (Any | None): Details attached to the exception.
        stacktrace (str | None): The formatted traceback, if enabled in the settings.
    """

    model_config = ConfigDict(extra="forbid")

    error: str
    message: str
    method: str | None = None
    path: str | None = None
    data: Any | None = None
    stacktrace: str | None = None
