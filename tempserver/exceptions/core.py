from typing import Any


class BaseException(Exception):  # noqa: A001
    """Base class for the exceptions raised by tempserver.

    Keyword arguments passed to the constructor are kept in `extra`, they are
    part of the message and are returned to the client in the `data` field of
    the error response.

    Attributes:
        http_status_code (int): The status of the error response when the
            exception is raised while serving a request.
        extra (dict[str, Any]): Details about the error.
    """

    http_status_code: int = 500

    def __init__(self, **extra: Any) -> None:
        super().__init__()
        self.extra = extra

    def __str__(self) -> str:
        details = ", ".join(f"{key}={value!r}" for key, value in self.extra.items())
        return f"{self.__class__.__name__}({details})"

    @property
    def data(self) -> dict[str, Any]:
        """A copy of `extra` for the error response."""
        return dict(self.extra)
