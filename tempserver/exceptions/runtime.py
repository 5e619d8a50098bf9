from tempserver.exceptions.core import BaseException

__all__ = [
    "ServerAlreadyListeningError",
    "ServerNotListeningError",
    "ListenerStartupError",
]


class ServerAlreadyListeningError(BaseException):
    """Exception raised when `listen()` is called on a server that is already listening.

    Attributes:
        url (str): the url the server is currently listening on
    """

    def __init__(self, url: str | None):
        """Initialize the exception.

        Args:
            url (str | None): the url the server is currently listening on
        """
        super().__init__(url=url)
        self.url = url

    def __reduce__(self):
        """Used for pickling."""
        return (self.__class__, (self.url,))


class ServerNotListeningError(BaseException):
    """Exception raised when `close()` is called on a server that is not listening."""

    pass


class ListenerStartupError(BaseException):
    """Exception raised when a listener exits before it reports ready.

    Attributes:
        scheme (str): the scheme of the listener that failed (http or https)
        message (str): the message to display
    """

    def __init__(self, scheme: str, message: str | None = None):
        """Initialize the exception.

        Args:
            scheme (str): the scheme of the listener that failed
            message (str): the message to display
        """
        message = message or f"The {scheme} listener exited before it was ready."
        super().__init__(scheme=scheme, message=message)
        self.scheme = scheme
        self.message = message

    def __reduce__(self):
        """Used for pickling."""
        return (self.__class__, (self.scheme, self.message))
