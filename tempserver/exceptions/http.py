from tempserver.exceptions.core import BaseException

__all__ = [
    "PayloadTooLargeError",
    "MalformedBodyError",
    "UnsupportedCharsetError",
    "ResponseAlreadySentError",
]


class PayloadTooLargeError(BaseException):
    """Exception raised when a request body exceeds the body parser limit.

    Attributes:
        length (int): the length of the request body in bytes
        limit (int): the maximum allowed length in bytes
    """

    http_status_code = 413

    def __init__(self, length: int, limit: int):
        """Initialize the exception.

        Args:
            length (int): the length of the request body in bytes
            limit (int): the maximum allowed length in bytes
        """
        super().__init__(length=length, limit=limit)
        self.length = length
        self.limit = limit

    def __reduce__(self):
        """Used for pickling."""
        return (self.__class__, (self.length, self.limit))


class MalformedBodyError(BaseException):
    """Exception raised when a request body cannot be decoded.

    Attributes:
        content_type (str): the content type of the request
        message (str): the message to display
    """

    http_status_code = 400

    def __init__(self, content_type: str, message: str):
        """Initialize the exception.

        Args:
            content_type (str): the content type of the request
            message (str): the message to display
        """
        super().__init__(content_type=content_type, message=message)
        self.content_type = content_type
        self.message = message

    def __reduce__(self):
        """Used for pickling."""
        return (self.__class__, (self.content_type, self.message))


class UnsupportedCharsetError(BaseException):
    """Exception raised when a request declares a charset the parser cannot decode.

    Attributes:
        charset (str): the declared charset
    """

    http_status_code = 415

    def __init__(self, charset: str):
        """Initialize the exception.

        Args:
            charset (str): the declared charset
        """
        super().__init__(charset=charset)
        self.charset = charset

    def __reduce__(self):
        """Used for pickling."""
        return (self.__class__, (self.charset,))


class ResponseAlreadySentError(BaseException):
    """Exception raised when a response is modified after its body was written."""

    pass
