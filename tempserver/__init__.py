from tempserver.api.body_parsers import BodyParserOptions
from tempserver.api.request import HandlerRequest
from tempserver.api.response import HandlerResponse
from tempserver.server import CertificateOptions, TempServer, create_server

__all__ = [
    "BodyParserOptions",
    "CertificateOptions",
    "HandlerRequest",
    "HandlerResponse",
    "TempServer",
    "create_server",
]
