from tempserver.server.certificates import CertificateOptions, Credentials
from tempserver.server.listener import Listener
from tempserver.server.temp_server import TempServer, create_server

__all__ = [
    "CertificateOptions",
    "Credentials",
    "Listener",
    "TempServer",
    "create_server",
]
