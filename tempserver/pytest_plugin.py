"""Pytest fixtures for temp servers.

The plugin is registered through the `pytest11` entry point, so the
fixtures are available as soon as tempserver is installed.
"""

import contextlib
from collections.abc import Callable, Iterator

import pytest

from tempserver.exceptions.runtime import ServerNotListeningError
from tempserver.server.temp_server import TempServer, create_server


@pytest.fixture
def temp_server_factory() -> Iterator[Callable[..., TempServer]]:
    """Factory fixture creating listening temp servers.

    Accepts the arguments of `create_server`. Every server created by the
    factory is closed at teardown.
    """
    servers: list[TempServer] = []

    def factory(**kwargs) -> TempServer:
        server = create_server(**kwargs)
        servers.append(server)
        return server

    yield factory

    for server in servers:
        with contextlib.suppress(ServerNotListeningError):
            server.close()


@pytest.fixture
def temp_server(temp_server_factory) -> TempServer:
    """A listening temp server with default options."""
    return temp_server_factory()
