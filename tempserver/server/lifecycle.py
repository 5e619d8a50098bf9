import asyncio
import logging
import threading

from tempserver.exceptions.runtime import ListenerStartupError
from tempserver.server.listener import Listener

__all__ = ["ServeThread"]

logger = logging.getLogger(__name__)


class ServeThread(threading.Thread):
    """Serve a group of bound listeners on one event loop in a daemon thread.

    The listeners start and stop together: the thread reports ready only
    once every listener has started, and if one of them exits the others
    are shut down as well.

    Attributes:
        listeners (list[Listener]): The listeners served by the thread.
        ready (threading.Event): Set once every listener has started, or the thread has exited.
        serving (bool): True from the moment every listener has started
            until the first of them exits.
        started_serving (bool): True once every listener has started.
        stopping (bool): True once `stop` was called.
        unexpected_exit (bool): True if a listener exited before `stop` was called.
        error (BaseException | None): The exception the event loop exited with.
    """

    def __init__(self, listeners: list[Listener], poll_interval: float = 0.01):
        """Constructor.

        Args:
            listeners (list[Listener]): Bound listeners to serve.
            poll_interval (float): How often to check whether the listeners have started.
        """
        super().__init__(name="tempserver", daemon=True)
        self.listeners = listeners
        self.poll_interval = poll_interval
        self.ready = threading.Event()
        self.serving = False
        self.stopping = False
        self.started_serving = False
        self.unexpected_exit = False
        self.error: BaseException | None = None

    def run(self):
        """Run the event loop of the listeners."""
        try:
            asyncio.run(self._serve())
        # uvicorn raises SystemExit when it fails to start
        except BaseException as e:  # noqa: BLE001
            self.error = e
        finally:
            self.serving = False
            self.ready.set()
        if self.error is not None and self.started_serving:
            logger.error(f"Listeners exited with an error: {self.error!r}")
        elif self.unexpected_exit:
            logger.error("Listeners exited before the server was closed")

    async def _serve(self):
        tasks = [
            asyncio.create_task(listener.serve(), name=f"tempserver-{listener.scheme}")
            for listener in self.listeners
        ]
        while not all(listener.started for listener in self.listeners):
            failed = next(
                (
                    listener
                    for listener, task in zip(self.listeners, tasks, strict=True)
                    if task.done()
                ),
                None,
            )
            if failed is not None:
                for listener in self.listeners:
                    listener.stop()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise ListenerStartupError(scheme=failed.scheme)
            await asyncio.sleep(self.poll_interval)

        self.serving = True
        self.started_serving = True
        self.ready.set()

        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        self.unexpected_exit = not self.stopping
        self.serving = False
        for listener in self.listeners:
            listener.stop()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            task.result()

    def wait_ready(self):
        """Block until every listener has started.

        Raises:
            ListenerStartupError: If a listener exited before it started.
        """
        self.ready.wait()
        if self.started_serving:
            return
        if isinstance(self.error, ListenerStartupError):
            raise self.error
        raise ListenerStartupError(
            scheme=",".join(listener.scheme for listener in self.listeners),
            message=f"The listeners failed to start: {self.error!r}",
        ) from self.error

    def stop(self):
        """Ask every listener to exit and wait until they have shut down."""
        self.stopping = True
        for listener in self.listeners:
            listener.stop()
        self.join()
