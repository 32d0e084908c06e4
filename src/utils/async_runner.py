"""
Async Runner
============

Runs the dashboard's coroutines on one persistent background thread that owns
an asyncio event loop, so the tk main loop never blocks on network I/O.

All backend and model calls therefore run cooperatively on a single loop;
the UI thread only submits work and receives results through callbacks.

Usage:
------
    >>> runner = AsyncRunner()
    >>> runner.submit(controller.load(), on_done=lambda ok: print(ok))
    >>> runner.shutdown()
"""

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Awaitable, Callable, Optional


class AsyncRunner:
    """
    Single-thread asyncio loop for background coroutines.

    Attributes:
        name: Identifier for logging purposes
        loop: The event loop owned by the worker thread
    """

    def __init__(self, name: str = "AsyncRunner"):
        self.name = name
        self.logger = logging.getLogger(__name__)
        self.loop = asyncio.new_event_loop()
        self._running = True

        self._thread = threading.Thread(
            target=self._run_loop,
            name=f"{name}-Thread",
            daemon=True,
        )
        self._thread.start()
        self.logger.debug(f"AsyncRunner '{name}' started")

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def submit(
        self,
        coro: Awaitable[Any],
        on_done: Optional[Callable[[Any], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
    ) -> Optional[Future]:
        """
        Schedule a coroutine on the loop.

        Callbacks are invoked on the runner thread; UI code must marshal them
        back to the main thread itself (e.g. with ``widget.after(0, ...)``).

        Returns:
            A concurrent.futures.Future for the result, or None after shutdown.
        """
        if not self._running:
            self.logger.warning(f"Runner '{self.name}' is shut down, ignoring submission")
            if asyncio.iscoroutine(coro):
                coro.close()
            return None

        future = asyncio.run_coroutine_threadsafe(coro, self.loop)

        def _done(f: Future):
            if f.cancelled():
                return
            exc = f.exception()
            if exc is not None:
                self.logger.error(
                    f"Runner '{self.name}' task failed: {type(exc).__name__}: {exc}",
                    exc_info=exc,
                )
                if on_error:
                    on_error(exc)
                return
            if on_done:
                on_done(f.result())

        future.add_done_callback(_done)
        return future

    def run(self, coro: Awaitable[Any], timeout: Optional[float] = None) -> Any:
        """Schedule a coroutine and block until it finishes. Not for use on the UI thread."""
        future = self.submit(coro)
        if future is None:
            raise RuntimeError(f"Runner '{self.name}' is shut down")
        return future.result(timeout=timeout)

    def shutdown(self, timeout: float = 2.0) -> None:
        """Stop the loop and join the thread."""
        if not self._running:
            return

        self.logger.debug(f"Runner '{self.name}' shutting down...")
        self._running = False
        self.loop.call_soon_threadsafe(self.loop.stop)

        if self._thread.is_alive():
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                self.logger.warning(f"Runner '{self.name}' thread did not terminate within {timeout}s")
                return

        self.loop.close()
        self.logger.debug(f"Runner '{self.name}' shutdown complete")
