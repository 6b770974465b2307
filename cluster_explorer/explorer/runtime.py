"""The explorer's single control thread.

One asyncio event loop runs on a daemon thread.  Dash callbacks execute on
Flask worker threads and hand every state transition to this loop, so all
mutations happen on one logical thread while network calls only suspend
their own coroutine.
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ..logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class EventLoopThread:
    """Owns an asyncio loop running forever on a background thread."""

    def __init__(self, name: str = "explorer-loop") -> None:
        self._name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            raise RuntimeError("event loop thread not started")
        return self._loop

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "EventLoopThread":
        if self.running:
            return self
        self._ready.clear()
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        self._ready.wait()
        logger.debug("Event loop thread %s started", self._name)
        return self

    def _run(self) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        self._ready.set()
        try:
            loop.run_forever()
        finally:
            loop.close()

    def submit(self, coro: Awaitable[T]) -> Future:
        """Schedule *coro* on the loop; returns a concurrent future."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def run(self, coro: Awaitable[T], timeout: Optional[float] = None) -> T:
        """Run *coro* on the loop and block the calling thread for its result."""
        return self.submit(coro).result(timeout)

    def call(self, fn: Callable[..., T], *args: Any, timeout: Optional[float] = 10.0) -> T:
        """Run the plain function *fn* on the loop thread and return its result."""
        if threading.current_thread() is self._thread:
            return fn(*args)

        async def _invoke():
            return fn(*args)

        return self.run(_invoke(), timeout)

    def stop(self, timeout: float = 5.0) -> None:
        if self._loop is None or not self.running:
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout)
        self._loop = None
        self._thread = None
