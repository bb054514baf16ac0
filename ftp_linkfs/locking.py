"""
A mutual-exclusion lock that threads and asyncio tasks can share.

``threading.Lock`` blocks the event loop and ``asyncio.Lock`` is bound to one
loop, so neither can serialize a blocking caller against a coroutine. The
lock here keeps one FIFO queue of waiters of both kinds and hands ownership
directly to the next waiter on release.
"""

import asyncio
import logging
import threading
from collections import deque

logger = logging.getLogger(__name__)


class _ThreadWaiter:
    def __init__(self):
        self._event = threading.Event()

    def wake(self) -> bool:
        self._event.set()
        return True

    def wait(self) -> None:
        self._event.wait()


class _TaskWaiter:
    def __init__(self, lock: "ExclusiveLock", loop: asyncio.AbstractEventLoop):
        self._lock = lock
        self._loop = loop
        self.future = loop.create_future()

    def wake(self) -> bool:
        try:
            self._loop.call_soon_threadsafe(self._deliver)
        except RuntimeError:
            # Event loop already closed; nobody is left to take ownership
            return False
        return True

    def _deliver(self) -> None:
        if self.future.done():
            # Cancelled after ownership was handed over: pass it on
            self._lock.release()
        else:
            self.future.set_result(None)


class ExclusiveLock:
    """
    FIFO lock with blocking and suspending acquisition on one primitive.

    Usage::

        with lock:
            ...

        async with lock:
            ...

    Like ``threading.Lock`` it is not reentrant and may be released from a
    thread or task other than the one that acquired it.
    """

    def __init__(self):
        self._state = threading.Lock()
        self._locked = False
        self._waiters: deque = deque()

    def locked(self) -> bool:
        return self._locked

    def acquire(self) -> None:
        """Block the calling thread until the lock is owned."""
        with self._state:
            if not self._locked:
                self._locked = True
                return
            waiter = _ThreadWaiter()
            self._waiters.append(waiter)

        waiter.wait()

    async def acquire_async(self) -> None:
        """
        Suspend the calling task until the lock is owned.

        Cancellation while queued removes the waiter; if ownership was being
        handed over at the same moment it is released again.
        """
        with self._state:
            if not self._locked:
                self._locked = True
                return
            waiter = _TaskWaiter(self, asyncio.get_running_loop())
            self._waiters.append(waiter)

        try:
            await waiter.future
        except asyncio.CancelledError:
            with self._state:
                if waiter in self._waiters:
                    self._waiters.remove(waiter)
                    raise
            if waiter.future.done() and not waiter.future.cancelled():
                self.release()
            raise

    def release(self) -> None:
        with self._state:
            if not self._locked:
                raise RuntimeError("release of unlocked ExclusiveLock")
            while self._waiters:
                waiter = self._waiters.popleft()
                if waiter.wake():
                    # Ownership passes to the waiter; the lock stays held
                    return
            self._locked = False

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()

    async def __aenter__(self):
        await self.acquire_async()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.release()
